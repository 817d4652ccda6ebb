"""
Form 5500 Search Module

Rebuilds the denormalized form_5500_search table from the yearly Form 5500
filing tables, maps recordkeepers to company ids, and reports recordkeepers
that still need a mapping.

Usage:
    from scripts.form5500 import get_rebuild_statements, rebuild_search_table

    statements = get_rebuild_statements("latest", ["2019", "2020"], "rk_mappings.csv")
    rebuild_search_table(conn, "latest", ["2019", "2020"], "rk_mappings.csv")
"""

from .config import ColumnMapping, TABLE_MAPPINGS
from .runner import SQLRunner, StatementError, run_statements
from .search_table import get_rebuild_statements, rebuild_search_table
from .unmatched import find_unmatched_rks

__all__ = [
    'ColumnMapping',
    'TABLE_MAPPINGS',
    'SQLRunner',
    'StatementError',
    'run_statements',
    'get_rebuild_statements',
    'rebuild_search_table',
    'find_unmatched_rks',
]
