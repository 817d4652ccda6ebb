"""
Form 5500 search table rebuild.

Generates the ordered statement list that rebuilds form_5500_search from the
yearly long-form (f_5500_<year>_<section>) and short-form
(f_5500_sf_<year>_<section>) tables:

1. Drop / create the search table
2. INSERT ... SELECT over a UNION ALL of every year and form
3. Per-year updates from Schedules H, I and C
4. Delete rows with no assets
5. Rebuild the rk mapping table (only when a valid mapping file is given)
6. Set rk_company_id by exact provider name
7. Materialized view + one index per mapped column
"""

import logging
from typing import List, Optional

from .config import (
    TABLE_MAPPINGS, ColumnMapping, SEARCH_TABLE, SEARCH_VIEW, RK_MAPPING_TABLE,
    RK_COMPANY_ID_COL, PROVIDER_COLUMNS, PROVIDER_SERVICE_CODES,
    INVESTMENT_COLUMNS, TABLE_ORIGIN_COL, validate_section, validate_years,
)
from .rk_mappings import RkMappingFileError, import_rk_mappings, validate_csv_file
from .runner import SQLRunner, run_statements

logger = logging.getLogger(__name__)


def rebuild_search_table(conn, section: str, years: List[str],
                         rk_mapping_file: Optional[str] = None) -> int:
    """Rebuild form_5500_search and its view. Returns statements executed."""
    logger.info(f"Building {SEARCH_TABLE} table...")
    statements = get_rebuild_statements(section, years, rk_mapping_file)
    return run_statements(conn, statements)


def get_rebuild_statements(section: str, years: List[str],
                           rk_mapping_file: Optional[str] = None) -> List[SQLRunner]:
    """Every statement of a rebuild, in execution order."""
    section = validate_section(section)
    years = validate_years(years)

    statements: List[SQLRunner] = []
    statements.extend(get_drop_and_create_search_table_statements())
    statements.append(get_insert_statement(section, years))

    # Totals from schedule H or I; providers from schedule C (long form only)
    for year in years:
        statements.extend(get_update_from_schedules_statements(section, year))

    statements.append(get_remove_no_asset_records())

    if _usable_mapping_file(rk_mapping_file):
        statements.extend(get_drop_and_create_rk_mapping_table_statements())
        statements.extend(import_rk_mappings(rk_mapping_file))
    else:
        statements.append(get_ensure_rk_mapping_table_statement())

    statements.append(get_update_rk_mappings())
    statements.append(get_create_materialized_view_statement())

    for mapping in TABLE_MAPPINGS:
        statements.append(get_create_index_statement(mapping))
    return statements


def _usable_mapping_file(rk_mapping_file: Optional[str]) -> bool:
    if rk_mapping_file is None:
        logger.warning("No rk mapping file given, keeping existing rk mappings")
        return False
    try:
        validate_csv_file(rk_mapping_file)
    except RkMappingFileError as e:
        logger.warning(f"could not find rk mapping file, keeping existing rk mappings: {e}")
        return False
    return True


# ============================================================================
# DDL
# ============================================================================

def get_drop_and_create_search_table_statements() -> List[SQLRunner]:
    return [
        SQLRunner(statement=f"DROP TABLE IF EXISTS {SEARCH_TABLE} CASCADE;",
                  description=f"drop {SEARCH_TABLE} table"),
        SQLRunner(statement=f"CREATE TABLE {SEARCH_TABLE} ({get_search_table_columns()});",
                  description=f"create {SEARCH_TABLE} table"),
    ]


def get_search_table_columns() -> str:
    cols = [f"{m.alias} {m.data_type}" for m in TABLE_MAPPINGS]
    cols.append(f"{RK_COMPANY_ID_COL} int")
    cols.extend(f"{col} text" for col in PROVIDER_COLUMNS)
    cols.extend(f"{col} boolean" for col in INVESTMENT_COLUMNS)
    cols.append(f"{TABLE_ORIGIN_COL} text")
    return ", ".join(cols)


def get_create_materialized_view_statement() -> SQLRunner:
    return SQLRunner(
        statement=f"CREATE MATERIALIZED VIEW {SEARCH_VIEW} AS SELECT * FROM {SEARCH_TABLE};",
        description=f"Creating materialized view {SEARCH_VIEW}",
    )


def get_create_index_statement(mapping: ColumnMapping) -> SQLRunner:
    return SQLRunner(
        statement=f"CREATE INDEX {mapping.index_name} ON {SEARCH_VIEW} ({mapping.alias});",
        description=f"Creating index {mapping.index_name}",
    )


# ============================================================================
# UNION / INSERT
# ============================================================================

def long_form_origin(year: str, section: str) -> str:
    return f"{year}_{section}"


def short_form_origin(year: str, section: str) -> str:
    return f"sf_{year}_{section}"


def select_long_form_table(year: str, section: str) -> str:
    cols = "".join(f"{m.long_form} as {m.alias}, " for m in TABLE_MAPPINGS)
    return (f"   SELECT {cols}'{long_form_origin(year, section)}' as {TABLE_ORIGIN_COL} "
            f"from f_5500_{year}_{section} as f_{year}")


def select_short_form_table(year: str, section: str) -> str:
    cols = "".join(f"{m.short_form} as {m.alias}, " for m in TABLE_MAPPINGS)
    return (f"   SELECT {cols}'{short_form_origin(year, section)}' as {TABLE_ORIGIN_COL} "
            f"from f_5500_sf_{year}_{section} as f_{year}_sf")


def get_insert_statement(section: str, years: List[str]) -> SQLRunner:
    union_tables = []
    for year in years:
        union_tables.append(select_long_form_table(year, section))
        union_tables.append(select_short_form_table(year, section))
    select_statement = "\n      UNION ALL\n".join(union_tables)

    cols = ",".join([m.alias for m in TABLE_MAPPINGS] + [TABLE_ORIGIN_COL])
    return SQLRunner(
        statement=f"INSERT INTO {SEARCH_TABLE} ({cols}) SELECT {cols} FROM (\n"
                  f"{select_statement}\n) as f_s;",
        description=f"Inserting records into {SEARCH_TABLE}",
    )


# ============================================================================
# SCHEDULE UPDATES
# ============================================================================

def get_update_from_schedules_statements(section: str, year: str) -> List[SQLRunner]:
    """
    Updates for one year of long-form filings.

    Schedule H (large plans) sets assets and investment flags, Schedule I
    (small plans) fills assets still missing, Schedule C sets one provider
    per role by service code. Short-form rows already carry their assets.
    """
    origin = long_form_origin(year, section)
    statements = [
        _schedule_h_statement(section, year, origin),
        _schedule_i_statement(section, year, origin),
    ]
    for role, codes in PROVIDER_SERVICE_CODES.items():
        statements.append(_schedule_c_statement(section, year, origin, role, codes))
    return statements


def _schedule_h_statement(section: str, year: str, origin: str) -> SQLRunner:
    flags = ",\n            ".join(
        f"{flag} = COALESCE(h.{col}, 0) > 0" for flag, col in INVESTMENT_COLUMNS.items()
    )
    return SQLRunner(
        statement=f"""
        UPDATE {SEARCH_TABLE} s
        SET total_assets = h.tot_assets_eoy_amt,
            net_assets = h.net_assets_eoy_amt,
            {flags}
        FROM f_sch_h_{year}_{section} h
        WHERE s.ack_id = h.ack_id
          AND s.{TABLE_ORIGIN_COL} = '{origin}';
        """,
        description=f"Setting total assets and investment types from schedule H ({origin})",
    )


def _schedule_i_statement(section: str, year: str, origin: str) -> SQLRunner:
    return SQLRunner(
        statement=f"""
        UPDATE {SEARCH_TABLE} s
        SET total_assets = i.small_tot_assets_eoy_amt,
            net_assets = i.small_net_assets_eoy_amt
        FROM f_sch_i_{year}_{section} i
        WHERE s.ack_id = i.ack_id
          AND s.{TABLE_ORIGIN_COL} = '{origin}'
          AND s.total_assets IS NULL;
        """,
        description=f"Setting total assets from schedule I ({origin})",
    )


def _schedule_c_statement(section: str, year: str, origin: str,
                          role: str, codes) -> SQLRunner:
    code_list = ", ".join(f"'{c}'" for c in codes)
    return SQLRunner(
        statement=f"""
        UPDATE {SEARCH_TABLE} s
        SET {role}_name = p.provider_other_name,
            {role}_ein = p.provider_other_ein
        FROM (
            SELECT DISTINCT ON (i.ack_id)
                i.ack_id, i.provider_other_name, i.provider_other_ein::text AS provider_other_ein
            FROM f_sch_c_part1_item2_{year}_{section} i
            JOIN f_sch_c_part1_item2_codes_{year}_{section} c
                ON c.ack_id = i.ack_id AND c.row_order = i.row_order
            WHERE c.service_code IN ({code_list})
            ORDER BY i.ack_id, i.row_order
        ) p
        WHERE s.ack_id = p.ack_id
          AND s.{TABLE_ORIGIN_COL} = '{origin}';
        """,
        description=f"Setting {role} provider from schedule C ({origin})",
    )


def get_remove_no_asset_records() -> SQLRunner:
    return SQLRunner(
        statement=f"DELETE FROM {SEARCH_TABLE} WHERE total_assets IS NULL OR total_assets = 0;",
        description="Removing records with no assets",
    )


# ============================================================================
# RK MAPPINGS
# ============================================================================

_RK_MAPPING_COLUMNS = "sched_c_provider_name text PRIMARY KEY, fbi_company_id INTEGER NOT NULL"


def get_drop_and_create_rk_mapping_table_statements() -> List[SQLRunner]:
    return [
        SQLRunner(statement=f"DROP TABLE IF EXISTS {RK_MAPPING_TABLE};",
                  description=f"drop {RK_MAPPING_TABLE} table"),
        SQLRunner(statement=f"CREATE TABLE {RK_MAPPING_TABLE} ( {_RK_MAPPING_COLUMNS});",
                  description=f"create {RK_MAPPING_TABLE} table"),
    ]


def get_ensure_rk_mapping_table_statement() -> SQLRunner:
    return SQLRunner(
        statement=f"CREATE TABLE IF NOT EXISTS {RK_MAPPING_TABLE} ( {_RK_MAPPING_COLUMNS});",
        description=f"ensure {RK_MAPPING_TABLE} table exists",
    )


def get_update_rk_mappings() -> SQLRunner:
    return SQLRunner(
        statement=f"""UPDATE {SEARCH_TABLE}
        SET {RK_COMPANY_ID_COL} = fbi_company_id
        FROM {RK_MAPPING_TABLE}
        WHERE rk_name = sched_c_provider_name""",
        description="Updating records with new rk mappings",
    )
