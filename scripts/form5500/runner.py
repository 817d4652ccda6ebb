"""
SQL statement runner.

Every step of the rebuild is a SQLRunner: the statement text plus a
human-readable description that is logged when it runs.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from psycopg2.extras import execute_values

logger = logging.getLogger(__name__)


class StatementError(Exception):
    """A generated statement failed in the database."""

    def __init__(self, description: str, cause: Exception):
        super().__init__(f"{description}: {cause}")
        self.description = description
        self.cause = cause


@dataclass
class SQLRunner:
    """
    A single executable statement.

    Attributes:
        statement: SQL text (may hold %s placeholders)
        description: What the statement does, for the log
        params: Parameters for a plain execute
        values: Row tuples for a multi-row insert ("VALUES %s" statement)
    """
    statement: str
    description: str
    params: Optional[Sequence[Any]] = None
    values: Optional[List[tuple]] = None

    def execute(self, cur) -> int:
        """Run on an open cursor and return the affected row count."""
        logger.info(self.description)
        logger.debug(self.statement)
        try:
            if self.values is not None:
                execute_values(cur, self.statement, self.values, page_size=1000)
            else:
                cur.execute(self.statement, self.params)
        except Exception as e:
            raise StatementError(self.description, e) from e
        # rowcount only covers the last execute_values page
        if self.values is not None:
            return len(self.values)
        return cur.rowcount


def run_statements(conn, statements: List[SQLRunner]) -> int:
    """
    Execute statements in order inside one transaction.

    Commits when all succeed; rolls back and re-raises otherwise, so a failed
    rebuild leaves the previous tables in place.

    Returns:
        Number of statements executed
    """
    cur = conn.cursor()
    try:
        for i, statement in enumerate(statements, 1):
            start = time.time()
            rows = statement.execute(cur)
            logger.info(f"  [{i}/{len(statements)}] done in {time.time() - start:.1f}s"
                        + (f" ({rows:,} rows)" if rows and rows > 0 else ""))
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        cur.close()
    return len(statements)
