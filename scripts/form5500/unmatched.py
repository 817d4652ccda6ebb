"""
Unmatched recordkeeper report.

Finds rk names in the search view with no company id and suggests the
closest known Schedule C provider name. Candidates share the first two
characters of the name; the suggestion is the candidate with the smallest
PostgreSQL levenshtein() distance, kept only below MAX_SUGGESTION_DISTANCE.
"""

import csv
import logging
from typing import List, Optional, Tuple

from rapidfuzz import fuzz

from .config import (
    SEARCH_VIEW, RK_MAPPING_TABLE, CANDIDATE_PREFIX_LENGTH,
    MAX_SUGGESTION_DISTANCE, UNMATCHED_RKS_FILE,
)
from .jira import create_jira_issue
from .runner import SQLRunner

logger = logging.getLogger(__name__)

REPORT_HEADER = ["rk_name", "possible_match", "company_id", "similarity", "name_ratio"]

# levenshtein() rejects arguments longer than this
LEVENSHTEIN_MAX_LENGTH = 255


def get_unmatched_rks_setup_statements() -> List[SQLRunner]:
    prefix = CANDIDATE_PREFIX_LENGTH
    max_len = LEVENSHTEIN_MAX_LENGTH
    return [
        SQLRunner(statement="CREATE EXTENSION IF NOT EXISTS fuzzystrmatch;",
                  description="Ensuring fuzzystrmatch extension"),
        SQLRunner(statement="DROP TABLE IF EXISTS unmatched_rks;",
                  description="drop unmatched_rks temp table"),
        SQLRunner(statement="CREATE TEMP TABLE unmatched_rks (rk_name text);",
                  description="create unmatched_rks temp table"),
        SQLRunner(statement=f"""
            INSERT INTO unmatched_rks (
                SELECT DISTINCT (rk_name)
                FROM {SEARCH_VIEW}
                WHERE rk_name IS NOT NULL AND rk_company_id IS NULL
            );""",
                  description="Collecting rk names with no company id"),
        SQLRunner(statement="DROP TABLE IF EXISTS match_options;",
                  description="drop match_options temp table"),
        SQLRunner(statement="CREATE TEMP TABLE match_options "
                            "(rk_name text, sched_c_provider_name text, company_id int, lev int);",
                  description="create match_options temp table"),
        SQLRunner(statement=f"""
            INSERT INTO match_options (
                SELECT rk_name, sched_c_provider_name, fbi_company_id,
                       levenshtein(LEFT(rk_name, {max_len}), LEFT(sched_c_provider_name, {max_len}))
                FROM unmatched_rks
                LEFT JOIN {RK_MAPPING_TABLE}
                    ON LEFT(rk_name, {prefix}) = LEFT({RK_MAPPING_TABLE}.sched_c_provider_name, {prefix})
            );""",
                  description="Scoring candidate matches"),
    ]


def get_unmatched_rks_query() -> SQLRunner:
    return SQLRunner(
        statement=f"""
        SELECT DISTINCT ON (match.rk_name)
            match.rk_name,
            match_options.sched_c_provider_name AS possible_match_name,
            match_options.company_id AS possible_match_id,
            match_options.lev AS match_similarity
        FROM (
            SELECT rk_name, min(lev) lev
            FROM match_options
            GROUP BY rk_name
        ) match
        LEFT JOIN match_options
            ON match.rk_name = match_options.rk_name
            AND match.lev = match_options.lev
            AND match.lev < {MAX_SUGGESTION_DISTANCE}
        ORDER BY match.rk_name, match_options.sched_c_provider_name;
        """,
        description="Finding unmatched rks and suggested matches",
    )


def get_unmatched_rks_teardown_statements() -> List[SQLRunner]:
    return [
        SQLRunner(statement="DROP TABLE IF EXISTS unmatched_rks;",
                  description="drop unmatched_rks temp table"),
        SQLRunner(statement="DROP TABLE IF EXISTS match_options;",
                  description="drop match_options temp table"),
    ]


def fetch_unmatched_rks(conn) -> List[Tuple]:
    """(rk_name, possible_match, company_id, distance) per unmatched rk."""
    cur = conn.cursor()
    try:
        for statement in get_unmatched_rks_setup_statements():
            statement.execute(cur)
        get_unmatched_rks_query().execute(cur)
        rows = cur.fetchall()
        for statement in get_unmatched_rks_teardown_statements():
            statement.execute(cur)
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        cur.close()
    return rows


def _report_row(row: Tuple) -> List:
    name, match_name, match_id, distance = row
    if match_name is None:
        return [name, "", "", "", ""]
    ratio = round(fuzz.ratio(name, match_name), 1)
    return [name, match_name, match_id if match_id is not None else "",
            distance if distance is not None else "", ratio]


def write_report(rows: List[Tuple], output_path: str) -> int:
    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(REPORT_HEADER)
        for row in rows:
            writer.writerow(_report_row(row))
    return len(rows)


def find_unmatched_rks(conn, output_path: str = UNMATCHED_RKS_FILE,
                       jira_creator: Optional[str] = None,
                       jira_token: Optional[str] = None,
                       jira_assignee: Optional[str] = None) -> int:
    """
    Write the unmatched rk report and open a Jira issue for it.

    The issue is only created when both jira_creator and jira_token are set.

    Returns:
        Number of unmatched rk names written
    """
    rows = fetch_unmatched_rks(conn)
    count = write_report(rows, output_path)
    suggested = sum(1 for r in rows if r[1] is not None)
    logger.info(f"Wrote {count:,} unmatched rks ({suggested:,} with suggestions) to {output_path}")

    if jira_creator and jira_token:
        create_jira_issue(jira_creator, jira_token, jira_assignee, attachment=output_path)
    else:
        logger.info("No Jira credentials given, skipping issue creation")
    return count
