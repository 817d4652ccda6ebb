"""
Recordkeeper name -> company id mapping file.

The file is a two-column CSV (Schedule C provider name, company id). A header
line is allowed; any row whose id is not a non-zero integer is skipped.
"""

import csv
import logging
from typing import Dict, List

from .config import RK_MAPPING_TABLE
from .runner import SQLRunner

logger = logging.getLogger(__name__)


class RkMappingFileError(Exception):
    """The rk mapping file is missing or malformed."""


def validate_csv_file(path) -> None:
    """Raise RkMappingFileError unless path opens and holds one CSV record."""
    try:
        with open(path, newline='', encoding='utf-8') as f:
            first = next((row for row in csv.reader(f) if row), None)
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise RkMappingFileError(f"Error opening file: {e}") from e
    if first is None:
        raise RkMappingFileError(f"Error reading file: {path} is empty")


def _parse_company_id(value: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        return 0


def read_rk_mappings(path) -> Dict[str, int]:
    """
    Read provider name -> company id pairs.

    Reading stops at the first fully blank row, since that usually means the
    export was truncated.

    Raises:
        RkMappingFileError: on an unreadable file or a row without two fields
    """
    mappings: Dict[str, int] = {}
    try:
        with open(path, newline='', encoding='utf-8') as f:
            for line_no, row in enumerate(csv.reader(f), 1):
                if not row:
                    continue
                if len(row) != 2:
                    raise RkMappingFileError(f"Unexpected line {line_no}: {row}")
                name, raw_id = row
                if name == "" and raw_id == "":
                    logger.warning("Found a line with no data, stopping reading now, "
                                   "repair your file if data was truncated.")
                    break
                company_id = _parse_company_id(raw_id)
                if company_id == 0:
                    continue
                if name in mappings and mappings[name] != company_id:
                    logger.warning(f"Duplicate provider '{name}' on line {line_no}: "
                                   f"{mappings[name]} replaced by {company_id}")
                mappings[name] = company_id
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise RkMappingFileError(f"Error reading file: {e}") from e
    return mappings


def import_rk_mappings(path) -> List[SQLRunner]:
    """Statements that load the mapping file into the mapping table."""
    mappings = read_rk_mappings(path)
    logger.info(f"Read {len(mappings):,} rk mappings from {path}")
    if not mappings:
        return []
    return [SQLRunner(
        statement=f"INSERT INTO {RK_MAPPING_TABLE} "
                  f"(sched_c_provider_name, fbi_company_id) VALUES %s",
        description=f"Importing {len(mappings):,} rk company id mappings",
        values=list(mappings.items()),
    )]
