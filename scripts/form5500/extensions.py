"""
Optional database extensions.

Only "zip_codes" exists: a zip code reference table loaded from a public CSV
plus a radius search function.
"""

import logging
from pathlib import Path
from typing import Optional

import requests

from . import config
from .runner import SQLRunner

logger = logging.getLogger(__name__)

SQL_DIR = Path(__file__).resolve().parent / "sql"
EXTENSIONS = ("zip_codes",)
CHUNK_SIZE = 1024 * 64


def read_sql(relative_path: str) -> str:
    return (SQL_DIR / relative_path).read_text(encoding="utf-8")


def call_extension(conn, extension: str, download_dir: Optional[str] = None,
                   force_download: bool = False) -> None:
    """Install the named extension. Raises ValueError for unknown names."""
    if extension == "zip_codes":
        logger.info("Adding zip codes extension")
        add_zip_codes(conn, download_dir=download_dir, force_download=force_download)
    else:
        raise ValueError(f"Invalid extension: {extension}. Available: {', '.join(EXTENSIONS)}")


def download_zip_code_csv(download_dir: Optional[str] = None, url: Optional[str] = None,
                          force: bool = False) -> Path:
    """
    Download the zip code CSV and return its absolute path.

    An existing file is reused unless force is set.
    """
    url = url or config.ZIP_CODES_URL
    target_dir = Path(download_dir) if download_dir else Path.cwd()
    target_dir.mkdir(parents=True, exist_ok=True)
    path = (target_dir / url.rstrip("/").split("/")[-1]).resolve()

    if path.exists() and not force:
        logger.info(f"  - Using existing {path}")
        return path

    logger.info(f"  - Downloading {url} to {path}")
    partial = path.with_suffix(path.suffix + ".part")
    try:
        with requests.get(url, stream=True, timeout=config.DOWNLOAD_TIMEOUT) as response:
            response.raise_for_status()
            with open(partial, "wb") as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    f.write(chunk)
    except Exception:
        partial.unlink(missing_ok=True)
        raise
    partial.replace(path)
    logger.info(f"  - Saved {path.stat().st_size:,} bytes")
    return path


def copy_zip_codes(cur, csv_path: Path) -> None:
    """COPY the CSV (with header) into zip_codes."""
    logger.info("Importing zip codes into zip_codes table")
    with open(csv_path, encoding="utf-8") as f:
        cur.copy_expert("COPY zip_codes FROM STDIN WITH (FORMAT csv, HEADER, DELIMITER ',')", f)


def add_zip_codes(conn, download_dir: Optional[str] = None, force_download: bool = False) -> None:
    """
    Recreate zip_codes from the CSV in one transaction.

    The table is dropped and reloaded on the same cursor, so a failed COPY
    rolls back to the previous zip code data.
    """
    csv_path = download_zip_code_csv(download_dir, force=force_download)
    cur = conn.cursor()
    try:
        SQLRunner(statement=read_sql("zip_codes/create_table.sql"),
                  description="Create zip_codes table").execute(cur)
        copy_zip_codes(cur, csv_path)
        SQLRunner(statement=read_sql("zip_codes/create_search_function.sql"),
                  description="Create zip code search function").execute(cur)
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        cur.close()
