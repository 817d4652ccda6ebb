"""
Shared database configuration for the Form 5500 scripts.
Reads credentials from .env file or environment variables.
"""
import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root; real environment variables win
_env_path = Path(__file__).resolve().parent / '.env'
if _env_path.exists():
    load_dotenv(_env_path, override=False)

DB_HOST = os.environ.get('DB_HOST', 'localhost')
DB_PORT = int(os.environ.get('DB_PORT', '5432'))
DB_NAME = os.environ.get('DB_NAME', 'form5500')
DB_USER = os.environ.get('DB_USER', 'postgres')
DB_PASSWORD = os.environ.get('DB_PASSWORD', '')

DB_CONFIG = {
    'host': DB_HOST,
    'port': DB_PORT,
    'database': DB_NAME,
    'user': DB_USER,
    'password': DB_PASSWORD,
}


def get_connection(cursor_factory=None):
    """Get a database connection using shared config."""
    import psycopg2
    kwargs = dict(DB_CONFIG)
    if cursor_factory:
        kwargs['cursor_factory'] = cursor_factory
    return psycopg2.connect(**kwargs)
