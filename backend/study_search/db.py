import psycopg

from . import config


def get_db_conn() -> psycopg.Connection:
    """Open a new connection; callers close it when done."""
    return psycopg.connect(config.DATABASE_URL)
