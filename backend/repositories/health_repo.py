"""Repository helpers for health checks."""

from db_utils import connection as sa_connection
from extensions import db


def check_database_connection() -> bool:
    """Run a trivial query; any driver error propagates to the caller."""
    conn = sa_connection(db.engine)
    try:
        return conn.execute("SELECT 1").scalar() == 1
    finally:
        conn.close()
