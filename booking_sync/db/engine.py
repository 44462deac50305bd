"""
SQLAlchemy engine singleton with production-ready connection pooling.

Sync runs open a short transaction per reconciled record rather than one
transaction per run, so the pool mostly serves brief checkouts from the HTTP
handlers and the scheduler process.
"""

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from booking_sync.config import DATABASE_URL

if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL is not set.")

engine: Engine = create_engine(
    DATABASE_URL,
    future=True,
    pool_size=10,  # Number of connections to maintain in the pool
    max_overflow=20,  # Additional connections when pool is exhausted
    pool_pre_ping=True,  # Verify connections before using
    pool_recycle=3600,  # Recycle connections after 1 hour
    echo=False,
)


def check_engine_health(target: Engine = engine) -> bool:
    """
    Check if the database is reachable.

    Used by the /ready endpoint before the service accepts traffic.

    Returns:
        bool: True if a trivial query succeeds, False otherwise
    """
    try:
        with target.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
