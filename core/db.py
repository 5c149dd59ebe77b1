"""
core/db.py -- SQLAlchemy engine factory shared by auth/store.py and todos/store.py.

SQLAlchemy provides a database-agnostic abstraction: swapping SQLite for
PostgreSQL is a DATABASE_URL change, not a rewrite. SQLite-only tweaks
(thread check off, WAL journal) are applied here so every store gets them.

Layer rule: core/ is the kernel. No imports from api/, auth/, or todos/.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    WAL (Write-Ahead Logging) allows readers to proceed without blocking
    during writes. Set per-connection because SQLite PRAGMAs are not
    inherited by new connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str) -> Engine:
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        # TestClient and FastAPI's threadpool hand connections across threads.
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine
