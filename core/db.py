"""
core/db.py -- Shared SQLAlchemy engine construction.

Both repositories (auth/store.py and blog/store.py) build their engine here
so SQLite connections get the same thread and journal settings.

SQLite specifics:
  check_same_thread=False -- route handlers run in the threadpool, so a
      pooled connection may be used by a different thread than created it.
  timeout -- seconds a connection waits on a locked database before raising,
      matching the route-level store timeout.
  WAL journal mode -- readers proceed without blocking during writes. Set per
      connection because SQLite PRAGMAs are not inherited from the pool.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str, timeout: float = 10.0) -> Engine:
    """Create an Engine for db_url with per-dialect connection settings."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        connect_args["timeout"] = timeout
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine
