# logstore/db.py
"""
Engine factory and declarative base.

Env vars:
- DATABASE_URL (default: sqlite:///./logstore.db)
- SQLITE_BUSY_TIMEOUT seconds a SQLite writer waits for the file lock (default: 15)
"""
import os

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./logstore.db")
SQLITE_BUSY_TIMEOUT = float(os.getenv("SQLITE_BUSY_TIMEOUT", "15"))

_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")

Base = declarative_base()


def make_engine(url: str = None) -> Engine:
    url = url or DATABASE_URL
    kwargs = {"pool_pre_ping": True}
    if url.startswith("sqlite"):
        # SQLite needs this for multithreaded app servers.
        kwargs["connect_args"] = {"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT}
        if url in _MEMORY_URLS:
            # every new connection to :memory: is a separate empty database
            kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


def init_db(engine: Engine) -> None:
    """Create tables if they don't exist. Raises SQLAlchemyError if the database is unreachable."""
    # import models lazily so Base metadata has them
    import logstore.models as models  # noqa: F401
    Base.metadata.create_all(bind=engine)
