"""Process-wide PostgreSQL engine factory.

Stores, the job queue and the Dagster resources share one SQLAlchemy engine per
process. Dagster's DefaultRunLauncher spawns one subprocess per run, so each
sourcing run gets exactly one engine.

Uses NullPool: connections are opened on demand and closed after use, so idle
workers hold no connections against PostgreSQL's max_connections.
"""

import os
import threading

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool

_lock = threading.Lock()
_engine: Engine | None = None
_session_factory: sessionmaker | None = None


def build_database_url() -> str:
    host = os.getenv("POSTGRES_HOST", "localhost")
    port = os.getenv("POSTGRES_PORT", "5432")
    user = os.getenv("POSTGRES_USER", "talent")
    password = os.getenv("POSTGRES_PASSWORD", "talent_dev")
    database = os.getenv("POSTGRES_DB", "talent_sourcing")
    return f"postgresql://{user}:{password}@{host}:{port}/{database}"


def get_engine() -> Engine:
    """Return the process-wide SQLAlchemy engine, creating it on first call."""
    global _engine, _session_factory
    if _engine is None:
        with _lock:
            if _engine is None:
                _engine = create_engine(build_database_url(), poolclass=NullPool)
                _session_factory = sessionmaker(bind=_engine)
    return _engine


def get_session() -> Session:
    """Create a new session from the shared engine."""
    get_engine()
    return _session_factory()
