"""Ledger database engine and sessions."""

import os
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

DATABASE_URL_ENV = "DATABASE_URL"


def database_url_from_env(database_url: Optional[str] = None) -> Optional[str]:
    """Explicit URL if given, else DATABASE_URL."""
    return database_url or os.getenv(DATABASE_URL_ENV)


def create_database_engine(database_url: str) -> Engine:
    """Create an engine for the ledger database.

    Server databases get pre-ping so a connection dropped between runs is
    replaced instead of failing the first insert.
    """
    if database_url.startswith("sqlite"):
        return create_engine(database_url, echo=False)
    return create_engine(database_url, echo=False, pool_pre_ping=True)


def create_session_factory(engine: Engine):
    # Rows handed back after commit are read for their generated id
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@contextmanager
def session_scope(Session):
    """Session that commits on success and rolls back on any error."""
    session = Session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
