import logging
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from crafture.config import DEFAULT_TABLE_NAME
from crafture.models.history import history_model

logger = logging.getLogger("database")


def create_db_engine(database_url: str) -> Engine:
    """Create the engine for the history datastore"""
    if database_url.startswith("sqlite") and ":memory:" in database_url:
        # A single shared connection, otherwise every session sees an empty database
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_url, pool_pre_ping=True)


def create_session_factory(database_url: Optional[str], table_name: str = DEFAULT_TABLE_NAME,
                           create_tables: bool = True) -> Optional[sessionmaker]:
    """Build a session factory, or None when no datastore is configured"""
    if not database_url:
        logger.warning("No database configured. History will not be persisted.")
        return None

    engine = create_db_engine(database_url)
    if create_tables:
        history_model(table_name).metadata.create_all(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
