"""
Database configuration and connection management.

This module provides:
- SQLAlchemy engine and session management
- Connection pooling sized from settings
- Test database support
- Table definitions for recipes and licenses
"""
from typing import Optional
from contextlib import contextmanager
from sqlalchemy import create_engine, MetaData, Table, Column, Integer, String, DateTime, JSON, Text, PrimaryKeyConstraint
from sqlalchemy.pool import QueuePool
from sqlalchemy.orm import sessionmaker
from sqlalchemy.sql import func
import logging
import os

from recipe_server.core.config import settings


logger = logging.getLogger(__name__)

# SQLAlchemy metadata for table definitions
metadata = MetaData()

POOL_RECYCLE = 3600  # Recycle connections after 1 hour

REQUIRED_TABLES = ["recipes", "licenses"]

# Global engine and session factory
_engine = None
_SessionLocal = None


def get_database_url() -> Optional[str]:
    """
    Get the database URL from settings or environment.

    For testing, use TEST_DATABASE_URL if available.
    """
    test_url = os.getenv("TEST_DATABASE_URL")
    if test_url:
        return test_url

    return settings.DATABASE_URL


def init_engine(database_url: Optional[str] = None):
    """
    Initialize the SQLAlchemy engine.

    Args:
        database_url: Optional override for DATABASE_URL
    """
    global _engine, _SessionLocal

    url = database_url or get_database_url()

    if not url:
        raise ValueError(
            "DATABASE_URL is not configured. "
            "Set DATABASE_URL in environment or .env file."
        )

    # Concurrent request handlers share the pool, never a single connection
    _engine = create_engine(
        url,
        poolclass=QueuePool,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=POOL_RECYCLE,
        pool_pre_ping=True,
        echo=False,
    )

    _SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=_engine
    )
    logger.info(f"Database engine initialized (pool_size={settings.DB_POOL_SIZE}, max_overflow={settings.DB_MAX_OVERFLOW})")

    return _engine


def get_engine():
    """Get the current SQLAlchemy engine."""
    global _engine
    if _engine is None:
        init_engine()
    return _engine


def get_session_factory():
    """Get the session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        init_engine()
    return _SessionLocal


@contextmanager
def get_db_session():
    """
    Context manager for database sessions.

    Usage:
        with get_db_session() as session:
            session.execute(...)
            session.commit()
    """
    SessionLocal = get_session_factory()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_all_tables():
    """
    Create all tables defined in metadata.

    This is idempotent - tables that already exist will not be recreated.
    """
    engine = get_engine()
    metadata.create_all(bind=engine)


# Published recipe documents. One row per (id, version); readers see the
# highest version.
recipes = Table(
    'recipes',
    metadata,
    Column('id', String(100), nullable=False),
    Column('version', Integer, nullable=False, server_default='1'),
    Column('title', Text, nullable=False),
    Column('description', Text, nullable=False, server_default=''),
    Column('tier', String(20), nullable=False, index=True),  # free | pro
    Column('platform', String(100), nullable=True),
    Column('complexity', String(50), nullable=True),
    Column('tags', JSON, nullable=False),
    Column('requires', JSON, nullable=False),
    Column('pairs_with', JSON, nullable=False),
    Column('body', JSON, nullable=False),
    Column('published_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    PrimaryKeyConstraint('id', 'version', name='pk_recipes_id_version'),
)

# License registry. Keys are stored as SHA-256 digests; rows are never deleted.
licenses = Table(
    'licenses',
    metadata,
    Column('key_hash', String(64), primary_key=True),
    Column('key_prefix', String(16), nullable=False),
    Column('status', String(20), nullable=False, server_default='active', index=True),  # active | revoked | expired
    Column('scope', String(100), nullable=False),
    Column('expires_at', DateTime(timezone=True), nullable=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
)
