"""
Database configuration and connection management.

This module provides:
- SQLAlchemy engine and session management
- Connection pooling with sane defaults
- Test database support
- Table definitions for users and the command event log
"""
from typing import Optional
from contextlib import contextmanager
from sqlalchemy import create_engine, MetaData, Table, Column, Integer, String, DateTime, Boolean, JSON, Text, Index, select, false
from sqlalchemy.pool import QueuePool
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.sql import func
import logging
import os

from skillboard.core.config import settings

logger = logging.getLogger("skillboard")

# SQLAlchemy metadata for table definitions
metadata = MetaData()

# Connection pooling configuration
POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600  # Recycle connections after 1 hour

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

    return os.getenv("DATABASE_URL") or settings.DATABASE_URL


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

    if url.startswith("sqlite"):
        # SQLite has no server-side pool; used for local runs and tests
        _engine = create_engine(url, connect_args={"check_same_thread": False}, echo=False)
    else:
        _engine = create_engine(
            url,
            poolclass=QueuePool,
            pool_size=POOL_SIZE,
            max_overflow=MAX_OVERFLOW,
            pool_timeout=POOL_TIMEOUT,
            pool_recycle=POOL_RECYCLE,
            echo=False,  # Set to True for SQL query logging
        )

    # Create session factory
    _SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=_engine
    )

    return _engine


def dispose_engine() -> None:
    """Dispose the current engine (tests switch databases between runs)."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


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


@contextmanager
def session_scope(session: Optional[Session] = None):
    """
    Join the caller's session when given, else open (and commit) a new one.

    Lets several store calls share one transaction.
    """
    if session is not None:
        yield session
        return
    with get_db_session() as own:
        yield own


def create_all_tables():
    """
    Create all tables defined in metadata.

    This is idempotent - tables that already exist will not be recreated.
    """
    engine = get_engine()
    metadata.create_all(bind=engine)


def check_connection() -> bool:
    """
    Check if database connection is available.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        engine = get_engine()
        with engine.connect() as conn:
            conn.execute(select(1))
        return True
    except Exception as e:
        logger.warning(f"Database connection check failed: {e}")
        return False


# Users with their denormalized activity snapshot
users = Table(
    'app_users',
    metadata,
    Column('user_id', String(100), primary_key=True),
    Column('display_name', Text, nullable=True),
    Column('has_access', Boolean, nullable=False, server_default=false()),
    Column('command_usage_count', Integer, nullable=False, server_default='0'),
    Column('streak_current', Integer, nullable=False, server_default='0'),
    Column('streak_longest', Integer, nullable=False, server_default='0'),
    Column('last_active_at', DateTime(timezone=True), nullable=True),
    Column('favorite_commands', JSON, nullable=False, default=list),
    Column('mode_preferences', JSON, nullable=False, default=dict),
    Column('category_scores', JSON, nullable=False, default=dict),
    Column('overall_rank', Integer, nullable=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Index('idx_users_created_at', 'created_at'),
    # Leaderboard population scans: users with activity
    Index('idx_users_usage_count', 'command_usage_count'),
)

# Append-only command event log
command_events = Table(
    'command_events',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', String(100), nullable=False, index=True),
    Column('command', Text, nullable=False),
    Column('category', String(100), nullable=False, index=True),
    Column('risk_level', String(20), nullable=False, server_default='safe'),
    Column('interaction_type', String(20), nullable=False, server_default='prediction'),
    Column('executed', Boolean, nullable=False, server_default=false()),
    Column('created_at', DateTime(timezone=True), nullable=False),
    # User's recent commands
    Index('idx_command_events_user_created', 'user_id', 'created_at'),
    # User's commands by category (score queries)
    Index('idx_command_events_user_category', 'user_id', 'category'),
    # Global recent activity
    Index('idx_command_events_created', 'created_at'),
)
