"""
Database configuration and table definitions.

This module provides:
- SQLAlchemy engine construction with sane pooling defaults
- Table definitions (SQLAlchemy Core)
- Idempotent table creation

Engines are built explicitly and handed to ``SqlStore``; nothing here keeps a
process-wide connection.
"""
from typing import Optional
from sqlalchemy import create_engine, MetaData, Table, Column, Integer, String, DateTime, Text, Index, ForeignKey
from sqlalchemy.engine import Engine
from sqlalchemy.pool import QueuePool
from sqlalchemy.sql import func
import os

from studyforge.core.config import settings


# SQLAlchemy metadata for table definitions
metadata = MetaData()

# Connection pooling configuration
POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600  # Recycle connections after 1 hour
CONNECT_TIMEOUT_SECONDS = 2


def get_database_url() -> Optional[str]:
    """
    Get the database URL from settings or environment.

    For testing, use TEST_DATABASE_URL if available.
    """
    test_url = os.getenv("TEST_DATABASE_URL")
    if test_url:
        return test_url

    return settings.DATABASE_URL


def create_store_engine(database_url: Optional[str] = None) -> Optional[Engine]:
    """
    Build a SQLAlchemy engine, or return None when no database is configured.

    Engine creation does not connect; an unreachable server is only noticed
    by the per-request probe.
    """
    url = database_url or get_database_url()
    if not url:
        return None

    if url.startswith("sqlite"):
        return create_engine(url, echo=False)

    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=POOL_SIZE,
        max_overflow=MAX_OVERFLOW,
        pool_timeout=POOL_TIMEOUT,
        pool_recycle=POOL_RECYCLE,
        pool_pre_ping=True,
        connect_args={"connect_timeout": CONNECT_TIMEOUT_SECONDS},
        echo=False,  # Set to True for SQL query logging
    )


def create_all_tables(engine: Engine) -> None:
    """
    Create all tables defined in metadata.

    This is idempotent - tables that already exist will not be recreated.
    """
    metadata.create_all(bind=engine)


def drop_all_tables(engine: Engine) -> None:
    """
    Drop all tables defined in metadata.

    WARNING: This is destructive! Only use in tests or development.
    """
    metadata.drop_all(bind=engine)


# Users (bootstrapped from the identity provider on first sign-in)
users = Table(
    'app_users',
    metadata,
    Column('id', String(100), primary_key=True),
    Column('email', String(320), nullable=False),
    Column('name', Text, nullable=False),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
    Index('idx_app_users_email', 'email'),
)

# One subscription (entitlement) per user
subscriptions = Table(
    'subscriptions',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', String(100), ForeignKey('app_users.id'), nullable=False, unique=True, index=True),
    Column('plan_type', String(50), nullable=False, server_default='FREE'),
    Column('quota_limit', Integer, nullable=False, server_default='10'),
    Column('quota_used', Integer, nullable=False, server_default='0'),
    Column('valid_until', DateTime(timezone=True), nullable=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
)

notes = Table(
    'notes',
    metadata,
    Column('id', String(100), primary_key=True),
    Column('user_id', String(100), nullable=False, index=True),
    Column('title', Text, nullable=False),
    Column('subject', Text, nullable=True),
    Column('topic', Text, nullable=True),
    Column('content', Text, nullable=False),
    Column('prompt', Text, nullable=False),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
    # Composite index for the list pattern: (user_id, updated_at)
    Index('idx_notes_user_updated', 'user_id', 'updated_at'),
)

# Single practice paper entity for creation, listing and deletion
practice_papers = Table(
    'practice_papers',
    metadata,
    Column('id', String(100), primary_key=True),
    Column('user_id', String(100), nullable=False, index=True),
    Column('title', Text, nullable=False),
    Column('subject', Text, nullable=False),
    Column('topic', Text, nullable=False),
    Column('difficulty', String(50), nullable=False),
    Column('content', Text, nullable=False),
    Column('prompt', Text, nullable=True),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
    Index('idx_practice_papers_user_created', 'user_id', 'created_at'),
)

text_summaries = Table(
    'text_summaries',
    metadata,
    Column('id', String(100), primary_key=True),
    Column('user_id', String(100), nullable=False, index=True),
    Column('original_text_length', Integer, nullable=False),
    Column('summary_length', Integer, nullable=False),
    Column('style', String(50), nullable=False),
    Column('length', String(50), nullable=False),
    Column('content', Text, nullable=False),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Column('updated_at', DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False),
    Index('idx_text_summaries_user_created', 'user_id', 'created_at'),
)
