# database.py
"""
SQLAlchemy database connection and session management.

This module provides:
- Engine construction for the configured DATABASE_URL
- Session factory used by the ledger store
- Connection utilities

Usage:
     from database import SessionLocal, get_session_context

     with get_session_context() as db:
          db.query(SupplyChainTransaction).count()
     """
import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

import config

logger = logging.getLogger(__name__)


def build_engine(url: str, echo: bool = False) -> Engine:
     """
     Create an engine for the given URL.

     SQLite URLs get a connection shared across threads (the ledger writer
     runs on its own worker thread); in-memory SQLite additionally uses a
     single static connection so every session sees the same database.
     Server databases keep a bounded connection pool.
     """
     if url.startswith("sqlite"):
          kwargs = {"connect_args": {"check_same_thread": False}}
          if url in ("sqlite://", "sqlite:///:memory:"):
               kwargs["poolclass"] = StaticPool
          return create_engine(url, echo=echo, **kwargs)

     return create_engine(
          url,
          poolclass=QueuePool,
          pool_size=5,
          max_overflow=10,
          pool_timeout=30,
          pool_recycle=1800,  # Recycle connections after 30 minutes
          pool_pre_ping=True,
          echo=echo,
     )


def build_session_factory(bind: Engine) -> sessionmaker:
     return sessionmaker(
          bind=bind,
          autocommit=False,
          autoflush=False,
          expire_on_commit=False,
     )


# Default engine and session factory for the configured database
engine = build_engine(config.DATABASE_URL, echo=config.SQL_ECHO)
SessionLocal = build_session_factory(engine)


@contextmanager
def get_session_context(factory: Optional[sessionmaker] = None) -> Generator[Session, None, None]:
     """
     Context manager for database sessions.

     Commits on success, rolls back and re-raises on any error.

     Usage:
          with get_session_context() as db:
               db.add(record)

     Yields:
          Session: SQLAlchemy database session
     """
     session = (factory or SessionLocal)()
     try:
          yield session
          session.commit()
     except Exception:
          session.rollback()
          raise
     finally:
          session.close()


def init_db(bind: Optional[Engine] = None) -> None:
     """
     Initialize database tables.

     Creates all tables defined in the models if they don't exist.
     For production, use Alembic migrations instead.
     """
     from models import Base
     Base.metadata.create_all(bind=bind or engine)


def check_connection(bind: Optional[Engine] = None) -> bool:
     """
     Test database connectivity.

     Returns:
          bool: True if connection successful, False otherwise
     """
     try:
          with (bind or engine).connect() as conn:
               conn.execute(text("SELECT 1"))
          return True
     except SQLAlchemyError as e:
          logger.error("Database connection failed: %s", e)
          return False
