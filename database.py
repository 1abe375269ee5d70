# database.py
"""
SQLAlchemy database connection and session management.

This module provides:
- Database engine configuration (DATABASE_URL, or Azure SQL / MS SQL Server from DB_* variables)
- Session factory for dependency injection
- Connection utilities

Usage:
     from database import get_session, engine

     # In FastAPI routes:
     @app.get("/orders")
     def get_orders(db: Session = Depends(get_session)):
          return db.query(Order).all()
     """
from contextlib import contextmanager
from typing import Callable, Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool

from config import get_settings
from logging_config import get_logger

logger = get_logger(__name__)


def build_engine(database_url: str, echo: bool = False) -> Engine:
     """
     Create an engine for the given URL.

     SQLite gets a single-threaded friendly setup (used by tests and local runs);
     every other backend gets the pooled configuration.
     """
     if database_url.startswith("sqlite"):
          return create_engine(
               database_url,
               connect_args={"check_same_thread": False, "timeout": 30},
               echo=echo,
          )
     return create_engine(
          database_url,
          poolclass=QueuePool,
          pool_size=5,
          max_overflow=10,
          pool_timeout=30,
          pool_recycle=1800,  # Recycle connections after 30 minutes
          echo=echo,
     )


def build_session_factory(bind: Engine) -> sessionmaker:
     """Session factory; objects stay readable after commit."""
     return sessionmaker(
          bind=bind,
          autocommit=False,
          autoflush=False,
          expire_on_commit=False,
     )


_settings = get_settings()

# Create SQLAlchemy engine
engine = build_engine(_settings.database_url, echo=_settings.sql_echo)

# Session factory
SessionLocal = build_session_factory(engine)


def get_session() -> Generator[Session, None, None]:
     """
     FastAPI dependency that provides a database session.

     Usage:
          @app.get("/orders")
          def get_orders(db: Session = Depends(get_session)):
               return db.query(Order).all()

     Yields:
          Session: SQLAlchemy database session
     """
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
def get_session_context(
     session_factory: Optional[Callable[[], Session]] = None,
) -> Generator[Session, None, None]:
     """
     Context manager for one unit of work (for use outside FastAPI routes).

     Commits when the block exits normally, rolls back on any exception.

     Usage:
          with get_session_context() as db:
               orders = db.query(Order).all()

     Yields:
          Session: SQLAlchemy database session
     """
     session = (session_factory or SessionLocal)()
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
     except Exception as e:
          logger.error("database_connection_failed", error=str(e))
          return False
