# database.py
"""
SQLAlchemy database connection and session management.

This module provides:
- A Database handle owning the engine and session factory
- A FastAPI dependency that yields a request-scoped session
- A context manager for sessions outside of request handling

The handle is created by create_app() from Settings and stored on
app.state.db; there is no module-level engine.

Usage:
     from database import get_session

     # In FastAPI routes:
     @router.get("/items")
     def get_items(db: Session = Depends(get_session)):
          return db.query(Item).all()
"""
import logging
from contextlib import contextmanager
from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool

logger = logging.getLogger(__name__)


def _build_engine(database_url: str, echo: bool = False) -> Engine:
     if database_url.startswith("sqlite"):
          # SQLite is used for local runs and tests; requests are served
          # from a thread pool so the connection must not be thread-bound.
          engine = create_engine(
               database_url,
               echo=echo,
               connect_args={"check_same_thread": False, "timeout": 30},
          )
          _use_immediate_transactions(engine)
          return engine

     return create_engine(
          database_url,
          poolclass=QueuePool,
          pool_size=5,
          max_overflow=10,
          pool_timeout=30,
          pool_recycle=1800,  # Recycle connections after 30 minutes
          pool_pre_ping=True,
          echo=echo,
     )


def _use_immediate_transactions(engine: Engine) -> None:
     """
     Start every SQLite transaction with BEGIN IMMEDIATE.

     pysqlite defers BEGIN until the first write, so two sessions racing
     to claim the same customer can both hold read locks and deadlock on
     upgrade. Taking the write lock up front makes the second session wait
     for the first to commit.
     """
     @event.listens_for(engine, "connect")
     def _disable_pysqlite_begin(dbapi_connection, connection_record):
          dbapi_connection.isolation_level = None

     @event.listens_for(engine, "begin")
     def _begin_immediate(conn):
          conn.exec_driver_sql("BEGIN IMMEDIATE")


class Database:
     """Engine plus session factory for one database."""

     def __init__(self, database_url: str, echo: bool = False):
          self.engine = _build_engine(database_url, echo=echo)
          self.SessionLocal = sessionmaker(
               bind=self.engine,
               autocommit=False,
               autoflush=False,
               expire_on_commit=False,
          )

     @contextmanager
     def session(self) -> Generator[Session, None, None]:
          """
          Context manager for database sessions (for use outside FastAPI routes).

          Usage:
               with db.session() as session:
                    customers = session.query(Customer).all()
          """
          session = self.SessionLocal()
          try:
               yield session
               session.commit()
          except Exception:
               session.rollback()
               raise
          finally:
               session.close()

     def create_all(self) -> None:
          """
          Create all tables defined in the models if they don't exist.
          For production, use Alembic migrations instead.
          """
          from models import Base
          Base.metadata.create_all(bind=self.engine)

     def check_connection(self) -> bool:
          """Return True if a trivial query succeeds."""
          try:
               with self.engine.connect() as conn:
                    conn.execute(text("SELECT 1"))
               return True
          except Exception:
               logger.exception("Database connection failed")
               return False

     def dispose(self) -> None:
          self.engine.dispose()


def get_session(request: Request) -> Generator[Session, None, None]:
     """
     FastAPI dependency that provides a database session.

     Commits when the route returns normally and rolls back if it raises.

     Yields:
          Session: SQLAlchemy database session
     """
     db: Database = request.app.state.db
     session = db.SessionLocal()
     try:
          yield session
          session.commit()
     except Exception:
          session.rollback()
          raise
     finally:
          session.close()
