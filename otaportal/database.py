import asyncio
import contextvars
import threading

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from otaportal.config import get_config


def get_database_url():
  """Get database URL with SSL configuration if needed."""
  config = get_config()
  database_url = config.DATABASE_URL

  # Add SSL parameters for staging/prod environments
  if config.is_aws_environment() and database_url and "?" not in database_url:
    database_url += "?sslmode=require"
  elif (
    config.is_aws_environment() and database_url and "sslmode" not in database_url
  ):
    database_url += "&sslmode=require"

  return database_url


def get_engine_options(database_url: str) -> dict:
  """Engine keyword arguments for the configured backend."""
  config = get_config()
  if database_url.startswith("sqlite"):
    # Single shared connection so in-memory databases survive across sessions
    return {
      "connect_args": {"check_same_thread": False},
      "poolclass": StaticPool,
      "echo": config.DATABASE_ECHO,
    }
  return {
    "pool_size": config.DATABASE_POOL_SIZE,
    "max_overflow": config.DATABASE_MAX_OVERFLOW,
    "pool_pre_ping": True,
    "echo": config.DATABASE_ECHO,
  }


_request_scope = contextvars.ContextVar("db_request_scope", default=None)


def activate_request_scope():
  """
  Activate a request-scoped SQLAlchemy session context.

  Returns:
      ContextVar token if a new scope was set, otherwise None.
  """
  if _request_scope.get() is not None:
    return None
  return _request_scope.set(object())


def deactivate_request_scope(token):
  """Reset request scope context if it was set."""
  if token is None:
    return
  try:
    _request_scope.reset(token)
  except ValueError:
    # Context may differ if the dependency ran in a worker thread.
    _request_scope.set(None)


def _session_scope():
  """
  Return an identifier for the current execution context.

  FastAPI runs multiple requests in the same thread via asyncio tasks.
  Using the current task as the scope avoids sharing the same SQLAlchemy
  Session across concurrent requests while still supporting threaded usage.
  """
  scope_id = _request_scope.get()
  if scope_id is not None:
    return scope_id

  try:
    current_task = asyncio.current_task()
  except RuntimeError:
    current_task = None

  if current_task is not None:
    return current_task

  return threading.get_ident()


_database_url = get_database_url()
engine = create_engine(_database_url, **get_engine_options(_database_url))
SessionFactory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
session = scoped_session(SessionFactory, scopefunc=_session_scope)


class Base(DeclarativeBase):
  """Base class for all models."""

  pass


Model = Base


def get_db_session():
  """Get database session for FastAPI dependency injection."""
  db = session()
  try:
    yield db
  finally:
    session.remove()
