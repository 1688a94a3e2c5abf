# catalog/database.py

import os
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session, delete

from catalog.config import get_database_url
from catalog.logger import get_logger

log = get_logger(__name__)


def _create_engine(url: str):
  if url.startswith("sqlite"):
    connect_args = {"check_same_thread": False}
    # In-memory SQLite lives in a single connection, share it across threads
    if url in ("sqlite://", "sqlite:///:memory:"):
      return create_engine(url, echo=False, connect_args=connect_args, poolclass=StaticPool)
    return create_engine(url, echo=False, connect_args=connect_args)
  return create_engine(url, echo=False, pool_pre_ping=True)


DATABASE_URL = get_database_url()
engine = _create_engine(DATABASE_URL)


def init_db():
  """Creates the product table if it does not exist"""
  from catalog.db_models import ProductRecord

  # Ensure the db directory exists for file based SQLite
  if DATABASE_URL.startswith("sqlite:///") and DATABASE_URL != "sqlite:///:memory:":
    db_file = DATABASE_URL[len("sqlite:///"):]
    db_dir = os.path.dirname(db_file)
    if db_dir:
      os.makedirs(db_dir, exist_ok=True)

  SQLModel.metadata.create_all(engine, tables=[ProductRecord.__table__], checkfirst=True)
  log.info(f"Initialized product database ({DATABASE_URL})")


def get_session():
  """Create new session for the product database"""
  return Session(engine)


def get_db():
  """FastAPI dependency: one session per request"""
  session = get_session()
  try:
    yield session
  finally:
    session.close()


def clear_database():
  """Delete all product rows (hard delete, used for resets and tests)"""
  from catalog.db_models import ProductRecord

  session = get_session()
  try:
    session.exec(delete(ProductRecord))
    session.commit()
    log.info("Cleared all records from product database")
  except Exception as e:
    log.error(f"Error clearing product database: {e}")
    session.rollback()
    raise
  finally:
    session.close()
