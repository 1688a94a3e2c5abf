# tests/conftest.py

import os

# Must be set before catalog.database creates its engine
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CACHE_BACKEND"] = "memory"
os.environ["SYNC_INTERVAL_SECONDS"] = "0"

import pytest
from datetime import datetime, timezone
from fastapi.testclient import TestClient

from catalog.cache import InMemoryCacheStore, PaginationCache
from catalog.database import init_db, clear_database, get_session
from catalog.db_models import ProductRecord

AUTH = {"Authorization": "Bearer test-token"}


@pytest.fixture
def session():
  init_db()
  clear_database()
  db_session = get_session()
  yield db_session
  db_session.close()


@pytest.fixture
def cache():
  return PaginationCache(InMemoryCacheStore())


@pytest.fixture
def client():
  from catalog.main import app

  with TestClient(app, raise_server_exceptions=False) as test_client:
    clear_database()
    app.state.cache.store.clear()
    yield test_client


def add_products(session, count, deleted=False, **fields):
  """Insert `count` products sharing `fields`. Names are numbered from the given name (default 'Product')."""
  base_name = fields.pop("name", "Product")
  records = list()
  for i in range(count):
    record = ProductRecord(name=f"{base_name} {i + 1}", **fields)
    if deleted:
      record.deleted_at = datetime.now(timezone.utc)
    session.add(record)
    records.append(record)
  session.commit()
  for record in records:
    session.refresh(record)
  return records
