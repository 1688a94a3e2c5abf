# catalog/config.py

import os

# Values are read on every call so tests (and the scheduler) see the current environment.

DEFAULT_DATABASE_URL = "sqlite:///db/catalog.db"
DEFAULT_CACHE_TTL_SECONDS = 3600 # 1 hour
DEFAULT_SYNC_INTERVAL_SECONDS = 3600


def get_env() -> str:
  """production, development, testing"""
  return os.getenv("APP_ENV", "development")


def get_log_dir() -> str:
  return os.getenv("LOG_DIR", "logs")


def get_log_level() -> str:
  """Optional root level override (DEBUG, INFO, WARNING...). Empty means per-environment default."""
  return os.getenv("LOG_LEVEL", "").strip().upper()


def get_database_url() -> str:
  return os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)


def get_cache_backend() -> str:
  return os.getenv("CACHE_BACKEND", "memory").lower()


def get_redis_url() -> str:
  return os.getenv("REDIS_URL", "redis://localhost:6379/0")


def get_cache_ttl() -> int:
  return _get_int("CACHE_TTL_SECONDS", DEFAULT_CACHE_TTL_SECONDS)


def get_sync_interval() -> int:
  """Seconds between scheduled sync passes. 0 disables the scheduler."""
  return _get_int("SYNC_INTERVAL_SECONDS", DEFAULT_SYNC_INTERVAL_SECONDS)


def _get_int(name: str, default: int) -> int:
  value = os.getenv(name)
  if value is None or value.strip() == "":
    return default
  try:
    return int(value)
  except ValueError:
    raise ValueError(f"Environment variable {name} must be an integer, got '{value}'")
