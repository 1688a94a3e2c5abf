# catalog/cache.py

import json
import threading
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Tuple

import redis
from pydantic import ValidationError

from catalog.models import PageRequest, PaginatedProducts, ProductFilter
from catalog.logger import get_logger

log = get_logger(__name__)

PRODUCT_NAMESPACE = "products"


class CacheStore(ABC):
  """
  Minimal key/value store used by the pagination cache.
  Values are strings. ttl=None stores without expiry.
  """
  # Whether keys(prefix) can list live keys
  supports_enumeration: bool = False

  @abstractmethod
  def get(self, key: str) -> Optional[str]:
    ...

  @abstractmethod
  def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
    ...

  @abstractmethod
  def delete(self, *keys: str) -> int:
    ...

  def keys(self, prefix: str) -> List[str]:
    raise NotImplementedError(f"{type(self).__name__} cannot enumerate keys")

  def delete_prefix(self, prefix: str) -> int:
    keys = self.keys(prefix)
    return self.delete(*keys) if keys else 0

  def close(self) -> None:
    pass


class InMemoryCacheStore(CacheStore):
  """
  Process local store. Expired entries are dropped on access, and writes sweep
  the whole dict at most once per `sweep_interval` seconds.
  """
  supports_enumeration = True

  def __init__(self, clock: Callable[[], float] = time.monotonic, sweep_interval: float = 60):
    self._clock = clock
    self._lock = threading.Lock()
    self._entries: Dict[str, Tuple[str, Optional[float]]] = {}
    self.sweep_interval = sweep_interval
    self._next_sweep = clock() + sweep_interval

  def _expired(self, expires_at: Optional[float]) -> bool:
    return expires_at is not None and expires_at <= self._clock()

  def _purge_expired(self) -> int:
    # Caller holds the lock
    expired = [key for key, (_, expires_at) in self._entries.items() if self._expired(expires_at)]
    for key in expired:
      del self._entries[key]
    return len(expired)

  def get(self, key: str) -> Optional[str]:
    with self._lock:
      entry = self._entries.get(key)
      if entry is None:
        return None
      value, expires_at = entry
      if self._expired(expires_at):
        del self._entries[key]
        return None
      return value

  def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
    now = self._clock()
    expires_at = now + ttl if ttl is not None else None
    with self._lock:
      if now >= self._next_sweep:
        purged = self._purge_expired()
        self._next_sweep = now + self.sweep_interval
        if purged:
          log.debug(f"Purged {purged} expired cache entries")
      self._entries[key] = (value, expires_at)

  def __len__(self) -> int:
    with self._lock:
      return len(self._entries)

  def delete(self, *keys: str) -> int:
    removed = 0
    with self._lock:
      for key in keys:
        if self._entries.pop(key, None) is not None:
          removed += 1
    return removed

  def keys(self, prefix: str) -> List[str]:
    with self._lock:
      self._purge_expired()
      return [key for key in self._entries if key.startswith(prefix)]

  def delete_prefix(self, prefix: str) -> int:
    """Enumerate and delete under one lock so readers never see a half-cleared namespace."""
    with self._lock:
      doomed = [key for key in self._entries if key.startswith(prefix)]
      for key in doomed:
        del self._entries[key]
      return len(doomed)

  def clear(self) -> None:
    with self._lock:
      self._entries.clear()


class RedisCacheStore(CacheStore):
  """Redis backed store. Enumeration uses SCAN, bulk removal a single DEL."""
  supports_enumeration = True

  def __init__(self, redis_url: str = None, client: redis.Redis = None):
    if client is None:
      client = redis.Redis.from_url(
        redis_url,
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
        retry_on_timeout=True,
      )
    self.client = client

  def get(self, key: str) -> Optional[str]:
    return self.client.get(key)

  def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
    if ttl is None:
      self.client.set(key, value)
    else:
      self.client.set(key, value, ex=ttl)

  def delete(self, *keys: str) -> int:
    if not keys:
      return 0
    return int(self.client.delete(*keys))

  def keys(self, prefix: str) -> List[str]:
    return list(self.client.scan_iter(match=f"{prefix}*", count=500))

  def close(self) -> None:
    self.client.close()


def create_cache_store(backend: str = "memory", redis_url: str = None) -> CacheStore:
  """
  Build the cache store selected by configuration.

  Args:
    backend (str): 'memory' or 'redis'
    redis_url (str): connection url, required for 'redis'
  """
  if backend == "memory":
    log.info("Using in-memory cache store")
    return InMemoryCacheStore()
  if backend == "redis":
    if not redis_url:
      raise ValueError("REDIS_URL is required for the redis cache backend")
    log.info("Using redis cache store")
    return RedisCacheStore(redis_url)
  raise ValueError(f"Unknown cache backend '{backend}'. Use 'memory' or 'redis'.")


class PaginationCache:
  """
  Memoizes product pages by (page, limit, filter) with a fixed TTL.

  Stores that can enumerate keys are invalidated by deleting every key under the namespace.
  Other stores get keys under a versioned prefix; invalidation bumps the version so old
  pages become unreachable and expire on their own TTL.
  """

  def __init__(self, store: CacheStore, namespace: str = PRODUCT_NAMESPACE, ttl: int = 3600):
    self.store = store
    self.namespace = namespace
    self.ttl = ttl
    self.version_key = f"{namespace}:version"

  def _prefix(self) -> str:
    if self.store.supports_enumeration:
      return f"{self.namespace}:"
    version = self.store.get(self.version_key) or "0"
    return f"{self.namespace}:v{version}:"

  def make_key(self, page_request: PageRequest, product_filter: ProductFilter) -> str:
    """Same page, limit and filter values always give the same key, whatever the field order."""
    filter_part = json.dumps(product_filter.canonical(), sort_keys=True, separators=(",", ":"))
    return f"{self._prefix()}{page_request.page}:{page_request.limit}:{filter_part}"

  def get(self, page_request: PageRequest, product_filter: ProductFilter) -> Optional[PaginatedProducts]:
    try:
      key = self.make_key(page_request, product_filter)
      raw = self.store.get(key)
    except Exception as e:
      log.warning(f"Cache read failed, treating as miss: {e}")
      return None

    if raw is None:
      log.debug(f"Cache miss for key: {key}")
      return None

    try:
      page = PaginatedProducts.model_validate_json(raw)
    except ValidationError as e:
      log.warning(f"Discarding undecodable cache entry {key}: {e}")
      return None

    log.info(f"Returning cached data for key: {key}")
    return page

  def put(self, page_request: PageRequest, product_filter: ProductFilter, page: PaginatedProducts) -> None:
    try:
      key = self.make_key(page_request, product_filter)
      self.store.set(key, page.model_dump_json(by_alias=True), ttl=self.ttl)
      log.debug(f"Cached page under key: {key} (ttl {self.ttl}s)")
    except Exception as e:
      log.warning(f"Cache write failed: {e}")

  def invalidate(self) -> int:
    """
    Drop every cached page in the namespace.

    Returns:
      int: number of entries removed (versioned stores report 0, their entries expire)
    """
    try:
      if self.store.supports_enumeration:
        removed = self.store.delete_prefix(f"{self.namespace}:")
        log.info(f"Invalidated {removed} cache entries", extra={"context": {"namespace": self.namespace, "removed": removed}})
        return removed

      version = int(self.store.get(self.version_key) or 0) + 1
      self.store.set(self.version_key, str(version), ttl=None)
      log.info(f"Cache store cannot enumerate keys, bumped {self.namespace} cache version to {version}")
      return 0
    except Exception as e:
      log.warning(f"Failed to invalidate cache: {e}")
      return 0
