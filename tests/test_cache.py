# tests/test_cache.py

import logging
import pytest
from datetime import datetime, timezone
from unittest.mock import MagicMock

import catalog.product_service as product_service
from catalog.cache import CacheStore, InMemoryCacheStore, PaginationCache, RedisCacheStore, create_cache_store
from catalog.models import PageRequest, PaginatedProducts, ProductFilter
from catalog.product_service import list_products, soft_delete_product
from conftest import add_products


class FakeClock:
  def __init__(self):
    self.now = 1000.0

  def __call__(self):
    return self.now


class KeyValueOnlyStore(InMemoryCacheStore):
  """Store without key enumeration (memcached style)"""
  supports_enumeration = False

  def keys(self, prefix):
    raise NotImplementedError


class BrokenStore(CacheStore):
  def get(self, key):
    raise ConnectionError("cache down")

  def set(self, key, value, ttl=None):
    raise ConnectionError("cache down")

  def delete(self, *keys):
    raise ConnectionError("cache down")

  def keys(self, prefix):
    raise ConnectionError("cache down")


def _page(total=1):
  now = datetime.now(timezone.utc)
  return PaginatedProducts(
    data=[{"id": 1, "name": "Runner", "created_at": now, "updated_at": now}],
    total=total, page=1, limit=5, total_pages=1,
  )


def test_key_ignores_filter_field_order(cache):
  page = PageRequest(page=2, limit=10)
  first = ProductFilter.model_validate({"category": "shoes", "minPrice": 10, "name": "run"})
  second = ProductFilter.model_validate({"name": "run", "minPrice": 10.0, "category": "shoes"})

  assert cache.make_key(page, first) == cache.make_key(page, second)


def test_key_ignores_unset_fields(cache):
  page = PageRequest()
  assert cache.make_key(page, ProductFilter(name=None, category="shoes")) == cache.make_key(page, ProductFilter(category="shoes"))


@pytest.mark.parametrize("page_request, product_filter", [
  (PageRequest(page=2, limit=5), ProductFilter(category="shoes")),
  (PageRequest(page=1, limit=10), ProductFilter(category="shoes")),
  (PageRequest(page=1, limit=5), ProductFilter(category="boots")),
  (PageRequest(page=1, limit=5), ProductFilter(category="shoes", max_price=50)),
  (PageRequest(page=1, limit=5), ProductFilter()),
])
def test_key_changes_with_any_input(cache, page_request, product_filter):
  base = cache.make_key(PageRequest(page=1, limit=5), ProductFilter(category="shoes"))
  assert cache.make_key(page_request, product_filter) != base


def test_keys_live_under_namespace(cache):
  assert cache.make_key(PageRequest(), ProductFilter()).startswith("products:")


def test_put_then_get_returns_page(cache):
  page_request, product_filter = PageRequest(), ProductFilter(name="run")
  assert cache.get(page_request, product_filter) is None

  cache.put(page_request, product_filter, _page(total=7))
  cached = cache.get(page_request, product_filter)

  assert cached is not None
  assert cached.total == 7
  assert cached.data[0].name == "Runner"


def test_entries_expire_after_ttl():
  clock = FakeClock()
  cache = PaginationCache(InMemoryCacheStore(clock=clock), ttl=3600)
  cache.put(PageRequest(), ProductFilter(), _page())

  clock.now += 3599
  assert cache.get(PageRequest(), ProductFilter()) is not None

  clock.now += 1
  assert cache.get(PageRequest(), ProductFilter()) is None


def test_put_overwrites_existing_entry(cache):
  cache.put(PageRequest(), ProductFilter(), _page(total=1))
  cache.put(PageRequest(), ProductFilter(), _page(total=2))
  assert cache.get(PageRequest(), ProductFilter()).total == 2


def test_invalidate_removes_every_product_page(cache):
  for page in (1, 2, 3):
    cache.put(PageRequest(page=page), ProductFilter(category="shoes"), _page())
  cache.store.set("other:key", "kept", ttl=60)

  assert cache.invalidate() == 3
  for page in (1, 2, 3):
    assert cache.get(PageRequest(page=page), ProductFilter(category="shoes")) is None
  assert cache.store.get("other:key") == "kept"


def test_invalidate_without_enumeration_bumps_version():
  store = KeyValueOnlyStore()
  cache = PaginationCache(store)
  cache.put(PageRequest(), ProductFilter(), _page())
  old_key = cache.make_key(PageRequest(), ProductFilter())

  assert cache.invalidate() == 0

  assert cache.make_key(PageRequest(), ProductFilter()) != old_key
  assert cache.get(PageRequest(), ProductFilter()) is None
  # Old entry is unreachable and left to expire
  assert store.get(old_key) is not None


def test_store_failures_never_reach_caller(caplog):
  cache = PaginationCache(BrokenStore())
  with caplog.at_level(logging.WARNING):
    assert cache.get(PageRequest(), ProductFilter()) is None
    cache.put(PageRequest(), ProductFilter(), _page())
    assert cache.invalidate() == 0
  assert any("Failed to invalidate cache" in message for message in caplog.messages)


def test_undecodable_entry_is_a_miss(cache):
  key = cache.make_key(PageRequest(), ProductFilter())
  cache.store.set(key, '{"not": "a page"}', ttl=60)
  assert cache.get(PageRequest(), ProductFilter()) is None


def test_in_memory_keys_skip_expired_entries():
  clock = FakeClock()
  store = InMemoryCacheStore(clock=clock)
  store.set("products:a", "1", ttl=10)
  store.set("products:b", "2", ttl=100)
  store.set("products:version", "3")
  clock.now += 50

  assert sorted(store.keys("products:")) == ["products:b", "products:version"]
  assert store.delete("products:b", "missing") == 1


def test_redis_store_uses_scan_and_single_delete():
  client = MagicMock()
  client.scan_iter.return_value = iter(["products:1:5:{}", "products:2:5:{}"])
  client.delete.return_value = 2
  store = RedisCacheStore(client=client)

  store.set("products:1:5:{}", "{}", ttl=3600)
  client.set.assert_called_with("products:1:5:{}", "{}", ex=3600)

  assert store.delete_prefix("products:") == 2
  client.scan_iter.assert_called_once_with(match="products:*", count=500)
  client.delete.assert_called_once_with("products:1:5:{}", "products:2:5:{}")


def test_create_cache_store():
  assert isinstance(create_cache_store("memory"), InMemoryCacheStore)
  with pytest.raises(ValueError):
    create_cache_store("memcached")
  with pytest.raises(ValueError):
    create_cache_store("redis", redis_url="")


def test_second_identical_list_is_served_from_cache(session, cache, monkeypatch):
  add_products(session, 3, category="shoes", price=20.0)
  calls = list()
  real_query = product_service.query_products

  def counting_query(*args, **kwargs):
    calls.append(args)
    return real_query(*args, **kwargs)

  monkeypatch.setattr(product_service, "query_products", counting_query)

  first = list_products(session, cache, ProductFilter(category="shoes", max_price=30), PageRequest())
  second = list_products(session, cache, ProductFilter.model_validate({"maxPrice": 30, "category": "shoes"}), PageRequest())

  assert len(calls) == 1
  assert first.model_dump() == second.model_dump()


def test_soft_delete_makes_cached_pages_fresh(session, cache):
  records = add_products(session, 3, category="shoes")
  before = list_products(session, cache, ProductFilter(category="shoes"), PageRequest())
  assert before.total == 3

  soft_delete_product(session, cache, records[0].id)

  after = list_products(session, cache, ProductFilter(category="shoes"), PageRequest())
  assert after.total == 2
  assert records[0].id not in [p.id for p in after.data]


def test_in_memory_store_sweeps_expired_entries_on_write():
  clock = FakeClock()
  store = InMemoryCacheStore(clock=clock, sweep_interval=60)
  for i in range(1000):
    store.set(f"products:{i}:5:{{}}", "page", ttl=3600)
  assert len(store) == 1000

  clock.now += 10 * 3600
  for i in range(10):
    store.set(f"products:fresh-{i}", "page", ttl=3600)

  assert len(store) <= 10
  assert store.get("products:fresh-9") == "page"


def test_in_memory_sweep_keeps_live_and_persistent_entries():
  clock = FakeClock()
  store = InMemoryCacheStore(clock=clock, sweep_interval=60)
  store.set("products:old", "1", ttl=30)
  store.set("products:live", "2", ttl=3600)
  store.set("products:version", "4")

  clock.now += 61
  store.set("products:new", "3", ttl=3600)

  assert len(store) == 3
  assert store.get("products:old") is None
  assert store.get("products:version") == "4"


def test_blank_text_filters_share_key_with_unset(cache):
  page = PageRequest()
  assert cache.make_key(page, ProductFilter(name="", category="  ")) == cache.make_key(page, ProductFilter())
