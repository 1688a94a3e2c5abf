# catalog/scheduler.py

import threading
from typing import Callable

from sqlmodel import Session

from catalog.cache import PaginationCache
from catalog.sync_service import sync_products
from catalog.logger import get_logger

log = get_logger(__name__)


class SyncScheduler:
  """Runs a Contentful sync pass every `interval` seconds on a daemon thread."""

  def __init__(self, session_factory: Callable[[], Session], cache: PaginationCache, interval: int):
    self.session_factory = session_factory
    self.cache = cache
    self.interval = interval
    self._stop = threading.Event()
    self._thread = None

  def run_once(self):
    session = self.session_factory()
    try:
      return sync_products(session, self.cache)
    finally:
      session.close()

  def _loop(self):
    log.info(f"Sync scheduler started (every {self.interval}s)")
    # First pass after one interval, the app starts from what is already stored
    while not self._stop.wait(self.interval):
      try:
        self.run_once()
      except Exception as e:
        # sync_products absorbs its own errors, this only guards session setup
        log.error(f"Scheduled sync failed: {e}", exc_info=True)
    log.info("Sync scheduler stopped")

  def start(self):
    if self.interval <= 0:
      log.info("Sync scheduler disabled (SYNC_INTERVAL_SECONDS <= 0)")
      return
    if self._thread is not None and self._thread.is_alive():
      return
    self._stop.clear()
    self._thread = threading.Thread(target=self._loop, name="contentful-sync", daemon=True)
    self._thread.start()

  def stop(self, timeout: float = 5.0):
    self._stop.set()
    if self._thread is not None:
      self._thread.join(timeout)
      self._thread = None

  @property
  def running(self) -> bool:
    return self._thread is not None and self._thread.is_alive()
