# catalog/contentful.py

import os
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
from pydantic import BaseModel

from catalog.logger import get_logger
import catalog.exceptions as ex

# Get the logger for this module. Its name will be 'catalog.contentful'.
log = get_logger(__name__)

DEFAULT_BASE_URL = "https://cdn.contentful.com"


class ContentfulSettings(BaseModel):
  space_id: str
  environment: str = "master"
  access_token: str
  content_type: str = "product"
  base_url: str = DEFAULT_BASE_URL
  page_size: int = 100
  timeout: float = 10.0

  @classmethod
  def from_env(cls) -> "ContentfulSettings":
    """Reads CONTENTFUL_* variables. Raises ContentSourceConfigError when required ones are missing."""
    space_id = os.getenv("CONTENTFUL_SPACE_ID")
    access_token = os.getenv("CONTENTFUL_ACCESS_TOKEN")
    missing = [name for name, value in (("CONTENTFUL_SPACE_ID", space_id), ("CONTENTFUL_ACCESS_TOKEN", access_token)) if not value]
    if missing:
      raise ex.ContentSourceConfigError(f"Missing Contentful configuration: {', '.join(missing)}")

    try:
      return cls(
        space_id=space_id,
        environment=os.getenv("CONTENTFUL_ENVIRONMENT", "master"),
        access_token=access_token,
        content_type=os.getenv("CONTENTFUL_CONTENT_TYPE", "product"),
        base_url=os.getenv("CONTENTFUL_BASE_URL", DEFAULT_BASE_URL),
        page_size=int(os.getenv("CONTENTFUL_PAGE_SIZE", "100")),
        timeout=float(os.getenv("CONTENTFUL_TIMEOUT", "10")),
      )
    except ValueError as e:
      raise ex.ContentSourceConfigError(f"Invalid Contentful configuration: {e}")


def build_session(retries: int = 3, backoff_factor: float = 1) -> requests.Session:
  """Session with retry strategy mounted for HTTP and HTTPS"""
  session = requests.Session()
  retry = Retry(total=retries, backoff_factor=backoff_factor, status_forcelist=[429, 500, 502, 503, 504], allowed_methods=["GET"])
  session.mount("https://", HTTPAdapter(max_retries=retry))
  session.mount("http://", HTTPAdapter(max_retries=retry))
  return session


class ContentfulClient:
  """Read-only client for the Contentful Content Delivery API entries endpoint."""

  def __init__(self, settings: ContentfulSettings, session: Optional[requests.Session] = None):
    self.settings = settings
    self.session = session or build_session()

  @property
  def entries_url(self) -> str:
    s = self.settings
    return f"{s.base_url.rstrip('/')}/spaces/{s.space_id}/environments/{s.environment}/entries"

  def _get_page(self, skip: int) -> Dict[str, Any]:
    params = {
      "content_type": self.settings.content_type,
      "skip": skip,
      "limit": self.settings.page_size,
      "order": "sys.createdAt",
    }
    headers = {"Authorization": f"Bearer {self.settings.access_token}"}

    try:
      response = self.session.get(self.entries_url, params=params, headers=headers, timeout=self.settings.timeout)
      response.raise_for_status()
    except requests.exceptions.Timeout as e:
      log.error(f"[CONTENTFUL] Timeout error while fetching entries (skip={skip}). Exception: {e}")
      raise ex.ContentSourceTimeoutError(f"Request timed out while fetching entries (skip={skip}).")
    except requests.exceptions.ConnectionError as e:
      log.error(f"[CONTENTFUL] Connection error while fetching entries (skip={skip}). Exception: {e}")
      raise ex.ContentSourceConnectionError(f"Connection error while fetching entries (skip={skip}). Please check your network.")
    except requests.exceptions.HTTPError as e:
      status_code = e.response.status_code if e.response is not None else None
      log.error(f"[CONTENTFUL] HTTP error {status_code} while fetching entries (skip={skip}). Exception: {e}")
      raise ex.ContentSourceHTTPError(status_code=status_code, message=f"Returned HTTP {status_code} for entries (skip={skip})")
    except requests.exceptions.RequestException as e:
      log.error(f"[CONTENTFUL] Request failed while fetching entries (skip={skip}). Exception: {e}")
      raise ex.ContentSourceException(f"Generic request failure while fetching entries (skip={skip}): {e}")

    try:
      payload = response.json()
    except ValueError as e:
      raise ex.ContentSourceException(f"Invalid JSON returned for entries (skip={skip}): {e}")

    if not isinstance(payload, dict) or not isinstance(payload.get("items"), list):
      raise ex.ContentSourceException(f"Unexpected entries payload (skip={skip})")
    return payload

  def fetch_entries(self) -> List[Dict[str, Any]]:
    """
    Fetch every entry of the configured content type, page by page.

    A failure on the first page is raised. A failure on a later page is logged and
    the entries fetched so far are returned.

    Returns:
      List[Dict]: raw Contentful entries
    """
    log.info(f"Fetching '{self.settings.content_type}' entries from Contentful space {self.settings.space_id}")

    entries = list()
    skip = 0
    while True:
      try:
        payload = self._get_page(skip)
      except ex.ContentSourceException:
        if skip == 0:
          raise
        log.warning(f"Stopping fetch at skip={skip} due to error, continuing with {len(entries)} entries")
        break

      items = payload["items"]
      entries.extend(items)
      total = payload.get("total", len(entries))
      log.debug(f"Fetched {len(items)} entries (skip={skip}, total={total})")

      skip += len(items)
      if not items or skip >= total:
        break

    log.info(f"Fetched {len(entries)} entries from Contentful")
    return entries

  def close(self):
    self.session.close()


def _optional_number(fields: Dict[str, Any], name: str, cast):
  value = fields.get(name)
  if value is None or value == "":
    return None
  if isinstance(value, bool):
    raise ex.ContentMappingError(f"Field '{name}' must be numeric, got {value!r}")
  try:
    return cast(value)
  except (TypeError, ValueError):
    raise ex.ContentMappingError(f"Field '{name}' must be numeric, got {value!r}")


def map_entry(entry: Dict[str, Any]) -> Dict[str, Any]:
  """
  Map a Contentful entry to product fields.

  Returns:
    Dict: contentful_id plus the mutable product fields

  Raises:
    ContentMappingError: missing sys.id or name, or a non numeric price/stock
  """
  if not isinstance(entry, dict):
    raise ex.ContentMappingError(f"Entry must be an object, got {type(entry).__name__}")

  sys_block = entry.get("sys") or {}
  if not isinstance(sys_block, dict):
    raise ex.ContentMappingError(f"Entry sys must be an object, got {type(sys_block).__name__}")

  entry_id = sys_block.get("id")
  if not entry_id or not isinstance(entry_id, str):
    raise ex.ContentMappingError("Entry has no sys.id")

  fields = entry.get("fields") or {}
  if not isinstance(fields, dict):
    raise ex.ContentMappingError(f"Entry {entry_id} fields must be an object, got {type(fields).__name__}")

  name = fields.get("name")
  if not name:
    raise ex.ContentMappingError(f"Entry {entry_id} has no name")

  mapped = {
    "contentful_id": entry_id,
    "sku": fields.get("sku"),
    "name": name,
    "brand": fields.get("brand"),
    "model": fields.get("model"),
    "category": fields.get("category"),
    "color": fields.get("color"),
    "price": _optional_number(fields, "price", float),
    "currency": fields.get("currency"),
    "stock": _optional_number(fields, "stock", lambda v: int(float(v))),
  }
  return mapped
