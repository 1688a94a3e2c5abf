# catalog/sync_service.py

from typing import Any, Dict, Optional
from sqlmodel import Session, select

from catalog.cache import PaginationCache
from catalog.contentful import ContentfulClient, ContentfulSettings, map_entry
from catalog.db_models import MUTABLE_FIELDS, ProductRecord, utc_now
from catalog.models import SyncSummary
from catalog.logger import get_logger
import catalog.exceptions as ex

log = get_logger(__name__)


def _upsert(session: Session, fields: Dict[str, Any]) -> str:
  """
  Create or update the product for one mapped entry.
  Soft-deleted products are updated in place and stay deleted.

  Returns:
    str: 'created', 'updated' or 'unchanged'
  """
  statement = select(ProductRecord).where(ProductRecord.contentful_id == fields["contentful_id"])
  existing = session.exec(statement).first()

  if existing is None:
    session.add(ProductRecord(**fields))
    session.commit()
    return "created"

  changed = [name for name in MUTABLE_FIELDS if getattr(existing, name) != fields[name]]
  if not changed:
    return "unchanged"

  for name in changed:
    setattr(existing, name, fields[name])
  existing.updated_at = utc_now()
  session.add(existing)
  session.commit()
  log.debug(f"Updated product {existing.id} ({fields['contentful_id']}) fields: {changed}")
  return "updated"


def sync_products(session: Session, cache: PaginationCache, client: Optional[ContentfulClient] = None) -> SyncSummary:
  """
  Pull every product entry from Contentful and upsert it by contentful_id.

  One bad entry is logged and skipped, the rest of the batch still runs.
  This function never raises: failures are logged and reported in the summary.

  Args:
    session (Session): Open database session
    cache (PaginationCache): Product page cache, invalidated after the upsert loop
    client (ContentfulClient): Optional client, built from the environment when omitted

  Returns:
    SyncSummary: fetched / created / updated / unchanged / failed counts and error messages
  """
  log.info("Fetching products from Contentful...")
  summary = SyncSummary()

  owns_client = client is None
  try:
    if client is None:
      client = ContentfulClient(ContentfulSettings.from_env())
    entries = client.fetch_entries()
  except ex.ContentSourceException as e:
    log.error(f"Error fetching from Contentful: {e}")
    summary.errors.append(str(e))
    return summary
  except Exception as e:
    log.error(f"Unexpected error fetching from Contentful: {e}", exc_info=True)
    summary.errors.append(f"Unexpected error: {e}")
    return summary
  finally:
    if owns_client and client is not None:
      client.close()

  summary.fetched = len(entries)

  try:
    for idx, entry in enumerate(entries):
      try:
        fields = map_entry(entry)
      except ex.ContentMappingError as e:
        log.warning(f"Skipping entry #{idx + 1}: {e}")
        summary.failed += 1
        summary.errors.append(str(e))
        continue
      except Exception as e:
        log.error(f"Unexpected error mapping entry #{idx + 1}: {e}", exc_info=True)
        summary.failed += 1
        summary.errors.append(f"Entry #{idx + 1}: {e}")
        continue

      try:
        outcome = _upsert(session, fields)
      except Exception as e:
        log.error(f"Error persisting entry {fields['contentful_id']}: {e}")
        session.rollback()
        summary.failed += 1
        summary.errors.append(f"{fields['contentful_id']}: {e}")
        continue

      if outcome == "created":
        summary.created += 1
      elif outcome == "updated":
        summary.updated += 1
      else:
        summary.unchanged += 1
  finally:
    # Invalidate cached pages after any progress, partial included
    cache.invalidate()

  log.info("Sync finished", extra={"context": summary.model_dump(exclude={"errors"})})
  return summary
