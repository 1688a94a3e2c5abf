# catalog/query_builder.py

from typing import List, Tuple
from sqlalchemy import func
from sqlmodel import Session, col, select

from catalog.db_models import ProductRecord
from catalog.models import PageRequest, ProductFilter
from catalog.logger import get_logger

log = get_logger(__name__)


def escape_like(value: str, escape: str = "\\") -> str:
  """Escape LIKE wildcards so the value matches literally."""
  return value.replace(escape, escape * 2).replace("%", f"{escape}%").replace("_", f"{escape}_")


def _apply_filter(statement, product_filter: ProductFilter):
  # Soft-deleted products are never listed
  statement = statement.where(col(ProductRecord.deleted_at).is_(None))

  if product_filter.name:
    statement = statement.where(col(ProductRecord.name).ilike(f"%{escape_like(product_filter.name)}%", escape="\\"))

  if product_filter.category:
    statement = statement.where(ProductRecord.category == product_filter.category)

  if product_filter.min_price is not None:
    statement = statement.where(col(ProductRecord.price) >= product_filter.min_price)

  if product_filter.max_price is not None:
    statement = statement.where(col(ProductRecord.price) <= product_filter.max_price)

  return statement


def build_filtered_statement(product_filter: ProductFilter):
  """Select over non-deleted products matching every supplied predicate."""
  return _apply_filter(select(ProductRecord), product_filter)


def query_products(session: Session, product_filter: ProductFilter, page_request: PageRequest) -> Tuple[List[ProductRecord], int]:
  """
  Run the filtered, paginated product query.

  Args:
    session (Session): Open database session
    product_filter (ProductFilter): name / category / price predicates
    page_request (PageRequest): page number and page size

  Returns:
    Tuple[List[ProductRecord], int]: records for the page (ordered by id) and total matches before pagination
  """
  count_statement = _apply_filter(select(func.count()).select_from(ProductRecord), product_filter)
  total = session.exec(count_statement).one()

  statement = (
    build_filtered_statement(product_filter)
    .order_by(col(ProductRecord.id).asc())
    .offset(page_request.offset)
    .limit(page_request.limit)
  )
  records = list(session.exec(statement).all())

  log.debug(f"Query matched {total} products, returning {len(records)} for page {page_request.page} (limit {page_request.limit})")
  return records, total
