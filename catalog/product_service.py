# catalog/product_service.py

import math
from sqlmodel import Session

from catalog.cache import PaginationCache
from catalog.db_models import ProductRecord, utc_now
from catalog.exceptions import ProductNotFoundError
from catalog.models import PageRequest, PaginatedProducts, Product, ProductFilter
from catalog.query_builder import query_products
from catalog.logger import get_logger

log = get_logger(__name__)


def list_products(session: Session, cache: PaginationCache, product_filter: ProductFilter, page_request: PageRequest) -> PaginatedProducts:
  """
  Return one page of non-deleted products matching the filter.
  Pages are served from the cache while valid; a miss queries the database and caches the result.

  Args:
    session (Session): Open database session
    cache (PaginationCache): Product page cache
    product_filter (ProductFilter): name / category / price predicates
    page_request (PageRequest): page number and page size

  Returns:
    PaginatedProducts: data, total, page, limit, totalPages
  """
  log.info(f"Listing products page={page_request.page} limit={page_request.limit} filter={product_filter.canonical()}")

  cached = cache.get(page_request, product_filter)
  if cached is not None:
    return cached

  records, total = query_products(session, product_filter, page_request)
  result = PaginatedProducts(
    data=[Product.model_validate(record) for record in records],
    total=total,
    page=page_request.page,
    limit=page_request.limit,
    total_pages=math.ceil(total / page_request.limit),
  )

  cache.put(page_request, product_filter, result)
  return result


def soft_delete_product(session: Session, cache: PaginationCache, product_id: int) -> None:
  """
  Mark a product deleted. Deleting an already deleted product keeps its original deletion time.

  Raises:
    ProductNotFoundError: no product with this id
  """
  record = session.get(ProductRecord, product_id)
  if record is None:
    log.warning(f"Soft delete requested for unknown product {product_id}")
    raise ProductNotFoundError(product_id)

  if record.deleted_at is not None:
    log.info(f"Product {product_id} already deleted at {record.deleted_at}")
  else:
    try:
      record.deleted_at = utc_now()
      record.updated_at = record.deleted_at
      session.add(record)
      session.commit()
      log.info(f"Soft deleted product {product_id}")
    except Exception as e:
      log.error(f"Error soft deleting product {product_id}: {e}")
      session.rollback()
      raise

  # Invalidate all cached pages on change
  cache.invalidate()
