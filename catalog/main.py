# catalog/main.py

from fastapi import FastAPI, Depends, Query, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from datetime import date
from pydantic import ValidationError
from sqlmodel import Session

from typing import List, Optional
from catalog.auth import require_bearer_token
from catalog.cache import PaginationCache, create_cache_store
from catalog.config import get_cache_backend, get_cache_ttl, get_redis_url, get_sync_interval
from catalog.database import init_db, get_db, get_session
from catalog.models import (CategoryReportItem, DeletedReport, NonDeletedReport, PageRequest,
                            PaginatedProducts, ProductFilter, SyncSummary)
from catalog.product_service import list_products, soft_delete_product
from catalog.report_service import category_report, deleted_report, non_deleted_report
from catalog.scheduler import SyncScheduler
from catalog.sync_service import sync_products
import catalog.exceptions as ex

from catalog.logger import configure_logging, get_logger
configure_logging()

log = get_logger(__name__)
log.info("FastAPI application is starting...")

@asynccontextmanager
async def lifespan(app:FastAPI):
  # Application startup
  init_db()

  store = create_cache_store(get_cache_backend(), get_redis_url())
  app.state.cache = PaginationCache(store, ttl=get_cache_ttl())

  scheduler = SyncScheduler(get_session, app.state.cache, get_sync_interval())
  scheduler.start()
  app.state.scheduler = scheduler

  yield

  # Application shutdown
  scheduler.stop()
  store.close()
  log.info("FastAPI application stopped")


app = FastAPI(title="Product Catalog",
              lifespan=lifespan,
              description="Paginated product catalog with a page cache, soft deletion, reports and Contentful synchronization.",
              version="1.0.0")


def get_cache(request: Request) -> PaginationCache:
  return request.app.state.cache


@app.get("/products", response_model=PaginatedProducts, dependencies=[Depends(require_bearer_token)])
def get_products(
  page: int = Query(1, description="Page number (starts at 1)", ge=1),
  limit: int = Query(5, description="Products per page (1-100)", ge=1, le=100),
  name: Optional[str] = Query(None, description="Case-insensitive name substring"),
  category: Optional[str] = Query(None, description="Exact category"),
  min_price: Optional[float] = Query(None, alias="minPrice", description="Minimum price (inclusive)", ge=0),
  max_price: Optional[float] = Query(None, alias="maxPrice", description="Maximum price (inclusive)", ge=0),
  session: Session = Depends(get_db),
  cache: PaginationCache = Depends(get_cache),
  ):
  """
  List non-deleted products matching the given filters, one page at a time.
  Identical requests are served from the cache for up to one hour or until a product changes.
  """
  log.info(f"/products endpoint called with page={page} limit={limit} name={name!r} category={category!r} minPrice={min_price} maxPrice={max_price}")
  try:
    product_filter = ProductFilter(name=name, category=category, min_price=min_price, max_price=max_price)
  except ValidationError as e:
    raise HTTPException(status_code=422, detail=[{"loc": err["loc"], "msg": err["msg"]} for err in e.errors()])

  return list_products(session, cache, product_filter, PageRequest(page=page, limit=limit))


@app.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_bearer_token)])
def delete_product(
  product_id: int,
  session: Session = Depends(get_db),
  cache: PaginationCache = Depends(get_cache),
  ):
  """Soft delete a product. Deleting it again is a no-op."""
  try:
    soft_delete_product(session, cache, product_id)
  except ex.ProductNotFoundError as e:
    raise HTTPException(status_code=404, detail=str(e))
  return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.post("/products/sync", response_model=SyncSummary, dependencies=[Depends(require_bearer_token)])
def trigger_sync(
  session: Session = Depends(get_db),
  cache: PaginationCache = Depends(get_cache),
  ):
  """Run one Contentful fetch-and-upsert pass now."""
  log.info("/products/sync endpoint called")
  return sync_products(session, cache)


@app.get("/reports/deleted", response_model=DeletedReport, dependencies=[Depends(require_bearer_token)])
def get_deleted_report(session: Session = Depends(get_db)):
  return deleted_report(session)


@app.get("/reports/non-deleted", response_model=NonDeletedReport, dependencies=[Depends(require_bearer_token)])
def get_non_deleted_report(
  start_date: Optional[date] = Query(None, description="First creation day included (YYYY-MM-DD)"),
  end_date: Optional[date] = Query(None, description="Last creation day included (YYYY-MM-DD)"),
  session: Session = Depends(get_db),
  ):
  if start_date is not None and end_date is not None and start_date > end_date:
    raise HTTPException(status_code=422, detail="start_date must be on or before end_date")
  return non_deleted_report(session, start_date, end_date)


@app.get("/reports/categories", response_model=List[CategoryReportItem], dependencies=[Depends(require_bearer_token)])
def get_category_report(session: Session = Depends(get_db)):
  return category_report(session)


@app.get("/")
def root():
  return {"messages": "Product Catalog API - endpoints: /products, /products/{id}, /products/sync, /reports/..."}


@app.get("/health")
def healthcheck():
  return {"status": "ok"}


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    log.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error"},
    )
