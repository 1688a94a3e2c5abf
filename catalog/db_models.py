# catalog/db_models.py

from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime, timezone


def utc_now() -> datetime:
  return datetime.now(timezone.utc)


class ProductRecord(SQLModel, table=True):
  """Product row. deleted_at marks a soft-deleted product."""
  __tablename__ = "product"
  __table_args__ = {"extend_existing": True}

  id: Optional[int] = Field(default=None, primary_key=True)
  # One row per Contentful entry, soft-deleted rows included
  contentful_id: Optional[str] = Field(default=None, unique=True, index=True)
  sku: Optional[str] = None
  name: str
  brand: Optional[str] = None
  model: Optional[str] = None
  category: Optional[str] = Field(default=None, index=True)
  color: Optional[str] = None
  price: Optional[float] = None
  currency: Optional[str] = None
  stock: Optional[int] = None
  created_at: datetime = Field(default_factory=utc_now, index=True)
  updated_at: datetime = Field(default_factory=utc_now)
  deleted_at: Optional[datetime] = Field(default=None, index=True)


# Fields a sync pass is allowed to overwrite
MUTABLE_FIELDS = ("sku", "name", "brand", "model", "category", "color", "price", "currency", "stock")
