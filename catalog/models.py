# catalog/models.py

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Dict, List, Optional
from datetime import date, datetime


class Product(BaseModel):
  model_config = ConfigDict(from_attributes=True)

  id: int
  contentful_id: Optional[str] = None
  sku: Optional[str] = None
  name: str
  brand: Optional[str] = None
  model: Optional[str] = None
  category: Optional[str] = None
  color: Optional[str] = None
  price: Optional[float] = None
  currency: Optional[str] = None
  stock: Optional[int] = None
  created_at: datetime
  updated_at: datetime


class ProductFilter(BaseModel):
  """Optional listing predicates. Absent fields impose no constraint."""
  model_config = ConfigDict(populate_by_name=True)

  name: Optional[str] = None
  category: Optional[str] = None
  min_price: Optional[float] = Field(default=None, alias="minPrice", ge=0)
  max_price: Optional[float] = Field(default=None, alias="maxPrice", ge=0)

  @field_validator("name", "category")
  @classmethod
  def blank_is_unset(cls, value: Optional[str]) -> Optional[str]:
    # name= and category= filter nothing, same as leaving them out
    if value is not None and not value.strip():
      return None
    return value

  @model_validator(mode="after")
  def check_price_range(self):
    if self.min_price is not None and self.max_price is not None and self.min_price > self.max_price:
      raise ValueError("minPrice must be less than or equal to maxPrice")
    return self

  def canonical(self) -> Dict[str, object]:
    """Set fields only, keyed by field name. Used for cache keys."""
    return self.model_dump(exclude_none=True, by_alias=False)


class PageRequest(BaseModel):
  page: int = Field(default=1, ge=1)
  limit: int = Field(default=5, ge=1, le=100)

  @property
  def offset(self) -> int:
    return (self.page - 1) * self.limit


class PaginatedProducts(BaseModel):
  model_config = ConfigDict(populate_by_name=True)

  data: List[Product]
  total: int
  page: int
  limit: int
  total_pages: int = Field(alias="totalPages")


class SyncSummary(BaseModel):
  fetched: int = 0
  created: int = 0
  updated: int = 0
  unchanged: int = 0
  failed: int = 0
  errors: List[str] = Field(default_factory=list)


class DeletedReport(BaseModel):
  total: int
  deleted: int
  percentage: float


class NonDeletedReport(BaseModel):
  start_date: Optional[date] = None
  end_date: Optional[date] = None
  total: int
  non_deleted: int
  percentage: float
  with_price: int
  with_price_percentage: float
  without_price: int
  without_price_percentage: float


class CategoryReportItem(BaseModel):
  category: Optional[str] = None
  count: int
  average_price: Optional[float] = None
