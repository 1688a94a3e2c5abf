# catalog/report_service.py

from datetime import date, datetime, time, timedelta
from typing import List, Optional

from sqlalchemy import func
from sqlmodel import Session, col, select

from catalog.db_models import ProductRecord
from catalog.models import CategoryReportItem, DeletedReport, NonDeletedReport
from catalog.logger import get_logger

log = get_logger(__name__)


def _percentage(part: int, whole: int) -> float:
  if not whole:
    return 0.0
  return round(part * 100 / whole, 2)


def _count(session: Session, *conditions) -> int:
  statement = select(func.count()).select_from(ProductRecord)
  for condition in conditions:
    statement = statement.where(condition)
  return session.exec(statement).one()


def deleted_report(session: Session) -> DeletedReport:
  """Share of all products that are soft-deleted"""
  total = _count(session)
  deleted = _count(session, col(ProductRecord.deleted_at).is_not(None))
  log.info(f"Deleted report: {deleted}/{total}")
  return DeletedReport(total=total, deleted=deleted, percentage=_percentage(deleted, total))


def non_deleted_report(session: Session, start_date: Optional[date] = None, end_date: Optional[date] = None) -> NonDeletedReport:
  """
  Share of non-deleted products among products created in [start_date, end_date],
  split into products with and without a price.

  Args:
    session (Session): Open database session
    start_date (Optional[date]): first creation day included
    end_date (Optional[date]): last creation day included
  """
  window = list()
  if start_date is not None:
    window.append(col(ProductRecord.created_at) >= datetime.combine(start_date, time.min))
  if end_date is not None:
    window.append(col(ProductRecord.created_at) < datetime.combine(end_date + timedelta(days=1), time.min))

  alive = col(ProductRecord.deleted_at).is_(None)
  total = _count(session, *window)
  non_deleted = _count(session, alive, *window)
  with_price = _count(session, alive, col(ProductRecord.price).is_not(None), *window)
  without_price = non_deleted - with_price

  log.info(f"Non-deleted report ({start_date} - {end_date}): {non_deleted}/{total}, with price {with_price}")
  return NonDeletedReport(
    start_date=start_date,
    end_date=end_date,
    total=total,
    non_deleted=non_deleted,
    percentage=_percentage(non_deleted, total),
    with_price=with_price,
    with_price_percentage=_percentage(with_price, non_deleted),
    without_price=without_price,
    without_price_percentage=_percentage(without_price, non_deleted),
  )


def category_report(session: Session) -> List[CategoryReportItem]:
  """Count and average price per category of non-deleted products"""
  statement = (
    select(ProductRecord.category, func.count(), func.avg(ProductRecord.price))
    .where(col(ProductRecord.deleted_at).is_(None))
    .group_by(ProductRecord.category)
    .order_by(col(ProductRecord.category).asc().nullslast())
  )
  rows = session.exec(statement).all()

  items = list()
  for category, count, average_price in rows:
    items.append(CategoryReportItem(
      category=category,
      count=count,
      average_price=round(float(average_price), 2) if average_price is not None else None,
    ))
  return items
