"""Owner-scoped expense CRUD, filtered listing and analytics."""
from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from itertools import groupby
from typing import Any, List, Optional

from sqlalchemy import extract, func, select
from sqlalchemy.orm import Session

from . import errors, models, schemas
from .enums import DateFilter

LOG = logging.getLogger(__name__)

_CENT = Decimal("0.01")
# Signed 64-bit range of integer primary keys.
MIN_ID = -(2**63)
MAX_ID = 2**63 - 1
_ROLLING_WINDOWS = {
    DateFilter.LAST_30_DAYS: timedelta(days=30),
    DateFilter.LAST_90_DAYS: timedelta(days=90),
}


def date_cutoff(date_filter: Optional[DateFilter], now: datetime) -> Optional[datetime]:
    """Return the earliest expense date admitted by ``date_filter``, if any."""

    if date_filter is None or date_filter is DateFilter.ALL_TIME:
        return None
    if date_filter is DateFilter.THIS_MONTH:
        return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    return now - _ROLLING_WINDOWS[date_filter]


def _filter_conditions(
    owner_id: int,
    filters: schemas.ExpenseFilters,
    now: datetime,
) -> List[Any]:
    conditions: List[Any] = [models.Expense.owner_id == owner_id]
    cutoff = date_cutoff(filters.date_filter, now)
    if cutoff is not None:
        conditions.append(models.Expense.date >= cutoff)
    if filters.categories:
        conditions.append(models.Expense.category.in_(filters.categories))
    if filters.payment_modes:
        conditions.append(models.Expense.payment_mode.in_(filters.payment_modes))
    return conditions


def list_expenses(
    session: Session,
    owner_id: int,
    filters: Optional[schemas.ExpenseFilters] = None,
    page: int = 1,
    page_size: int = 20,
    *,
    now: Optional[datetime] = None,
) -> schemas.ExpensePage:
    if page < 1 or page_size < 1:
        raise errors.ValidationError("Page and page size must be positive integers")
    conditions = _filter_conditions(owner_id, filters or schemas.ExpenseFilters(), now or models.utcnow())

    total = session.scalar(select(func.count(models.Expense.id)).where(*conditions)) or 0
    offset = (page - 1) * page_size
    items: List[schemas.ExpenseRead] = []
    # Pages past the end never reach the database; huge offsets overflow the driver.
    if offset < total:
        stmt = (
            select(models.Expense)
            .where(*conditions)
            .order_by(models.Expense.date.desc(), models.Expense.id.desc())
            .offset(offset)
            .limit(page_size)
        )
        items = [schemas.ExpenseRead.model_validate(expense) for expense in session.scalars(stmt)]
    return schemas.ExpensePage(
        items=items,
        pagination=schemas.Pagination(
            current_page=page,
            total_pages=math.ceil(total / page_size),
            count=len(items),
            total_records=total,
        ),
    )


def get_expense(session: Session, owner_id: int, expense_id: int) -> models.Expense:
    # Expenses of other users are reported exactly like missing ones.
    if not MIN_ID <= expense_id <= MAX_ID:
        raise errors.EntityNotFoundError()
    stmt = select(models.Expense).where(
        models.Expense.id == expense_id,
        models.Expense.owner_id == owner_id,
    )
    expense = session.scalars(stmt).first()
    if expense is None:
        raise errors.EntityNotFoundError()
    return expense


def create_expense(session: Session, owner_id: int, expense_in: schemas.ExpenseCreate) -> models.Expense:
    data = expense_in.model_dump(exclude_unset=True, exclude_none=True)
    expense = models.Expense(owner_id=owner_id, **data)
    session.add(expense)
    session.flush()
    session.refresh(expense)
    LOG.info("Expense created", extra={"user_id": owner_id, "expense_id": expense.id})
    return expense


def update_expense(
    session: Session,
    owner_id: int,
    expense_id: int,
    update_in: schemas.ExpenseUpdate,
) -> models.Expense:
    expense = get_expense(session, owner_id, expense_id)
    for field, value in schemas.project(update_in, schemas.EXPENSE_FIELDS).items():
        setattr(expense, field, value)
    session.flush()
    session.refresh(expense)
    LOG.info("Expense updated", extra={"user_id": owner_id, "expense_id": expense_id})
    return expense


def delete_expense(session: Session, owner_id: int, expense_id: int) -> None:
    expense = get_expense(session, owner_id, expense_id)
    session.delete(expense)
    session.flush()
    LOG.info("Expense deleted", extra={"user_id": owner_id, "expense_id": expense_id})


def _monthly_data(session: Session, owner_id: int) -> List[schemas.MonthlyBucket]:
    year = extract("year", models.Expense.date).label("year")
    month = extract("month", models.Expense.date).label("month")
    stmt = (
        select(
            year,
            month,
            models.Expense.category,
            func.sum(models.Expense.amount).label("total"),
            func.count(models.Expense.id).label("transactions"),
        )
        .where(models.Expense.owner_id == owner_id)
        .group_by(year, month, models.Expense.category)
        .order_by(year, month, models.Expense.category)
    )
    buckets: List[schemas.MonthlyBucket] = []
    for (bucket_year, bucket_month), rows in groupby(
        session.execute(stmt), key=lambda row: (int(row.year), int(row.month))
    ):
        categories = [
            schemas.CategoryAmount(category=row.category, amount=Decimal(row.total), count=row.transactions)
            for row in rows
        ]
        buckets.append(
            schemas.MonthlyBucket(
                year=bucket_year,
                month=bucket_month,
                categories=categories,
                total_amount=sum((item.amount for item in categories), Decimal(0)),
            )
        )
    return buckets


def _summary(session: Session, owner_id: int) -> schemas.AnalyticsSummary:
    stmt = select(
        func.coalesce(func.sum(models.Expense.amount), 0),
        func.count(models.Expense.id),
    ).where(models.Expense.owner_id == owner_id)
    total_value, count = session.execute(stmt).one()
    if not count:
        return schemas.AnalyticsSummary()
    total = Decimal(total_value)
    average = (total / count).quantize(_CENT, rounding=ROUND_HALF_UP)
    return schemas.AnalyticsSummary(total_expenses=total, total_transactions=count, avg_expense=average)


def _category_breakdown(session: Session, owner_id: int) -> List[schemas.CategoryTotal]:
    total = func.sum(models.Expense.amount).label("total")
    stmt = (
        select(models.Expense.category, total, func.count(models.Expense.id).label("transactions"))
        .where(models.Expense.owner_id == owner_id)
        .group_by(models.Expense.category)
        .order_by(total.desc(), models.Expense.category)
    )
    return [
        schemas.CategoryTotal(category=row.category, total_amount=Decimal(row.total), count=row.transactions)
        for row in session.execute(stmt)
    ]


def expense_analytics(session: Session, owner_id: int) -> schemas.AnalyticsRead:
    return schemas.AnalyticsRead(
        monthly_data=_monthly_data(session, owner_id),
        summary=_summary(session, owner_id),
        category_breakdown=_category_breakdown(session, owner_id),
    )
