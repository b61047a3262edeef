"""Qt-free helpers turning API payloads into table rows and labels."""

from __future__ import annotations

import calendar
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Sequence

from ..enums import Category, PaymentMode

CATEGORIES: tuple[str, ...] = tuple(category.value for category in Category)
PAYMENT_MODES: tuple[str, ...] = tuple(mode.value for mode in PaymentMode)
DATE_FILTERS: tuple[tuple[str, str], ...] = (
    ("allTime", "All Time"),
    ("thisMonth", "This Month"),
    ("last30Days", "Last 30 Days"),
    ("last90Days", "Last 90 Days"),
)
EXPENSE_COLUMNS: tuple[str, ...] = ("Date", "Category", "Payment mode", "Notes", "Amount (₹)")
CURRENCY = "₹"


def to_decimal(value: Any) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal(0)


def format_amount(value: Any) -> str:
    return f"{CURRENCY}{to_decimal(value):,.2f}"


def format_date(value: str) -> str:
    """Render an ISO timestamp from the API as ``YYYY-MM-DD``."""

    try:
        return datetime.fromisoformat(value).strftime("%Y-%m-%d")
    except (TypeError, ValueError):
        return str(value)


def expense_rows(expenses: Iterable[Mapping[str, Any]]) -> list[tuple[int, list[str]]]:
    """Return ``(expense_id, cells)`` pairs in :data:`EXPENSE_COLUMNS` order."""

    rows = []
    for expense in expenses:
        cells = [
            format_date(expense.get("date", "")),
            str(expense.get("category", "")),
            str(expense.get("paymentMode", "")),
            str(expense.get("notes") or ""),
            format_amount(expense.get("amount", 0)),
        ]
        rows.append((int(expense["id"]), cells))
    return rows


def page_label(pagination: Mapping[str, Any]) -> str:
    total_pages = max(int(pagination.get("totalPages", 0)), 1)
    return (
        f"Page {pagination.get('currentPage', 1)} of {total_pages}"
        f" · {pagination.get('totalRecords', 0)} expenses"
    )


def summary_text(analytics: Mapping[str, Any]) -> str:
    summary = analytics.get("summary", {})
    return (
        f"Total: {format_amount(summary.get('totalExpenses', 0))}"
        f"   Transactions: {summary.get('totalTransactions', 0)}"
        f"   Average: {format_amount(summary.get('avgExpense', 0))}"
    )


def breakdown_rows(analytics: Mapping[str, Any]) -> list[list[str]]:
    return [
        [str(item["category"]), str(item["count"]), format_amount(item["totalAmount"])]
        for item in analytics.get("categoryBreakdown", [])
    ]


def monthly_rows(analytics: Mapping[str, Any]) -> list[list[str]]:
    rows = []
    for bucket in analytics.get("monthlyData", []):
        label = f"{calendar.month_abbr[int(bucket['month'])]} {bucket['year']}"
        parts = ", ".join(
            f"{item['category']} {format_amount(item['amount'])}" for item in bucket.get("categories", [])
        )
        rows.append([label, parts, format_amount(bucket.get("totalAmount", 0))])
    return rows


def selected_values(flags: Sequence[tuple[str, bool]]) -> list[str]:
    return [value for value, checked in flags if checked]
