"""Closed value sets shared by the schemas, the ORM columns and the API."""
from __future__ import annotations

from enum import StrEnum


class Role(StrEnum):
    USER = "user"
    ADMIN = "admin"


class Category(StrEnum):
    RENTAL = "Rental"
    GROCERIES = "Groceries"
    ENTERTAINMENT = "Entertainment"
    TRAVEL = "Travel"
    OTHERS = "Others"


class PaymentMode(StrEnum):
    UPI = "UPI"
    CREDIT_CARD = "Credit Card"
    NET_BANKING = "Net Banking"
    CASH = "Cash"


class DateFilter(StrEnum):
    """Relative windows accepted by the expense listing."""

    THIS_MONTH = "thisMonth"
    LAST_30_DAYS = "last30Days"
    LAST_90_DAYS = "last90Days"
    ALL_TIME = "allTime"


__all__ = ["Category", "DateFilter", "PaymentMode", "Role"]
