"""Pydantic schemas for validating and serialising expense tracker data.

Every schema speaks camelCase on the wire (``paymentMode``, ``createdAt``) and
also accepts the snake_case field names on input. Unknown input fields are
ignored rather than rejected.
"""
from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from typing import Annotated, Any, Final, Iterable, List, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    EmailStr,
    Field,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .enums import Category, DateFilter, PaymentMode, Role


PROFILE_FIELDS: Final[frozenset[str]] = frozenset({"name", "profile_picture"})
EXPENSE_FIELDS: Final[frozenset[str]] = frozenset(
    {"amount", "category", "notes", "date", "payment_mode"}
)


class APIModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ORMModel(APIModel):
    model_config = ConfigDict(from_attributes=True)


def project(model: BaseModel, allowed: Iterable[str]) -> dict[str, Any]:
    """Return the explicitly submitted fields of ``model`` named in ``allowed``."""

    permitted = set(allowed)
    return {
        field: value
        for field, value in model.model_dump(exclude_unset=True).items()
        if field in permitted
    }


def _to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is not None:
        return value.astimezone(UTC).replace(tzinfo=None)
    return value


def _normalise_email(value: object) -> object:
    if isinstance(value, str):
        return value.strip().lower()
    return value


def _strip_name(value: object) -> object:
    if isinstance(value, str):
        return value.strip()
    return value


Email = Annotated[EmailStr, BeforeValidator(_normalise_email)]
DisplayName = Annotated[str, BeforeValidator(_strip_name), Field(min_length=2, max_length=50)]
UTCDateTime = Annotated[datetime, AfterValidator(_to_naive_utc)]


# ---------------------------------------------------------------------------
# Users and authentication


class UserCreate(APIModel):
    name: DisplayName
    email: Email
    password: str = Field(..., min_length=6, max_length=128)


class UserLogin(APIModel):
    email: Email
    password: str = Field(..., min_length=1)


class ProfileUpdate(APIModel):
    name: Optional[DisplayName] = None
    profile_picture: Optional[str] = Field(None, max_length=500)


class PasswordChange(APIModel):
    old_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)


class UserRead(ORMModel):
    id: int
    name: str
    email: str
    role: Role
    profile_picture: Optional[str] = None
    last_login: Optional[datetime] = None
    created_at: datetime


class AuthResult(APIModel):
    token: str
    user: UserRead


class TokenRead(APIModel):
    token: str


class MessageRead(APIModel):
    message: str


# ---------------------------------------------------------------------------
# Expenses


class ExpenseBase(APIModel):
    amount: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    category: Category
    notes: str = Field("", max_length=500)
    date: Optional[UTCDateTime] = None
    payment_mode: PaymentMode


class ExpenseCreate(ExpenseBase):
    pass


class ExpenseUpdate(APIModel):
    amount: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    category: Optional[Category] = None
    notes: Optional[str] = Field(None, max_length=500)
    date: Optional[UTCDateTime] = None
    payment_mode: Optional[PaymentMode] = None

    @model_validator(mode="after")
    def _reject_explicit_nulls(self) -> "ExpenseUpdate":
        for field in ("amount", "category", "date", "payment_mode"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{to_camel(field)} cannot be null")
        if "notes" in self.model_fields_set and self.notes is None:
            self.notes = ""
        return self


class ExpenseRead(ORMModel):
    id: int
    amount: Decimal
    category: Category
    notes: str
    date: datetime
    payment_mode: PaymentMode
    created_at: datetime
    updated_at: datetime


class ExpenseFilters(APIModel):
    date_filter: Optional[DateFilter] = None
    categories: List[Category] = Field(default_factory=list)
    payment_modes: List[PaymentMode] = Field(default_factory=list)


class Pagination(APIModel):
    current_page: int
    total_pages: int
    count: int
    total_records: int


class ExpensePage(APIModel):
    items: List[ExpenseRead]
    pagination: Pagination


# ---------------------------------------------------------------------------
# Analytics


class CategoryAmount(APIModel):
    category: Category
    amount: Decimal
    count: int


class MonthlyBucket(APIModel):
    year: int
    month: int
    categories: List[CategoryAmount]
    total_amount: Decimal


class AnalyticsSummary(APIModel):
    total_expenses: Decimal = Decimal(0)
    total_transactions: int = 0
    avg_expense: Decimal = Decimal(0)


class CategoryTotal(APIModel):
    category: Category
    total_amount: Decimal
    count: int


class AnalyticsRead(APIModel):
    monthly_data: List[MonthlyBucket]
    summary: AnalyticsSummary
    category_breakdown: List[CategoryTotal]


class HealthRead(APIModel):
    status: str
    timestamp: datetime
