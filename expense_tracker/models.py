"""SQLAlchemy models for the expense tracker."""
from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import relationship

from .database import Base
from .enums import Category, PaymentMode, Role


def utcnow() -> datetime:
    """Current time as naive UTC, the form every timestamp column stores."""
    return datetime.now(UTC).replace(tzinfo=None)


def _enum_column(enum_cls: type, name: str) -> Enum:
    # Persist the human-readable values ("Credit Card"), not the member names.
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        validate_strings=True,
        values_callable=lambda members: [member.value for member in members],
    )


class User(Base):
    __tablename__ = "users"

    id: int = Column(Integer, primary_key=True, index=True)
    name: str = Column(String(50), nullable=False)
    email: str = Column(String(255), unique=True, nullable=False, index=True)
    password_hash: str = Column(String(255), nullable=False)
    role: Role = Column(_enum_column(Role, "user_role"), nullable=False, default=Role.USER)
    is_active: bool = Column(Boolean, nullable=False, default=True)
    profile_picture: Optional[str] = Column(String(500), nullable=True)
    last_login: Optional[datetime] = Column(DateTime, nullable=True)
    created_at: datetime = Column(DateTime, nullable=False, default=utcnow)

    expenses = relationship("Expense", back_populates="owner", cascade="all, delete-orphan")


class Expense(Base):
    __tablename__ = "expenses"
    __table_args__ = (
        Index("ix_expenses_owner_date", "owner_id", "date"),
        Index("ix_expenses_owner_category", "owner_id", "category"),
        Index("ix_expenses_owner_payment_mode", "owner_id", "payment_mode"),
    )

    id: int = Column(Integer, primary_key=True, index=True)
    owner_id: int = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    amount: Decimal = Column(Numeric(12, 2), nullable=False)
    category: Category = Column(_enum_column(Category, "expense_category"), nullable=False)
    notes: str = Column(String(500), nullable=False, default="")
    date: datetime = Column(DateTime, nullable=False, default=utcnow)
    payment_mode: PaymentMode = Column(_enum_column(PaymentMode, "payment_mode"), nullable=False)
    created_at: datetime = Column(DateTime, nullable=False, default=utcnow)
    updated_at: datetime = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    owner = relationship("User", back_populates="expenses")
