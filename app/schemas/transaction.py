"""Pydantic schemas for transactions, per-user statistics and the category catalogue."""

from datetime import date as date_type
from datetime import datetime
from typing import Literal

from pydantic import Field, field_validator, model_validator

from app.schemas.base import ApiModel

TransactionType = Literal["income", "expense"]

INCOME_CATEGORIES: tuple[str, ...] = (
    "Salary",
    "Freelance",
    "Business",
    "Investment",
    "Rental",
    "Gift",
    "Bonus",
    "Pension",
    "Other",
)

EXPENSE_CATEGORIES: tuple[str, ...] = (
    "Food & Dining",
    "Transportation",
    "Education",
    "Shopping",
    "Entertainment",
    "Bills & Utilities",
    "Healthcare",
    "Travel",
    "Other",
)

CATEGORY_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 1_000
# Largest value NUMERIC(14, 2) can hold.
# amounts are stored with two decimal places; anything smaller would round to zero
AMOUNT_MIN = 0.01
AMOUNT_MAX = 999_999_999_999.99


def _validate_category(value: str) -> str:
    """Categories are free-form but must be non-empty after trimming."""
    value = value.strip()
    if not value:
        raise ValueError("category must be non-empty")
    return value


def _clean_description(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class TransactionCreate(ApiModel):
    """Body for POST /transactions. bsDate is derived server-side and ignored if sent."""

    type: TransactionType
    amount: float = Field(
        ..., ge=AMOUNT_MIN, le=AMOUNT_MAX, description="Strictly positive amount, at least 0.01."
    )
    category: str = Field(..., max_length=CATEGORY_MAX_LENGTH)
    description: str | None = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    date: date_type

    @field_validator("category")
    @classmethod
    def check_category(cls, v: str) -> str:
        return _validate_category(v)

    @field_validator("description")
    @classmethod
    def clean_description(cls, v: str | None) -> str | None:
        return _clean_description(v)


class TransactionUpdate(ApiModel):
    """Body for PUT /transactions/{id}; only the fields present are replaced."""

    type: TransactionType | None = None
    amount: float | None = Field(default=None, ge=AMOUNT_MIN, le=AMOUNT_MAX)
    category: str | None = Field(default=None, max_length=CATEGORY_MAX_LENGTH)
    description: str | None = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    date: date_type | None = None

    @field_validator("category")
    @classmethod
    def check_category(cls, v: str | None) -> str | None:
        return None if v is None else _validate_category(v)

    @field_validator("description")
    @classmethod
    def clean_description(cls, v: str | None) -> str | None:
        return _clean_description(v)

    @model_validator(mode="after")
    def reject_explicit_nulls(self) -> "TransactionUpdate":
        # description may be cleared; the other columns are NOT NULL
        for name in ("type", "amount", "category", "date"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> dict[str, object]:
        """Fields the client actually sent, keyed by column name."""
        return self.model_dump(exclude_unset=True, by_alias=False)


class OwnerSummary(ApiModel):
    """Display identity of a transaction's owner (never credentials)."""

    id: int
    username: str
    email: str
    first_name: str
    last_name: str


class TransactionOut(ApiModel):
    """Transaction as returned to clients."""

    id: int
    user_id: int
    type: TransactionType
    amount: float
    category: str
    description: str | None = None
    date: date_type
    bs_date: str = ""
    created_at: datetime
    updated_at: datetime


class TransactionWithOwner(TransactionOut):
    """Transaction joined with its owner, for admin views."""

    user: OwnerSummary | None = Field(default=None, validation_alias="owner")


class TransactionResponse(ApiModel):
    success: bool = True
    transaction: TransactionOut


class TransactionListResponse(ApiModel):
    success: bool = True
    transactions: list[TransactionOut]


class DeleteResponse(ApiModel):
    success: bool = True
    message: str = "Transaction deleted"


class UserStats(ApiModel):
    """Derived per-user figures; recomputed on every request."""

    total_balance: float = 0.0
    total_income: float = 0.0
    total_expenses: float = 0.0
    this_month_income: float = 0.0
    this_month_expenses: float = 0.0
    total_transactions: int = 0
    recent_transactions: list[TransactionOut] = Field(default_factory=list)


class StatsResponse(ApiModel):
    success: bool = True
    stats: UserStats


class CategoriesResponse(ApiModel):
    success: bool = True
    income: list[str] = Field(default_factory=lambda: list(INCOME_CATEGORIES))
    expense: list[str] = Field(default_factory=lambda: list(EXPENSE_CATEGORIES))
