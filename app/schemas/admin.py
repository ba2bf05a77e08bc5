"""Pydantic schemas for the admin dashboard and paginated listings."""

from pydantic import Field

from app.schemas.auth import UserOut
from app.schemas.base import ApiModel
from app.schemas.transaction import TransactionWithOwner


class Pagination(ApiModel):
    """Page metadata for admin listings."""

    current_page: int
    total_pages: int
    total_count: int
    has_next: bool
    has_prev: bool


class PlatformTotals(ApiModel):
    """Platform-wide counters and sums."""

    total_users: int = 0
    total_transactions: int = 0
    total_income: float = 0.0
    total_expenses: float = 0.0
    this_month_users: int = 0
    this_month_transactions: int = 0


class PlatformStats(ApiModel):
    """Dashboard payload: totals plus the most recent activity."""

    stats: PlatformTotals = Field(default_factory=PlatformTotals)
    recent_transactions: list[TransactionWithOwner] = Field(default_factory=list)
    recent_users: list[UserOut] = Field(default_factory=list)


class DashboardResponse(ApiModel):
    success: bool = True
    dashboard: PlatformStats


class AdminUsersResponse(ApiModel):
    success: bool = True
    users: list[UserOut]
    pagination: Pagination


class AdminTransactionsResponse(ApiModel):
    success: bool = True
    transactions: list[TransactionWithOwner]
    pagination: Pagination
