"""Pydantic request/response schemas."""

from app.schemas.admin import (
    AdminTransactionsResponse,
    AdminUsersResponse,
    DashboardResponse,
    Pagination,
    PlatformStats,
    PlatformTotals,
)
from app.schemas.auth import (
    AdminOut,
    AuthResponse,
    CurrentAdmin,
    CurrentUser,
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
    UserOut,
)
from app.schemas.health import HealthResponse
from app.schemas.transaction import (
    TransactionCreate,
    TransactionOut,
    TransactionType,
    TransactionUpdate,
    TransactionWithOwner,
    UserStats,
)

__all__ = [
    "AdminOut",
    "AdminTransactionsResponse",
    "AdminUsersResponse",
    "AuthResponse",
    "CurrentAdmin",
    "CurrentUser",
    "DashboardResponse",
    "HealthResponse",
    "LoginRequest",
    "Pagination",
    "PlatformStats",
    "PlatformTotals",
    "ProfileUpdate",
    "RegisterRequest",
    "TransactionCreate",
    "TransactionOut",
    "TransactionType",
    "TransactionUpdate",
    "TransactionWithOwner",
    "UserStats",
]
