"""Admin endpoints: admin registration/login, platform dashboard and paginated listings."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.api.v1.auth import get_current_admin
from app.core.config import get_settings, settings
from app.core.database import get_db
from app.core.security import ROLE_ADMIN, create_access_token
from app.schemas.admin import AdminTransactionsResponse, AdminUsersResponse, DashboardResponse
from app.schemas.auth import (
    AdminAuthResponse,
    AdminOut,
    AdminResponse,
    CurrentAdmin,
    LoginRequest,
    RegisterRequest,
    UserOut,
)
from app.schemas.transaction import TransactionWithOwner
from app.services.accounts import (
    AccountConflictError,
    InvalidCredentialsError,
    authenticate_admin,
    list_users,
    register_admin,
)
from app.services.stats import compute_platform_stats
from app.services.transactions import list_all

logger = logging.getLogger(__name__)
router = APIRouter()

PageParam = Annotated[int, Query(ge=1, description="1-based page number")]
LimitParam = Annotated[
    int | None,
    Query(ge=1, le=settings.MAX_PAGE_SIZE, description="Items per page"),
]


@router.post("/register", response_model=AdminAuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    db: Annotated[Session, Depends(get_db)],
) -> AdminAuthResponse:
    """Create an admin account. Disabled when ADMIN_REGISTRATION_ENABLED is false."""
    if not get_settings().ADMIN_REGISTRATION_ENABLED:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin registration is disabled.",
        )
    try:
        admin = register_admin(db, body)
    except AccountConflictError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e
    token = create_access_token(sub=admin.id, role=ROLE_ADMIN)
    return AdminAuthResponse(token=token, admin=AdminOut.model_validate(admin))


@router.post("/login", response_model=AdminAuthResponse)
def login(
    body: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
) -> AdminAuthResponse:
    """Authenticate an active admin by email and password."""
    try:
        admin = authenticate_admin(db, body)
    except InvalidCredentialsError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        ) from e
    token = create_access_token(sub=admin.id, role=ROLE_ADMIN)
    return AdminAuthResponse(token=token, admin=AdminOut.model_validate(admin))


@router.get("/me", response_model=AdminResponse)
def read_me(
    current_admin: Annotated[CurrentAdmin, Depends(get_current_admin)],
) -> AdminResponse:
    return AdminResponse(admin=AdminOut.model_validate(current_admin))


@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(
    _admin: Annotated[CurrentAdmin, Depends(get_current_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> DashboardResponse:
    """
    Platform-wide totals, this month's sign-ups and transactions, the 20 most
    recent transactions (with owner) and the 10 newest users.
    """
    return DashboardResponse(dashboard=compute_platform_stats(db))


@router.get("/users", response_model=AdminUsersResponse)
def get_users(
    _admin: Annotated[CurrentAdmin, Depends(get_current_admin)],
    db: Annotated[Session, Depends(get_db)],
    page: PageParam = 1,
    limit: LimitParam = None,
) -> AdminUsersResponse:
    page_size = limit or get_settings().DEFAULT_USERS_PAGE_SIZE
    users, pagination = list_users(db, page, page_size)
    return AdminUsersResponse(
        users=[UserOut.model_validate(u) for u in users],
        pagination=pagination,
    )


@router.get("/transactions", response_model=AdminTransactionsResponse)
def get_transactions(
    _admin: Annotated[CurrentAdmin, Depends(get_current_admin)],
    db: Annotated[Session, Depends(get_db)],
    page: PageParam = 1,
    limit: LimitParam = None,
) -> AdminTransactionsResponse:
    page_size = limit or get_settings().DEFAULT_TRANSACTIONS_PAGE_SIZE
    rows, pagination = list_all(db, page, page_size)
    return AdminTransactionsResponse(
        transactions=[TransactionWithOwner.model_validate(t) for t in rows],
        pagination=pagination,
    )
