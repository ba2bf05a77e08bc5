"""User registration, login and profile endpoints plus bearer-token auth dependencies."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import ROLE_ADMIN, ROLE_USER, Role, create_access_token, subject_for_role
from app.models import User
from app.schemas.auth import (
    AuthResponse,
    CurrentAdmin,
    CurrentUser,
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
    UserOut,
    UserResponse,
)
from app.services.accounts import (
    AccountConflictError,
    AccountNotFoundError,
    InvalidCredentialsError,
    authenticate_user,
    get_active_admin,
    register_user,
    update_profile,
)

logger = logging.getLogger(__name__)
router = APIRouter()
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _token_subject(
    credentials: HTTPAuthorizationCredentials | None,
    role: Role,
) -> int:
    """Return the account id carried by a bearer token issued for role; 401 otherwise."""
    if credentials is None:
        raise _unauthorized("No token, authorization denied")
    subject = subject_for_role(credentials.credentials, role)
    if subject is None:
        logger.info("Rejected bearer token for role=%s (invalid, expired or wrong role)", role)
        raise _unauthorized("Token is not valid")
    return subject


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
) -> CurrentUser:
    """Dependency: require a valid user Bearer JWT and return the caller. Raises 401 otherwise."""
    user_id = _token_subject(credentials, ROLE_USER)
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        logger.info("Token subject user_id=%s no longer exists", user_id)
        raise _unauthorized("Token is not valid")
    return CurrentUser.model_validate(user)


def get_current_admin(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
) -> CurrentAdmin:
    """Dependency: require a valid admin Bearer JWT for an active admin. Raises 401 otherwise."""
    admin_id = _token_subject(credentials, ROLE_ADMIN)
    admin = get_active_admin(db, admin_id)
    if admin is None:
        logger.info("Token subject admin_id=%s is missing or inactive", admin_id)
        raise _unauthorized("Token is not valid")
    return CurrentAdmin.model_validate(admin)


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    db: Annotated[Session, Depends(get_db)],
) -> AuthResponse:
    """Create a user account and return a token so the client is logged in immediately."""
    try:
        user = register_user(db, body)
    except AccountConflictError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e
    token = create_access_token(sub=user.id, role=ROLE_USER)
    return AuthResponse(token=token, user=UserOut.model_validate(user))


@router.post("/login", response_model=AuthResponse)
def login(
    body: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
) -> AuthResponse:
    """
    Authenticate with email and password; returns a JWT access token.
    Include the token in the Authorization header as: Bearer <token>
    """
    try:
        user = authenticate_user(db, body)
    except InvalidCredentialsError as e:
        raise _unauthorized(e.message) from e
    token = create_access_token(sub=user.id, role=ROLE_USER)
    return AuthResponse(token=token, user=UserOut.model_validate(user))


@router.get("/me", response_model=UserResponse)
def read_me(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> UserResponse:
    user = db.query(User).filter(User.id == current_user.id).first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserResponse(user=UserOut.model_validate(user))


@router.put("/me", response_model=UserResponse)
def update_me(
    body: ProfileUpdate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> UserResponse:
    """Update username, email, first or last name; omitted fields are unchanged."""
    try:
        user = update_profile(db, current_user.id, body)
    except AccountNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e
    except AccountConflictError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e
    return UserResponse(user=UserOut.model_validate(user))
