"""User and admin accounts: registration, login, profile updates and admin listings."""

import logging

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.security import hash_password, verify_password
from app.models import Admin, User
from app.schemas.admin import Pagination
from app.schemas.auth import LoginRequest, ProfileUpdate, RegisterRequest
from app.services.pagination import build_pagination, page_offset

logger = logging.getLogger(__name__)


class AccountConflictError(Exception):
    """Raised when a username or email is already taken."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidCredentialsError(Exception):
    """Raised when login fails; deliberately does not say which part was wrong."""

    def __init__(self) -> None:
        self.message = "Invalid credentials"
        super().__init__(self.message)


class AccountNotFoundError(Exception):
    def __init__(self, message: str = "User not found") -> None:
        self.message = message
        super().__init__(message)


def _taken(db: Session, model: type[User] | type[Admin], email: str, username: str) -> bool:
    return (
        db.query(model)
        .filter(or_(model.email == email, model.username == username))
        .first()
        is not None
    )


def register_user(db: Session, body: RegisterRequest) -> User:
    """Create a user account. Raises AccountConflictError on duplicate email or username."""
    if _taken(db, User, body.email, body.username):
        raise AccountConflictError("User already exists with this email or username")
    user = User(
        username=body.username,
        email=body.email,
        password_hash=hash_password(body.password),
        first_name=body.first_name,
        last_name=body.last_name,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as e:
        # lost a race with a concurrent registration
        db.rollback()
        raise AccountConflictError("User already exists with this email or username") from e
    logger.info("User registered: id=%s username=%s", user.id, user.username)
    return user


def register_admin(db: Session, body: RegisterRequest) -> Admin:
    """Create an active admin account. Raises AccountConflictError on duplicates."""
    if _taken(db, Admin, body.email, body.username):
        raise AccountConflictError("Admin already exists with this email or username")
    admin = Admin(
        username=body.username,
        email=body.email,
        password_hash=hash_password(body.password),
        first_name=body.first_name,
        last_name=body.last_name,
        role="admin",
        is_active=True,
    )
    db.add(admin)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise AccountConflictError("Admin already exists with this email or username") from e
    logger.info("Admin registered: id=%s username=%s", admin.id, admin.username)
    return admin


def authenticate_user(db: Session, body: LoginRequest) -> User:
    user = db.query(User).filter(User.email == body.email).first()
    if user is None or not verify_password(body.password, user.password_hash):
        logger.info("Failed user login for email=%s", body.email)
        raise InvalidCredentialsError()
    return user


def authenticate_admin(db: Session, body: LoginRequest) -> Admin:
    """Only active admins may log in."""
    admin = (
        db.query(Admin)
        .filter(Admin.email == body.email, Admin.is_active.is_(True))
        .first()
    )
    if admin is None or not verify_password(body.password, admin.password_hash):
        logger.info("Failed admin login for email=%s", body.email)
        raise InvalidCredentialsError()
    return admin


def get_active_admin(db: Session, admin_id: int) -> Admin | None:
    return (
        db.query(Admin)
        .filter(Admin.id == admin_id, Admin.is_active.is_(True))
        .first()
    )


def update_profile(db: Session, user_id: int, changes: ProfileUpdate) -> User:
    """
    Apply the provided profile fields to user_id.

    Raises AccountNotFoundError if the user vanished and AccountConflictError if
    the new username or email belongs to someone else.
    """
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise AccountNotFoundError()
    values = changes.model_dump(exclude_unset=True, exclude_none=True, by_alias=False)
    clash = None
    if "email" in values or "username" in values:
        clash = (
            db.query(User)
            .filter(
                User.id != user_id,
                or_(
                    User.email == values.get("email", user.email),
                    User.username == values.get("username", user.username),
                ),
            )
            .first()
        )
    if clash is not None:
        raise AccountConflictError("Username or email is already in use")
    for name, value in values.items():
        setattr(user, name, value)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise AccountConflictError("Username or email is already in use") from e
    logger.info("Profile updated: user_id=%s fields=%s", user_id, sorted(values))
    return user


def list_users(db: Session, page: int, page_size: int) -> tuple[list[User], Pagination]:
    """Admin listing of users, newest first."""
    total = db.query(func.count(User.id)).scalar() or 0
    users = (
        db.query(User)
        .order_by(User.created_at.desc(), User.id.desc())
        .offset(page_offset(page, page_size))
        .limit(page_size)
        .all()
    )
    return users, build_pagination(page, page_size, total)
