"""SQLAlchemy ORM models."""

from app.models.admin import Admin
from app.models.base import Base
from app.models.transaction import Transaction
from app.models.user import User

__all__ = ["Admin", "Base", "Transaction", "User"]
