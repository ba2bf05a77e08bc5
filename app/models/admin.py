"""ORM model for administrator accounts (separate from users)."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from app.models.base import Base
from app.models.user import utcnow


class Admin(Base):
    """
    Administrator with read access to platform-wide data and live notifications.

    role: 'admin' (kept as a column so finer roles can be added later)
    Only admins with is_active=True may log in or join the notification channel.
    """

    __tablename__ = "admins"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(50), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    role = Column(String(32), nullable=False, default="admin")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
