"""Settings, database sessions and token/password handling shared by routes and services."""

from app.core.config import get_settings, settings
from app.core.database import SessionLocal, get_db
from app.core.security import ROLE_ADMIN, ROLE_USER

__all__ = ["get_settings", "settings", "SessionLocal", "get_db", "ROLE_ADMIN", "ROLE_USER"]
