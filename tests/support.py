"""Shared fixtures: in-memory SQLite sessions and an API client wired to them."""

import unittest
from datetime import date
from typing import Any
from unittest.mock import patch

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core import security
from app.core.database import get_db
from app.main import app
from app.models import Base, User
from app.services.notifications import NotificationHub, get_hub


def make_session_factory() -> sessionmaker:
    """Fresh in-memory database with all tables; one shared connection."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def add_user(db, username: str = "alice", **kwargs: Any) -> User:
    """Insert a user row directly (no password hashing needed for repository tests)."""
    defaults = {
        "email": f"{username}@example.com",
        "password_hash": "x",
        "first_name": username.title(),
        "last_name": "Tester",
    }
    defaults.update(kwargs)
    user = User(username=username, **defaults)
    db.add(user)
    db.commit()
    return user


class ApiTestCase(unittest.TestCase):
    """Runs the real app against a private in-memory database and notification hub."""

    def setUp(self) -> None:
        rounds = patch.object(security, "BCRYPT_ROUNDS", 4)
        rounds.start()
        self.addCleanup(rounds.stop)

        self.session_factory = make_session_factory()
        self.hub = NotificationHub(send_timeout=1.0)

        def override_get_db():
            db = self.session_factory()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_hub] = lambda: self.hub
        self.addCleanup(app.dependency_overrides.clear)

        # Entering the client keeps HTTP requests and websockets on one event loop.
        self.client = TestClient(app)
        self.client.__enter__()
        self.addCleanup(self.client.__exit__, None, None, None)

    @staticmethod
    def auth(token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    def register_user(self, username: str = "alice", password: str = "secret123") -> tuple[str, dict]:
        resp = self.client.post(
            "/api/auth/register",
            json={
                "username": username,
                "email": f"{username}@example.com",
                "password": password,
                "firstName": username.title(),
                "lastName": "Tester",
            },
        )
        self.assertEqual(resp.status_code, 201, resp.text)
        body = resp.json()
        return body["token"], body["user"]

    def register_admin(self, username: str = "root", password: str = "secret123") -> tuple[str, dict]:
        resp = self.client.post(
            "/api/admin/register",
            json={
                "username": username,
                "email": f"{username}@admin.example.com",
                "password": password,
                "firstName": "Site",
                "lastName": "Admin",
            },
        )
        self.assertEqual(resp.status_code, 201, resp.text)
        body = resp.json()
        return body["token"], body["admin"]

    def create_transaction(self, token: str, **fields: Any) -> dict:
        payload = {
            "type": "income",
            "amount": 100,
            "category": "Salary",
            "date": date.today().isoformat(),
        }
        payload.update(fields)
        resp = self.client.post("/api/transactions", json=payload, headers=self.auth(token))
        self.assertEqual(resp.status_code, 201, resp.text)
        return resp.json()["transaction"]
