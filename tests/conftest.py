"""Shared pytest fixtures: application, client, users and a pinned clock."""
from __future__ import annotations

import sys
from datetime import datetime
from itertools import count
from pathlib import Path

import pytest

# Ensure the project root is available on sys.path so tests can import the package.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from salon_booking import create_app, repository  # noqa: E402
from salon_booking.auth import issue_token  # noqa: E402
from salon_booking.extensions import db  # noqa: E402
from salon_booking.models import User  # noqa: E402

# Monday 3 June 2030, 08:00 at the salon
NOW = datetime(2030, 6, 3, 8, 0)

_emails = count(1)


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test-secret",
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "CACHE_REDIS_URL": "",
    })
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def frozen_now(monkeypatch):
    """Pin the salon clock to ``NOW``."""
    monkeypatch.setattr(repository, "salon_now", lambda: NOW)
    return NOW


@pytest.fixture
def make_user(app):
    """Create a user and return ``(user_id, headers)`` with a bearer token."""

    def _make(role: str = "USER", first_name: str = "Alice", last_name: str = "Martin", **fields):
        with app.app_context():
            user = User(
                email=fields.pop("email", f"user{next(_emails)}@example.com"),
                first_name=first_name,
                last_name=last_name,
                role=role,
                **fields,
            )
            db.session.add(user)
            db.session.commit()
            return user.user_id, {"Authorization": f"Bearer {issue_token(user)}"}

    return _make


@pytest.fixture
def client_user(make_user):
    return make_user("USER")


@pytest.fixture
def pro_user(make_user):
    return make_user("PRO", first_name="Paul", last_name="Pro")


@pytest.fixture
def admin_user(make_user):
    return make_user("ADMIN", first_name="Ada", last_name="Admin")
