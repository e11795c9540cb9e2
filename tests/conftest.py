"""Shared pytest fixtures for the application tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from flask import Flask
from flask.testing import FlaskClient

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app import create_app  # noqa: E402
from config import Config  # noqa: E402
from models import db  # noqa: E402
from models.user import User  # noqa: E402
from services.notifications import NotificationGateway  # noqa: E402


class _BaseTestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_SECRET_KEY = "test-signing-key-that-is-long-enough-for-hs256"
    CLIENT_ORIGIN = "https://app.example"


class RecordingGateway(NotificationGateway):
    """Collects notifications instead of sending them."""

    def __init__(self) -> None:
        self.sent = []

    def send(self, notification) -> None:
        self.sent.append(notification)

    def last_to(self, email: str):
        for notification in reversed(self.sent):
            if notification.to == email:
                return notification
        return None


class FakeClock:
    """Monotonic clock the tests can move forward by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def outbox() -> RecordingGateway:
    return RecordingGateway()


@pytest.fixture()
def app(tmp_path, outbox) -> Flask:
    """Create a Flask application instance for tests."""

    upload_dir = tmp_path / "uploads"

    class TestConfig(_BaseTestConfig):
        UPLOAD_DIR = str(upload_dir)

    application = create_app(TestConfig, gateway=outbox)

    with application.app_context():
        db.create_all()

    yield application

    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    """Return a test client for the Flask app."""

    return app.test_client()


@pytest.fixture()
def make_user(app: Flask):
    """Persist a user directly and return its id."""

    def _make_user(
        email: str,
        password: str = "secret123",
        name: str = "Test User",
        *,
        verified: bool = True,
        role: str = "user",
    ) -> int:
        with app.app_context():
            user = User(email=email, name=name, role=role, is_verified=verified)
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            return user.id

    return _make_user


@pytest.fixture()
def auth_headers(client: FlaskClient, make_user):
    """Create a verified user, log in and return (user_id, headers)."""

    def _auth_headers(email: str, password: str = "secret123", name: str = "Test User"):
        user_id = make_user(email, password, name)
        response = client.post("/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200
        token = response.get_json()["access_token"]
        return user_id, {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def cooldown_clock(app: Flask, fake_clock: FakeClock) -> FakeClock:
    """Drive the resend cooldown of the app under test with ``fake_clock``."""

    app.extensions["auth_flow"].cooldown.clock = fake_clock
    return fake_clock
