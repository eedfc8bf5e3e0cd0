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


class _BaseTestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SECRET_KEY = "test-secret"
    JWT_SECRET_KEY = "test-jwt-secret-key-with-enough-length"
    PASSWORD_HASH_METHOD = "pbkdf2:sha256:1000"
    MAIL_BACKEND = "memory"
    RATELIMIT_ENABLED = False


@pytest.fixture()
def app(tmp_path) -> Flask:
    """Create a Flask application instance for tests."""

    upload_dir = tmp_path / "uploads"

    class TestConfig(_BaseTestConfig):
        UPLOAD_DIR = str(upload_dir)

    application = create_app(TestConfig)

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
def mailer(app: Flask):
    """The in-memory mail transport wired into the app."""

    return app.extensions["mailer"]


@pytest.fixture()
def make_user(app: Flask):
    """Factory persisting a user directly through the credential store."""

    def _make_user(
        email: str = "owner@example.com",
        password: str = "password1",
        *,
        verified: bool = True,
        name: str = "Owner",
    ) -> int:
        with app.app_context():
            hasher = app.extensions["auth_flow"].hasher
            user = app.extensions["credential_store"].create(
                {
                    "name": name,
                    "email": email,
                    "password_hash": hasher.hash(password),
                    "is_verified": verified,
                }
            )
            return user.id

    return _make_user


@pytest.fixture()
def login(client: FlaskClient):
    """Log ``client`` in and return the login response."""

    def _login(email: str = "owner@example.com", password: str = "password1"):
        response = client.post("/login", data={"email": email, "password": password})
        assert response.status_code == 302
        assert response.headers["Location"].endswith("/overview")
        return response

    return _login


@pytest.fixture()
def signed_in(make_user, login) -> int:
    """A verified user whose session cookie is held by ``client``."""

    user_id = make_user()
    login()
    return user_id
