"""Shared pytest fixtures for the application tests."""

from __future__ import annotations

import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from flask import Flask
from flask.testing import FlaskClient

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app import create_app  # noqa: E402
from config import Config  # noqa: E402
from identity.errors import CollaboratorUnavailable, InvalidCredentials  # noqa: E402
from identity.providers import AbstractIdentityProvider, ExternalIdentity  # noqa: E402
from mail import AbstractMailer  # noqa: E402
from models import db  # noqa: E402
from models.account import Role  # noqa: E402
from models.audit_entry import Actor  # noqa: E402


class _BaseTestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_SECRET_KEY = "test-jwt-secret-key-with-enough-length"
    RATE_LIMIT = "1000 per minute"
    MAIL_BACKEND = "log"
    GOOGLE_CLIENT_ID = None


class FrozenClock:
    """A clock that only moves when a test advances it."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


class RecordingMailer(AbstractMailer):
    """Collects sent messages instead of delivering them."""

    def __init__(self):
        self.sent: list[dict] = []
        self.fail = False

    def send(self, address, template, variables) -> None:
        if self.fail:
            raise CollaboratorUnavailable("Mail server down.")
        self.sent.append({"to": address, "template": template, "variables": dict(variables)})

    def last_token(self, template=None) -> str:
        for message in reversed(self.sent):
            if template is None or message["template"] == template:
                return message["variables"]["token"]
        raise AssertionError("No message was sent.")


class FakeIdentityProvider(AbstractIdentityProvider):
    """Resolves auth codes registered by the test."""

    def __init__(self):
        self.identities: dict[str, ExternalIdentity] = {}
        self.unavailable = False

    def add(self, code: str, external_id: str, email: str, display_name: str = "Ext User"):
        self.identities[code] = ExternalIdentity(
            external_id=external_id,
            email=email,
            display_name=display_name,
            avatar_url="https://example.com/avatar.png",
        )

    def exchange(self, auth_code: str) -> ExternalIdentity:
        if self.unavailable:
            raise CollaboratorUnavailable()
        try:
            return self.identities[auth_code]
        except KeyError:
            raise InvalidCredentials("Invalid credential.")


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock(datetime(2024, 5, 1, 12, 0, 0))


@pytest.fixture()
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture()
def identity_provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture()
def app(clock, mailer, identity_provider) -> Flask:
    """Create a Flask application instance for tests."""

    class TestConfig(_BaseTestConfig):
        pass

    application = create_app(
        TestConfig,
        mailer=mailer,
        identity_provider=identity_provider,
        clock=clock,
    )

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
def app_ctx(app: Flask):
    """Push an application context for direct service calls."""

    with app.app_context():
        yield app


@pytest.fixture()
def service(app_ctx):
    return app_ctx.extensions["identity"]


@pytest.fixture()
def create_account(service, mailer):
    """Return a factory that registers, verifies and optionally elevates an account."""

    def _create(email, password="password123", role=Role.CUSTOMER, verified=True, full_name=None):
        registration_role = Role.PROVIDER if role == Role.PROVIDER else Role.CUSTOMER
        outcome = service.register(email, password, full_name=full_name, role=registration_role)
        assert outcome.ok, outcome.message
        account_id = outcome.value.account.id
        if verified:
            assert service.confirm_verification(mailer.last_token()).ok
        if role == Role.ADMIN:
            assert service.promote_to_admin(account_id, Actor.system("test-setup")).ok
        return service.get_profile(account_id).value

    return _create


@pytest.fixture()
def auth_headers(client):
    """Return a helper that signs in over HTTP and builds bearer headers."""

    def _headers(email, password="password123"):
        response = client.post("/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.get_json()
        return {"Authorization": f"Bearer {response.get_json()['access_token']}"}

    return _headers
