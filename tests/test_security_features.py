"""Tests covering security and hardening features."""

from __future__ import annotations

import sys
from pathlib import Path

from flask import Flask

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app import create_app
from config import Config
from identity.providers import GoogleIdentityProvider
from mail import LogMailer


class _SecurityBaseConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_SECRET_KEY = "test-jwt-secret-key-with-enough-length"


def _build_app(**overrides) -> Flask:
    class TestConfig(_SecurityBaseConfig):
        pass

    for key, value in overrides.items():
        setattr(TestConfig, key, value)

    return create_app(TestConfig)


def test_cors_allows_configured_origin():
    app = _build_app(CORS_ORIGINS=["https://client.example"])
    client = app.test_client()

    response = client.get(
        "/health", headers={"Origin": "https://client.example"}
    )

    assert response.status_code == 200
    assert response.headers.get("Access-Control-Allow-Origin") == "https://client.example"
    assert response.headers.get("X-Request-ID")


def test_request_id_is_echoed():
    client = _build_app().test_client()

    response = client.get("/health", headers={"X-Request-ID": "req-123"})

    assert response.headers.get("X-Request-ID") == "req-123"


def test_rate_limit_exceeded_returns_json():
    app = _build_app(RATE_LIMIT="2 per minute")
    client = app.test_client()

    client.get("/health")
    client.get("/health")
    response = client.get("/health")

    assert response.status_code == 429
    payload = response.get_json()
    assert payload["error"] == "Too Many Requests"
    assert "request_id" in payload


def test_json_error_shape_for_invalid_request():
    app = _build_app()
    client = app.test_client()

    response = client.post(
        "/auth/register",
        data="not-json",
        content_type="text/plain",
    )

    assert response.status_code == 400
    payload = response.get_json()
    assert payload["error"] == "Bad Request"
    assert "Request content type" in payload["detail"]
    assert payload["request_id"]


def test_default_collaborators_come_from_config():
    app = _build_app(GOOGLE_CLIENT_ID=None)
    service = app.extensions["identity"]

    assert isinstance(service.mailer, LogMailer)
    assert isinstance(service.identity_provider, GoogleIdentityProvider)


def test_google_sign_in_without_client_id_is_unavailable():
    app = _build_app(GOOGLE_CLIENT_ID=None)
    client = app.test_client()

    response = client.post("/auth/google", json={"credential": "anything"})

    assert response.status_code == 503
    assert response.get_json()["code"] == "CollaboratorUnavailable"
