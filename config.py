"""Application configuration module."""

import os
from datetime import timedelta


def _seconds(name: str, default: int) -> timedelta:
    return timedelta(seconds=int(os.getenv(name, default)))


class Config:
    """Base configuration for the Flask application."""

    # Core
    SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", SECRET_KEY)
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///app.db")
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # CORS
    _raw_origins = os.getenv("ORIGINS", "*")
    if _raw_origins.strip() == "*":
        CORS_ORIGINS = "*"
    else:
        CORS_ORIGINS = [o.strip() for o in _raw_origins.split(",") if o.strip()]

    # Rate limiting
    RATE_LIMIT = os.getenv("RATE_LIMIT", "60 per minute")
    RATELIMIT_HEADERS_ENABLED = True
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_KEY_PREFIX = os.getenv("RATELIMIT_KEY_PREFIX", "")

    # Sessions
    SESSION_TTL = _seconds("SESSION_TTL_SECONDS", 5 * 24 * 3600)

    # Verification and reset tokens
    TOKEN_BYTES = int(os.getenv("TOKEN_BYTES", 32))
    VERIFICATION_TOKEN_TTL = _seconds("VERIFICATION_TOKEN_TTL_SECONDS", 24 * 3600)
    RESET_TOKEN_TTL = _seconds("RESET_TOKEN_TTL_SECONDS", 3600)
    VERIFICATION_RESEND_COOLDOWN = _seconds("VERIFICATION_RESEND_COOLDOWN_SECONDS", 20 * 60)
    RESET_RESEND_COOLDOWN = _seconds("RESET_RESEND_COOLDOWN_SECONDS", 20 * 60)
    PASSWORD_MIN_LENGTH = int(os.getenv("PASSWORD_MIN_LENGTH", 8))

    # Mail
    MAIL_BACKEND = os.getenv("MAIL_BACKEND", "log")
    RESEND_API_KEY = os.getenv("RESEND_API_KEY")
    EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "Booking <noreply@example.com>")
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

    # Google sign-in (optional)
    GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID") or os.getenv("GOOGLE_OAUTH_CLIENT_ID")

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
