"""Database initialization and model exports."""

from flask_sqlalchemy import SQLAlchemy


db = SQLAlchemy()

# Import models to register them with SQLAlchemy metadata.
from .account import Account, AuthProvider, Role  # noqa: E402,F401
from .audit_entry import Actor, ActorKind, AuditAction, AuditEntry  # noqa: E402,F401

__all__ = [
    "db",
    "Account",
    "AuthProvider",
    "Role",
    "AuditEntry",
    "AuditAction",
    "ActorKind",
    "Actor",
]
