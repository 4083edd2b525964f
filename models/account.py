"""Account model definition."""

from __future__ import annotations

import enum

from werkzeug.security import check_password_hash, generate_password_hash

from utils.clock import utcnow

from . import db


class AuthProvider(str, enum.Enum):
    """How an account proves its identity."""

    LOCAL = "LOCAL"
    EXTERNAL = "EXTERNAL"


class Role(str, enum.Enum):
    """Closed set of marketplace roles."""

    CUSTOMER = "CUSTOMER"
    PROVIDER = "PROVIDER"
    ADMIN = "ADMIN"


class Account(db.Model):
    """Represents a single identity, local or externally authenticated."""

    __tablename__ = "accounts"
    __table_args__ = (
        db.CheckConstraint(
            "(auth_provider = 'LOCAL' AND password_hash IS NOT NULL AND external_id IS NULL)"
            " OR (auth_provider = 'EXTERNAL' AND password_hash IS NULL AND external_id IS NOT NULL)",
            name="ck_accounts_provider_credentials",
        ),
        db.CheckConstraint(
            "(verification_token IS NULL) = (verification_token_expiry IS NULL)",
            name="ck_accounts_verification_pair",
        ),
        db.CheckConstraint(
            "(reset_token IS NULL) = (reset_token_expiry IS NULL)",
            name="ck_accounts_reset_pair",
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=True)
    external_id = db.Column(db.String(255), unique=True, nullable=True)
    auth_provider = db.Column(
        db.Enum(AuthProvider, name="auth_provider"),
        nullable=False,
        default=AuthProvider.LOCAL,
    )
    role = db.Column(
        db.Enum(Role, name="account_role"),
        nullable=False,
        default=Role.CUSTOMER,
    )
    email_verified = db.Column(db.Boolean, nullable=False, default=False)

    verification_token = db.Column(db.String(128), nullable=True, index=True)
    verification_token_expiry = db.Column(db.DateTime, nullable=True)
    last_verification_email_sent = db.Column(db.DateTime, nullable=True)

    reset_token = db.Column(db.String(128), nullable=True, index=True)
    reset_token_expiry = db.Column(db.DateTime, nullable=True)
    last_reset_email_sent = db.Column(db.DateTime, nullable=True)

    full_name = db.Column(db.String(255), nullable=True)
    avatar_url = db.Column(db.String(1024), nullable=True)
    phone = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    @staticmethod
    def hash_password(password: str) -> str:
        """Return a salted hash suitable for ``password_hash``."""

        return generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        """Verify a password against the stored hash."""

        if self.password_hash is None:
            return False
        return check_password_hash(self.password_hash, password)

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<Account {self.email} {self.role.value}>"

    def to_dict(self) -> dict:
        """Serialize the public fields of the account."""

        return {
            "id": self.id,
            "email": self.email,
            "role": self.role.value,
            "auth_provider": self.auth_provider.value,
            "email_verified": self.email_verified,
            "full_name": self.full_name,
            "avatar_url": self.avatar_url,
            "phone": self.phone,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
