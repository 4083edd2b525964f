"""Time-bounded, single-use tokens for email verification and password reset."""

from __future__ import annotations

import enum
import hmac
import math
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Mapping, Optional

from models.account import Account
from utils.clock import utcnow


class TokenPurpose(str, enum.Enum):
    """What a token authorizes its bearer to do."""

    VERIFY_EMAIL = "VERIFY_EMAIL"
    RESET_PASSWORD = "RESET_PASSWORD"


@dataclass(frozen=True)
class TokenFields:
    """Account columns holding one token pairing and its send bookkeeping."""

    token: str
    expiry: str
    last_sent: str


TOKEN_FIELDS = {
    TokenPurpose.VERIFY_EMAIL: TokenFields(
        "verification_token", "verification_token_expiry", "last_verification_email_sent"
    ),
    TokenPurpose.RESET_PASSWORD: TokenFields(
        "reset_token", "reset_token_expiry", "last_reset_email_sent"
    ),
}


@dataclass(frozen=True)
class TokenPolicy:
    ttl: timedelta
    cooldown: timedelta


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime


class TokenIssuer:
    """Issue and validate tokens according to a per-purpose policy.

    A token is valid when the account holds a token pairing for the purpose,
    the presented value matches it, and the current time is not past the
    stored expiry. Only one live token per purpose exists at a time; issuing
    a new one overwrites the previous pairing.
    """

    def __init__(
        self,
        policies: Mapping[TokenPurpose, TokenPolicy],
        *,
        token_bytes: int = 32,
        clock: Callable[[], datetime] = utcnow,
    ):
        missing = set(TokenPurpose) - set(policies)
        if missing:
            raise ValueError(f"Missing token policy for: {sorted(p.value for p in missing)}")
        self.policies = dict(policies)
        self.token_bytes = token_bytes
        self.clock = clock

    @classmethod
    def from_config(cls, config: Mapping, clock: Callable[[], datetime] = utcnow) -> "TokenIssuer":
        return cls(
            {
                TokenPurpose.VERIFY_EMAIL: TokenPolicy(
                    ttl=config["VERIFICATION_TOKEN_TTL"],
                    cooldown=config["VERIFICATION_RESEND_COOLDOWN"],
                ),
                TokenPurpose.RESET_PASSWORD: TokenPolicy(
                    ttl=config["RESET_TOKEN_TTL"],
                    cooldown=config["RESET_RESEND_COOLDOWN"],
                ),
            },
            token_bytes=config.get("TOKEN_BYTES", 32),
            clock=clock,
        )

    def now(self) -> datetime:
        return self.clock()

    def issue(self, purpose: TokenPurpose) -> IssuedToken:
        """Generate an unpredictable token and its expiry for ``purpose``."""

        policy = self.policies[purpose]
        return IssuedToken(
            token=secrets.token_hex(self.token_bytes),
            expires_at=self.now() + policy.ttl,
        )

    def validate(self, account: Account, presented: Optional[str], purpose: TokenPurpose) -> bool:
        fields = TOKEN_FIELDS[purpose]
        stored = getattr(account, fields.token)
        expires_at = getattr(account, fields.expiry)
        if not stored or expires_at is None or not presented:
            return False
        if not hmac.compare_digest(stored.encode(), presented.encode()):
            return False
        return self.now() <= expires_at

    def cooldown_remaining(self, account: Account, purpose: TokenPurpose) -> Optional[int]:
        """Return the seconds left before a resend is allowed, or ``None``."""

        last_sent = getattr(account, TOKEN_FIELDS[purpose].last_sent)
        if last_sent is None:
            return None
        remaining = self.policies[purpose].cooldown - (self.now() - last_sent)
        if remaining <= timedelta(0):
            return None
        return math.ceil(remaining.total_seconds())

    def stored(self, purpose: TokenPurpose, issued: IssuedToken, sent_at: Optional[datetime]) -> dict:
        """Return the account patch that stores ``issued`` as the live token."""

        fields = TOKEN_FIELDS[purpose]
        return {
            fields.token: issued.token,
            fields.expiry: issued.expires_at,
            fields.last_sent: sent_at,
        }

    @staticmethod
    def cleared(purpose: TokenPurpose) -> dict:
        """Return the account patch that removes the token pairing."""

        fields = TOKEN_FIELDS[purpose]
        return {fields.token: None, fields.expiry: None}

    @staticmethod
    def guard(account: Account, purpose: TokenPurpose) -> dict:
        """Return the stored token as a compare-and-set guard for consuming it."""

        token_field = TOKEN_FIELDS[purpose].token
        return {token_field: getattr(account, token_field)}
