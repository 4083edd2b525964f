"""Credential verification for local passwords and external identity assertions."""

from __future__ import annotations

import functools
import hmac
import re
from abc import ABC, abstractmethod
from typing import Any, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from models.account import Account, AuthProvider

from .errors import InvalidInput
from .providers import ExternalIdentity

_LETTER = re.compile(r"[A-Za-z]")
_DIGIT = re.compile(r"\d")


def validate_password(password: Optional[str], min_length: int = 8) -> str:
    """Return ``password`` if it satisfies the password policy."""

    if not password or len(password) < min_length:
        raise InvalidInput(f"Password must be at least {min_length} characters long.")
    if not _LETTER.search(password) or not _DIGIT.search(password):
        raise InvalidInput("Password must contain both letters and numbers.")
    return password


@functools.lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return generate_password_hash("not-a-real-password")


class CredentialVerifier(ABC):
    """Decide whether a presented credential proves ownership of an account."""

    provider: AuthProvider

    @abstractmethod
    def authenticate(self, account: Optional[Account], presented: Any) -> bool:
        """Return True when ``presented`` authenticates ``account``."""


class LocalCredentialVerifier(CredentialVerifier):
    """Check a plaintext password against the account's salted hash."""

    provider = AuthProvider.LOCAL

    def authenticate(self, account: Optional[Account], presented: Any) -> bool:
        if not isinstance(presented, str) or not presented:
            return False
        if account is None or account.password_hash is None:
            # Spend the same hashing work as a real comparison.
            check_password_hash(_dummy_hash(), presented)
            return False
        return account.check_password(presented)


class ExternalCredentialVerifier(CredentialVerifier):
    """Trust an identity provider assertion for the account it names."""

    provider = AuthProvider.EXTERNAL

    def authenticate(self, account: Optional[Account], presented: Any) -> bool:
        if account is None or account.external_id is None:
            return False
        if not isinstance(presented, ExternalIdentity):
            return False
        return hmac.compare_digest(account.external_id.encode(), presented.external_id.encode())
