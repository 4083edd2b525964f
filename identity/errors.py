"""Error kinds and tagged outcomes returned by identity operations."""

from __future__ import annotations

import enum
import functools
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, enum.Enum):
    """Every failure an identity operation can report."""

    EMAIL_TAKEN = "EmailTaken"
    DUPLICATE_IDENTITY = "DuplicateIdentity"
    NOT_FOUND = "NotFound"
    INVALID_CREDENTIALS = "InvalidCredentials"
    EMAIL_NOT_VERIFIED = "EmailNotVerified"
    TOKEN_INVALID = "TokenInvalid"
    COOLDOWN_ACTIVE = "CooldownActive"
    ACCOUNT_CONFLICT = "AccountConflict"
    UNAUTHORIZED = "Unauthorized"
    INVALID_INPUT = "InvalidInput"
    COLLABORATOR_UNAVAILABLE = "CollaboratorUnavailable"
    NO_CHANGE = "NoChange"

    @property
    def retryable(self) -> bool:
        return self is ErrorKind.COLLABORATOR_UNAVAILABLE


class IdentityError(Exception):
    """Base class for failures raised inside the identity core."""

    kind: ErrorKind
    default_message = "Identity operation failed."

    def __init__(self, message: Optional[str] = None, **details: Any):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details


class EmailTaken(IdentityError):
    kind = ErrorKind.EMAIL_TAKEN
    default_message = "An account with that email already exists."


class DuplicateIdentity(IdentityError):
    kind = ErrorKind.DUPLICATE_IDENTITY
    default_message = "An account with that identity already exists."

    def __init__(self, message: Optional[str] = None, *, field: Optional[str] = None):
        super().__init__(message, field=field)
        self.field = field


class NotFound(IdentityError):
    kind = ErrorKind.NOT_FOUND
    default_message = "Account not found."


class InvalidCredentials(IdentityError):
    kind = ErrorKind.INVALID_CREDENTIALS
    default_message = "Invalid email or password."


class EmailNotVerified(IdentityError):
    kind = ErrorKind.EMAIL_NOT_VERIFIED
    default_message = "Email address has not been verified."


class TokenInvalid(IdentityError):
    kind = ErrorKind.TOKEN_INVALID
    default_message = "Token is invalid or has expired."


class CooldownActive(IdentityError):
    kind = ErrorKind.COOLDOWN_ACTIVE
    default_message = "Too many requests. Try again later."

    def __init__(self, message: Optional[str] = None, *, retry_after: Optional[int] = None):
        super().__init__(message, retry_after=retry_after)
        self.retry_after = retry_after


class AccountConflict(IdentityError):
    kind = ErrorKind.ACCOUNT_CONFLICT
    default_message = "This email is already registered with a password. Sign in with it instead."


class Unauthorized(IdentityError):
    kind = ErrorKind.UNAUTHORIZED
    default_message = "Not authorized."


class InvalidInput(IdentityError):
    kind = ErrorKind.INVALID_INPUT
    default_message = "Invalid input."


class CollaboratorUnavailable(IdentityError):
    kind = ErrorKind.COLLABORATOR_UNAVAILABLE
    default_message = "A required service is unavailable. Try again later."


class NoChange(IdentityError):
    """Raised when a mutation would leave the account as it is."""

    kind = ErrorKind.NO_CHANGE
    default_message = "Nothing to change."


class StaleWrite(Exception):
    """A compare-and-set update found the row changed by another writer."""


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Tagged result of an identity operation."""

    value: Optional[T] = None
    error: Optional[ErrorKind] = None
    message: Optional[str] = None
    details: Optional[dict] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def no_change(self) -> bool:
        return self.error is ErrorKind.NO_CHANGE

    @classmethod
    def success(cls, value: T = None) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: IdentityError) -> "Outcome[T]":
        return cls(error=error.kind, message=error.message, details=error.details or None)


def operation(func: Callable[..., T]) -> Callable[..., Outcome[T]]:
    """Run ``func`` and report its result or :class:`IdentityError` as an :class:`Outcome`."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Outcome[T]:
        try:
            return Outcome.success(func(*args, **kwargs))
        except IdentityError as error:
            return Outcome.failure(error)

    return wrapper
