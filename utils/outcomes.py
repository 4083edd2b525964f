"""Translate identity outcomes into HTTP errors."""

from __future__ import annotations

from flask import current_app
from werkzeug.exceptions import (
    BadRequest,
    Conflict,
    Forbidden,
    HTTPException,
    NotFound,
    ServiceUnavailable,
    TooManyRequests,
    Unauthorized,
)

from identity.errors import ErrorKind, Outcome
from identity.service import IdentityService

HTTP_ERRORS: dict[ErrorKind, type[HTTPException]] = {
    ErrorKind.EMAIL_TAKEN: Conflict,
    ErrorKind.DUPLICATE_IDENTITY: Conflict,
    ErrorKind.ACCOUNT_CONFLICT: Conflict,
    ErrorKind.NOT_FOUND: NotFound,
    ErrorKind.INVALID_CREDENTIALS: Unauthorized,
    ErrorKind.EMAIL_NOT_VERIFIED: Forbidden,
    ErrorKind.UNAUTHORIZED: Forbidden,
    ErrorKind.TOKEN_INVALID: BadRequest,
    ErrorKind.INVALID_INPUT: BadRequest,
    ErrorKind.COOLDOWN_ACTIVE: TooManyRequests,
    ErrorKind.COLLABORATOR_UNAVAILABLE: ServiceUnavailable,
}


def identity_service() -> IdentityService:
    """Return the identity service built by the application factory."""

    return current_app.extensions["identity"]


def unwrap(outcome: Outcome, *, allow_no_change: bool = False):
    """Return the outcome's value or raise the matching HTTP error.

    With ``allow_no_change`` a ``NoChange`` outcome returns ``None`` instead of
    raising.
    """

    if outcome.ok:
        return outcome.value
    if outcome.no_change:
        if allow_no_change:
            return None
        error = Conflict(outcome.message)
    else:
        error_class = HTTP_ERRORS[outcome.error]
        if error_class is TooManyRequests:
            error = TooManyRequests(
                outcome.message, retry_after=(outcome.details or {}).get("retry_after")
            )
        else:
            error = error_class(outcome.message)
    error.identity_error = outcome.error.value
    raise error
