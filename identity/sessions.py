"""Stateless session credentials signed with the application's JWT secret."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Optional

from flask_jwt_extended import create_access_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from models.account import Account, Role

from .errors import Unauthorized

ROLE_CLAIM = "role"


@dataclass(frozen=True)
class SessionClaims:
    """Identity recovered from a session credential."""

    subject_id: int
    role: Role
    expires_at: Optional[datetime] = None


def claims_from_payload(payload: dict) -> SessionClaims:
    """Build :class:`SessionClaims` from a decoded JWT payload."""

    try:
        subject_id = int(payload["sub"])
        role = Role(payload[ROLE_CLAIM])
    except (KeyError, TypeError, ValueError) as error:
        raise Unauthorized("Invalid session.") from error
    expires = payload.get("exp")
    expires_at = datetime.fromtimestamp(expires, UTC) if expires else None
    return SessionClaims(subject_id=subject_id, role=role, expires_at=expires_at)


class SessionIssuer:
    """Mint and recover session credentials.

    The role is captured when the credential is issued; a later role change
    takes effect once the holder signs in again or the credential expires.
    There is no server-side revocation list, so logout is a client-side
    discard.
    """

    def __init__(self, ttl: timedelta):
        self.ttl = ttl

    def issue(self, account: Account) -> str:
        return create_access_token(
            identity=str(account.id),
            additional_claims={ROLE_CLAIM: account.role.value},
            expires_delta=self.ttl,
        )

    def recover(self, credential: Optional[str]) -> SessionClaims:
        """Return the claims of a raw credential presented outside a request.

        Views use :func:`identity.policy.role_required`, which reads the
        credential from the request and shares :func:`claims_from_payload`.
        """

        if not credential:
            raise Unauthorized("Session credential required.")
        try:
            payload = decode_token(credential)
        except (JWTExtendedException, PyJWTError) as error:
            raise Unauthorized("Invalid or expired session.") from error
        if payload.get("type") != "access":
            raise Unauthorized("Invalid session.")
        return claims_from_payload(payload)
