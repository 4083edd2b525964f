"""Third-party identity providers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from google.auth import exceptions as google_exceptions
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

from .errors import CollaboratorUnavailable, InvalidCredentials

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExternalIdentity:
    """Identity asserted by a provider: a stable subject id and a verified email."""

    external_id: str
    email: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None


class AbstractIdentityProvider(ABC):
    """Interface for exchanging a provider credential for an identity."""

    @abstractmethod
    def exchange(self, auth_code: str) -> ExternalIdentity:
        """Return the verified identity behind ``auth_code``.

        Raises :class:`InvalidCredentials` when the provider rejects the
        credential and :class:`CollaboratorUnavailable` when it cannot be
        reached.
        """


class GoogleIdentityProvider(AbstractIdentityProvider):
    """Verify Google ID tokens issued to this application's client id."""

    def __init__(self, client_id: Optional[str], clock_skew_in_seconds: int = 60):
        self.client_id = client_id
        self.clock_skew_in_seconds = clock_skew_in_seconds

    def exchange(self, auth_code: str) -> ExternalIdentity:
        if not self.client_id:
            raise CollaboratorUnavailable("Google sign-in is not configured.")
        if not auth_code:
            raise InvalidCredentials("Invalid Google credential.")

        try:
            claims = id_token.verify_oauth2_token(
                auth_code,
                google_requests.Request(),
                self.client_id,
                clock_skew_in_seconds=self.clock_skew_in_seconds,
            )
        except google_exceptions.TransportError as error:
            logger.warning("Google token verification unavailable: %s", error)
            raise CollaboratorUnavailable() from error
        except ValueError as error:
            logger.info("Rejected Google credential: %s", error)
            raise InvalidCredentials("Invalid Google credential.") from error

        subject = str(claims.get("sub") or "")
        email = str(claims.get("email") or "").strip().lower()
        if not subject or not email or not claims.get("email_verified", False):
            raise InvalidCredentials("Google account has no verified email.")

        return ExternalIdentity(
            external_id=subject,
            email=email,
            display_name=claims.get("name"),
            avatar_url=claims.get("picture"),
        )
