"""Role-based access policy consumed by the route layer."""

from __future__ import annotations

import enum
import functools
from typing import Callable

from flask import g
from flask_jwt_extended import get_jwt, verify_jwt_in_request
from werkzeug.exceptions import Forbidden
from werkzeug.exceptions import Unauthorized as HTTPUnauthorized

from models.account import Role

from .errors import Unauthorized
from .sessions import SessionClaims, claims_from_payload


class Resource(str, enum.Enum):
    """Things a session may ask to access."""

    PROFILE = "profile"
    OWN_HISTORY = "own_history"
    BOOKINGS = "bookings"
    PROVIDER_DASHBOARD = "provider_dashboard"
    ADMIN_DASHBOARD = "admin_dashboard"
    ROLE_MANAGEMENT = "role_management"
    AUDIT_HISTORY = "audit_history"


ROLE_PERMISSIONS: dict[Role, frozenset[Resource]] = {
    Role.CUSTOMER: frozenset({Resource.PROFILE, Resource.OWN_HISTORY, Resource.BOOKINGS}),
    Role.PROVIDER: frozenset(
        {
            Resource.PROFILE,
            Resource.OWN_HISTORY,
            Resource.BOOKINGS,
            Resource.PROVIDER_DASHBOARD,
        }
    ),
    Role.ADMIN: frozenset(Resource),
}

_unmapped = set(Role) - set(ROLE_PERMISSIONS)
if _unmapped:  # pragma: no cover - guards edits to Role
    raise RuntimeError(f"Roles without an access policy: {sorted(r.value for r in _unmapped)}")


def is_allowed(role: Role, resource: Resource) -> bool:
    """Return True when ``role`` may access ``resource``."""

    return resource in ROLE_PERMISSIONS[Role(role)]


def current_session() -> SessionClaims:
    """Return the claims of the session that passed :func:`role_required`."""

    claims = g.get("session_claims")
    if claims is None:
        raise RuntimeError("current_session() called outside a role_required view.")
    return claims


def role_required(resource: Resource) -> Callable:
    """Require a valid session whose role may access ``resource``."""

    def decorator(view: Callable) -> Callable:
        @functools.wraps(view)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            try:
                claims = claims_from_payload(get_jwt())
            except Unauthorized as error:
                raise HTTPUnauthorized(error.message) from error
            if not is_allowed(claims.role, resource):
                raise Forbidden("Your role does not allow this action.")
            g.session_claims = claims
            return view(*args, **kwargs)

        return wrapper

    return decorator
