"""Tests for the access policy and session credentials."""

from __future__ import annotations

from datetime import timedelta

import pytest
from flask_jwt_extended import create_refresh_token

from identity.errors import Unauthorized
from identity.policy import ROLE_PERMISSIONS, Resource, is_allowed
from identity.sessions import SessionIssuer, claims_from_payload
from models.account import Role


def test_every_role_has_a_policy():
    assert set(ROLE_PERMISSIONS) == set(Role)


@pytest.mark.parametrize(
    "role, resource, allowed",
    [
        (Role.CUSTOMER, Resource.PROFILE, True),
        (Role.CUSTOMER, Resource.BOOKINGS, True),
        (Role.CUSTOMER, Resource.PROVIDER_DASHBOARD, False),
        (Role.CUSTOMER, Resource.ROLE_MANAGEMENT, False),
        (Role.PROVIDER, Resource.PROVIDER_DASHBOARD, True),
        (Role.PROVIDER, Resource.ADMIN_DASHBOARD, False),
        (Role.PROVIDER, Resource.AUDIT_HISTORY, False),
        (Role.ADMIN, Resource.ROLE_MANAGEMENT, True),
        (Role.ADMIN, Resource.AUDIT_HISTORY, True),
        ("ADMIN", Resource.ADMIN_DASHBOARD, True),
    ],
)
def test_role_permissions(role, resource, allowed):
    assert is_allowed(role, resource) is allowed


def test_admin_can_access_everything():
    assert all(is_allowed(Role.ADMIN, resource) for resource in Resource)


def test_session_round_trip(service, create_account):
    account = create_account("member@example.com", role=Role.PROVIDER)

    credential = service.sessions.issue(account)
    claims = service.sessions.recover(credential)

    assert claims.subject_id == account.id
    assert claims.role == Role.PROVIDER
    assert claims.expires_at is not None


@pytest.mark.parametrize("credential", ["", None, "not.a.jwt", "abc"])
def test_malformed_sessions_are_rejected(service, credential):
    with pytest.raises(Unauthorized):
        service.sessions.recover(credential)


def test_expired_session_is_rejected(service, create_account):
    account = create_account("member@example.com")
    expired = SessionIssuer(timedelta(seconds=-10)).issue(account)

    with pytest.raises(Unauthorized):
        service.sessions.recover(expired)


def test_refresh_tokens_are_not_sessions(service, create_account):
    account = create_account("member@example.com")
    refresh = create_refresh_token(identity=str(account.id), additional_claims={"role": "CUSTOMER"})

    with pytest.raises(Unauthorized):
        service.sessions.recover(refresh)


@pytest.mark.parametrize(
    "payload",
    [
        {"role": "CUSTOMER"},
        {"sub": "1"},
        {"sub": "1", "role": "OWNER"},
        {"sub": "abc", "role": "CUSTOMER"},
    ],
)
def test_claims_require_subject_and_known_role(payload):
    with pytest.raises(Unauthorized):
        claims_from_payload(payload)
