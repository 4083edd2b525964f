"""Tests for signing in through an external identity provider."""

from identity.errors import ErrorKind
from models.account import Account, AuthProvider, Role
from models.audit_entry import AuditAction


def test_first_sign_in_creates_verified_external_account(service, identity_provider, mailer):
    identity_provider.add("code-1", "google-sub-1", "ext@example.com", display_name="Ext Person")

    outcome = service.sign_in_with_external_identity("code-1")

    assert outcome.ok
    assert outcome.value.created is True
    account = outcome.value.account
    assert account.auth_provider == AuthProvider.EXTERNAL
    assert account.external_id == "google-sub-1"
    assert account.password_hash is None
    assert account.email_verified is True
    assert account.role == Role.CUSTOMER
    assert account.full_name == "Ext Person"
    assert mailer.sent == []

    entries = service.get_history(account.id).value
    assert [entry.action for entry in entries] == [AuditAction.ACCOUNT_CREATED, AuditAction.LOGIN]
    assert entries[0].payload == {"path": "EXTERNAL", "role": "CUSTOMER"}
    assert service.sessions.recover(outcome.value.session).subject_id == account.id


def test_returning_sign_in_reuses_account(service, identity_provider):
    identity_provider.add("code-1", "google-sub-1", "ext@example.com")
    first = service.sign_in_with_external_identity("code-1").value

    second = service.sign_in_with_external_identity("code-1")

    assert second.ok
    assert second.value.created is False
    assert second.value.account.id == first.account.id
    assert Account.query.count() == 1


def test_email_of_local_account_is_not_linked(service, identity_provider, create_account):
    local = create_account("shared@example.com")
    identity_provider.add("code-1", "google-sub-1", "Shared@Example.com")

    outcome = service.sign_in_with_external_identity("code-1")

    assert outcome.error is ErrorKind.ACCOUNT_CONFLICT
    account = service.store.get(local.id)
    assert account.auth_provider == AuthProvider.LOCAL
    assert account.external_id is None
    assert Account.query.count() == 1


def test_rejected_and_unavailable_provider(service, identity_provider):
    assert service.sign_in_with_external_identity("unknown").error is ErrorKind.INVALID_CREDENTIALS

    identity_provider.unavailable = True
    outcome = service.sign_in_with_external_identity("unknown")

    assert outcome.error is ErrorKind.COLLABORATOR_UNAVAILABLE
    assert ErrorKind.COLLABORATOR_UNAVAILABLE.retryable is True
    assert Account.query.count() == 0


def test_external_accounts_keep_provider_email(service, identity_provider):
    identity_provider.add("code-1", "google-sub-1", "ext@example.com")
    account = service.sign_in_with_external_identity("code-1").value.account

    outcome = service.change_email(account.id, "other@example.com")

    assert outcome.error is ErrorKind.ACCOUNT_CONFLICT
    assert service.change_password(account.id, "anything1", "newpassword1").error is (
        ErrorKind.INVALID_CREDENTIALS
    )
