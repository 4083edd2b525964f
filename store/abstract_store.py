"""Account store abstraction layer."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from models.account import Account
from models.audit_entry import Actor, AuditAction, AuditEntry


@dataclass(frozen=True)
class AuditRecord:
    """An audit entry waiting to be written alongside an account mutation."""

    action: AuditAction
    actor: Actor
    payload: dict = field(default_factory=dict)


class AbstractAccountStore(ABC):
    """Interface for durable account and audit storage.

    Implementations enforce email and external id uniqueness themselves and
    write an account mutation and its audit record in one transaction.
    """

    @abstractmethod
    def get(self, account_id: int) -> Optional[Account]:
        """Return the account with the given id, if any."""

    @abstractmethod
    def find_by_email(self, email: str) -> Optional[Account]:
        """Return the account registered under ``email`` (case-insensitive)."""

    @abstractmethod
    def find_by_external_id(self, external_id: str) -> Optional[Account]:
        """Return the externally authenticated account with ``external_id``."""

    @abstractmethod
    def find_by_token(self, token_field: str, token: str) -> Optional[Account]:
        """Return the account whose ``token_field`` column holds ``token``."""

    @abstractmethod
    def create(self, fields: Mapping[str, Any], audit: Optional[AuditRecord] = None) -> Account:
        """Insert a new account.

        Raises :class:`identity.errors.DuplicateIdentity` when the email or
        external id is already present.
        """

    @abstractmethod
    def update(
        self,
        account_id: int,
        patch: Mapping[str, Any],
        *,
        expect: Optional[Mapping[str, Any]] = None,
        audit: Optional[AuditRecord] = None,
    ) -> Account:
        """Apply ``patch`` to one account and return it.

        When ``expect`` is given the write only happens if those columns
        still hold the expected values; otherwise
        :class:`identity.errors.StaleWrite` is raised. Raises
        :class:`identity.errors.NotFound` if the account does not exist.
        """

    @abstractmethod
    def append_audit(self, account_id: int, record: AuditRecord) -> AuditEntry:
        """Append a standalone audit entry for ``account_id``."""

    @abstractmethod
    def history(
        self, account_id: int, *, limit: Optional[int] = None, offset: int = 0
    ) -> list[AuditEntry]:
        """Return the account's audit entries in append order."""

    @abstractmethod
    def count_history(self, account_id: int) -> int:
        """Return how many audit entries exist for the account."""
