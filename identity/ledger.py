"""Role changes and the audit trail that records them."""

from __future__ import annotations

import logging
from typing import Optional

from models.account import Account, Role
from models.audit_entry import Actor, AuditAction, AuditEntry
from store import AbstractAccountStore, AuditRecord

from .errors import CollaboratorUnavailable, InvalidInput, NoChange, NotFound, StaleWrite

logger = logging.getLogger(__name__)

MAX_ROLE_WRITE_ATTEMPTS = 3


def coerce_role(value) -> Role:
    """Return ``value`` as a :class:`Role`, accepting names in any case."""

    if isinstance(value, Role):
        return value
    try:
        return Role(str(value).strip().upper())
    except ValueError as error:
        allowed = ", ".join(role.value for role in Role)
        raise InvalidInput(f"Role must be one of: {allowed}.") from error


class RoleLedger:
    """Apply role mutations together with exactly one audit entry each."""

    def __init__(self, store: AbstractAccountStore):
        self.store = store

    def change_role(
        self,
        account_id: int,
        new_role,
        actor: Actor,
        *,
        action: AuditAction = AuditAction.ROLE_CHANGED,
    ) -> Account:
        """Set the account's role and append the matching audit entry atomically.

        Raises :class:`NoChange` when the account already has ``new_role``;
        nothing is written in that case.
        """

        new_role = coerce_role(new_role)
        for _ in range(MAX_ROLE_WRITE_ATTEMPTS):
            account = self.store.get(account_id)
            if account is None:
                raise NotFound()
            previous = account.role
            if previous == new_role:
                raise NoChange(f"Account already has role {new_role.value}.")

            record = AuditRecord(
                action=action,
                actor=actor,
                payload={"previousRole": previous.value, "newRole": new_role.value},
            )
            try:
                return self.store.update(
                    account_id,
                    {"role": new_role},
                    expect={"role": previous},
                    audit=record,
                )
            except StaleWrite:
                logger.info("Role of account %s changed concurrently; retrying", account_id)
        raise CollaboratorUnavailable(f"Account {account_id} is being modified; try again.")

    def promote_to_admin(self, account_id: int, actor: Actor) -> Account:
        return self.change_role(
            account_id, Role.ADMIN, actor, action=AuditAction.PROMOTED_TO_ADMIN
        )

    def record(
        self,
        account_id: int,
        action: AuditAction,
        actor: Actor,
        payload: Optional[dict] = None,
    ) -> AuditEntry:
        """Append a standalone audit entry, for actions with no account write."""

        return self.store.append_audit(account_id, AuditRecord(action, actor, payload or {}))

    def history(
        self, account_id: int, *, limit: Optional[int] = None, offset: int = 0
    ) -> list[AuditEntry]:
        if self.store.get(account_id) is None:
            raise NotFound()
        return self.store.history(account_id, limit=limit, offset=offset)
