"""Audit entry model definition."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import event

from utils.clock import utcnow

from . import db


class AuditAction(str, enum.Enum):
    """Privileged actions recorded in the audit trail."""

    ACCOUNT_CREATED = "ACCOUNT_CREATED"
    ROLE_CHANGED = "ROLE_CHANGED"
    PROMOTED_TO_ADMIN = "PROMOTED_TO_ADMIN"
    EMAIL_VERIFIED = "EMAIL_VERIFIED"
    EMAIL_CHANGED = "EMAIL_CHANGED"
    PASSWORD_RESET = "PASSWORD_RESET"
    PASSWORD_CHANGED = "PASSWORD_CHANGED"
    LOGIN = "LOGIN"


class ActorKind(str, enum.Enum):
    """Who performed an audited action."""

    OPERATOR = "OPERATOR"
    SYSTEM = "SYSTEM"
    SELF = "SELF"


@dataclass(frozen=True)
class Actor:
    """Describes who performed an audited action."""

    kind: ActorKind
    id: Optional[str] = None

    @classmethod
    def operator(cls, operator_id) -> "Actor":
        """A human operator, identified by their account id."""
        return cls(ActorKind.OPERATOR, str(operator_id))

    @classmethod
    def system(cls, process_tag: str) -> "Actor":
        """An automated process such as a maintenance script."""
        return cls(ActorKind.SYSTEM, process_tag)

    @classmethod
    def self_service(cls, account_id) -> "Actor":
        return cls(ActorKind.SELF, str(account_id))


class AuditEntry(db.Model):
    """Immutable record of a privileged mutation on an account."""

    __tablename__ = "audit_entries"

    id = db.Column(db.Integer, primary_key=True)
    subject_account_id = db.Column(
        db.Integer,
        db.ForeignKey("accounts.id"),
        nullable=False,
        index=True,
    )
    action = db.Column(db.Enum(AuditAction, name="audit_action"), nullable=False)
    actor_kind = db.Column(db.Enum(ActorKind, name="audit_actor_kind"), nullable=False)
    actor_id = db.Column(db.String(255), nullable=True)
    payload = db.Column(db.JSON, nullable=False, default=dict)
    timestamp = db.Column(db.DateTime, nullable=False, default=utcnow)

    subject = db.relationship(
        "Account",
        backref=db.backref("audit_entries", lazy="dynamic", order_by="AuditEntry.id"),
    )

    def __repr__(self) -> str:
        return (
            f"<AuditEntry id={self.id} account={self.subject_account_id} "
            f"action={self.action.value}>"
        )

    def to_dict(self) -> dict:
        """Serialize the audit entry into a dictionary."""

        return {
            "id": self.id,
            "subject_account_id": self.subject_account_id,
            "action": self.action.value,
            "actor": {"kind": self.actor_kind.value, "id": self.actor_id},
            "payload": self.payload,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }


@event.listens_for(AuditEntry, "before_update")
def _reject_audit_update(mapper, connection, target) -> None:
    raise RuntimeError("Audit entries are append-only.")
