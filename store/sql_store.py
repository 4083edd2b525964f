"""SQLAlchemy-backed account store."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from identity.errors import DuplicateIdentity, NotFound, StaleWrite
from models import db as default_db
from models.account import Account
from models.audit_entry import AuditEntry

from .abstract_store import AbstractAccountStore, AuditRecord

logger = logging.getLogger(__name__)

TOKEN_FIELDS = ("verification_token", "reset_token")


def normalize_email(raw_email: Optional[str]) -> str:
    """Normalize an email string by stripping whitespace and lowering case."""
    return (raw_email or "").strip().lower()


def _violated_field(error: IntegrityError) -> Optional[str]:
    message = str(error.orig).lower()
    if "unique" not in message and "duplicate" not in message:
        return None
    if "external_id" in message:
        return "external_id"
    if "email" in message:
        return "email"
    return "unknown"


class SQLAccountStore(AbstractAccountStore):
    """Persist accounts and audit entries through the Flask-SQLAlchemy session."""

    def __init__(self, database: SQLAlchemy = default_db):
        self.db = database

    @property
    def session(self):
        return self.db.session

    def get(self, account_id: int) -> Optional[Account]:
        return self.session.get(Account, account_id)

    def find_by_email(self, email: str) -> Optional[Account]:
        normalized = normalize_email(email)
        if not normalized:
            return None
        return Account.query.filter(func.lower(Account.email) == normalized).first()

    def find_by_external_id(self, external_id: str) -> Optional[Account]:
        if not external_id:
            return None
        return Account.query.filter_by(external_id=external_id).first()

    def find_by_token(self, token_field: str, token: str) -> Optional[Account]:
        if token_field not in TOKEN_FIELDS:
            raise ValueError(f"Unknown token field: {token_field}")
        if not token:
            return None
        return Account.query.filter(getattr(Account, token_field) == token).first()

    def create(self, fields: Mapping[str, Any], audit: Optional[AuditRecord] = None) -> Account:
        account = Account(**fields)
        try:
            self.session.add(account)
            self.session.flush()
            if audit is not None:
                self.session.add(self._entry(account.id, audit))
            self.session.commit()
        except IntegrityError as error:
            self.session.rollback()
            field = _violated_field(error)
            if field is None:
                raise
            raise DuplicateIdentity(field=field) from error
        return account

    def update(
        self,
        account_id: int,
        patch: Mapping[str, Any],
        *,
        expect: Optional[Mapping[str, Any]] = None,
        audit: Optional[AuditRecord] = None,
    ) -> Account:
        if not patch:
            raise ValueError("An account update needs at least one field.")

        conditions = [Account.id == account_id]
        for name, value in (expect or {}).items():
            column = getattr(Account, name)
            conditions.append(column.is_(None) if value is None else column == value)

        statement = (
            update(Account)
            .where(*conditions)
            .values(**patch)
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.session.execute(statement)
            if result.rowcount == 0:
                self.session.rollback()
                if self.get(account_id) is None:
                    raise NotFound()
                raise StaleWrite(f"Account {account_id} changed during update.")
            if audit is not None:
                self.session.add(self._entry(account_id, audit))
            self.session.commit()
        except IntegrityError as error:
            self.session.rollback()
            field = _violated_field(error)
            if field is None:
                raise
            raise DuplicateIdentity(field=field) from error

        return self.session.get(Account, account_id, populate_existing=True)

    def append_audit(self, account_id: int, record: AuditRecord) -> AuditEntry:
        entry = self._entry(account_id, record)
        self.session.add(entry)
        self.session.commit()
        return entry

    def history(
        self, account_id: int, *, limit: Optional[int] = None, offset: int = 0
    ) -> list[AuditEntry]:
        query = (
            AuditEntry.query.filter_by(subject_account_id=account_id)
            .order_by(AuditEntry.id.asc())
            .offset(offset)
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def count_history(self, account_id: int) -> int:
        return AuditEntry.query.filter_by(subject_account_id=account_id).count()

    @staticmethod
    def _entry(account_id: int, record: AuditRecord) -> AuditEntry:
        logger.info(
            "Audit %s on account %s by %s:%s",
            record.action.value,
            account_id,
            record.actor.kind.value,
            record.actor.id,
        )
        return AuditEntry(
            subject_account_id=account_id,
            action=record.action,
            actor_kind=record.actor.kind,
            actor_id=record.actor.id,
            payload=dict(record.payload),
        )
