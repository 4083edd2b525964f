"""Account store backends."""

from .abstract_store import AbstractAccountStore, AuditRecord
from .sql_store import SQLAccountStore, normalize_email

__all__ = ["AbstractAccountStore", "AuditRecord", "SQLAccountStore", "normalize_email"]
