"""Account registration, sign-in, verification, reset and role operations.

Every public method returns an :class:`~identity.errors.Outcome`: either the
success payload or one of the :class:`~identity.errors.ErrorKind` values. The
route layer renders outcomes; nothing here raises an identity error to its
caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Mapping, Optional

from mail import AbstractMailer, MailTemplate, build_mailer
from models.account import Account, AuthProvider, Role
from models.audit_entry import Actor, ActorKind, AuditAction, AuditEntry
from store import AbstractAccountStore, AuditRecord, SQLAccountStore, normalize_email
from utils.clock import utcnow

from .credentials import ExternalCredentialVerifier, LocalCredentialVerifier, validate_password
from .errors import (
    AccountConflict,
    CollaboratorUnavailable,
    CooldownActive,
    DuplicateIdentity,
    EmailNotVerified,
    EmailTaken,
    InvalidCredentials,
    InvalidInput,
    NoChange,
    NotFound,
    StaleWrite,
    TokenInvalid,
    Unauthorized,
    operation,
)
from .ledger import RoleLedger, coerce_role
from .policy import Resource, is_allowed
from .providers import AbstractIdentityProvider, GoogleIdentityProvider
from .sessions import SessionIssuer
from .tokens import TOKEN_FIELDS, IssuedToken, TokenIssuer, TokenPurpose

logger = logging.getLogger(__name__)

SELF_SERVICE_ROLES = frozenset({Role.CUSTOMER, Role.PROVIDER})
PROFILE_FIELDS = ("full_name", "phone", "avatar_url")
MAIL_TEMPLATES = {
    TokenPurpose.VERIFY_EMAIL: MailTemplate.VERIFY_EMAIL,
    TokenPurpose.RESET_PASSWORD: MailTemplate.RESET_PASSWORD,
}


@dataclass(frozen=True)
class Registered:
    account: Account
    verification_sent: bool


@dataclass(frozen=True)
class SignedIn:
    account: Account
    session: str
    created: bool = False


def _require_email(raw_email: Optional[str]) -> str:
    email = normalize_email(raw_email)
    if not email or "@" not in email or len(email) > 255:
        raise InvalidInput("A valid email address is required.")
    return email


def _clean_profile(changes: Mapping[str, object]) -> dict:
    """Strip descriptive fields; blank strings become ``None``."""

    cleaned = {}
    for key, value in changes.items():
        if value is not None and not isinstance(value, str):
            raise InvalidInput(f"{key} must be a string.")
        cleaned[key] = (value.strip() or None) if value is not None else None
    return cleaned


class IdentityService:
    """Facade over the account store, token issuer, verifiers, sessions and ledger."""

    def __init__(
        self,
        store: AbstractAccountStore,
        mailer: AbstractMailer,
        identity_provider: AbstractIdentityProvider,
        tokens: TokenIssuer,
        sessions: SessionIssuer,
        *,
        ledger: Optional[RoleLedger] = None,
        password_min_length: int = 8,
    ):
        self.store = store
        self.mailer = mailer
        self.identity_provider = identity_provider
        self.tokens = tokens
        self.sessions = sessions
        self.ledger = ledger or RoleLedger(store)
        self.password_min_length = password_min_length
        self.local = LocalCredentialVerifier()
        self.external = ExternalCredentialVerifier()

    @classmethod
    def from_config(
        cls,
        config: Mapping,
        *,
        store: Optional[AbstractAccountStore] = None,
        mailer: Optional[AbstractMailer] = None,
        identity_provider: Optional[AbstractIdentityProvider] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> "IdentityService":
        store = store or SQLAccountStore()
        return cls(
            store=store,
            mailer=mailer or build_mailer(config),
            identity_provider=identity_provider
            or GoogleIdentityProvider(config.get("GOOGLE_CLIENT_ID")),
            tokens=TokenIssuer.from_config(config, clock=clock),
            sessions=SessionIssuer(config["SESSION_TTL"]),
            ledger=RoleLedger(store),
            password_min_length=config.get("PASSWORD_MIN_LENGTH", 8),
        )

    # Registration and sign-in

    @operation
    def register(
        self,
        email: str,
        password: str,
        full_name: Optional[str] = None,
        role=Role.CUSTOMER,
        phone: Optional[str] = None,
    ) -> Registered:
        """Create a LOCAL account and send its verification email."""

        email = _require_email(email)
        validate_password(password, self.password_min_length)
        role = coerce_role(role)
        if role not in SELF_SERVICE_ROLES:
            raise InvalidInput("Role must be one of: CUSTOMER, PROVIDER.")
        profile = _clean_profile({"full_name": full_name, "phone": phone})

        if self.store.find_by_email(email) is not None:
            raise EmailTaken()

        issued = self.tokens.issue(TokenPurpose.VERIFY_EMAIL)
        fields = {
            "email": email,
            "password_hash": Account.hash_password(password),
            "auth_provider": AuthProvider.LOCAL,
            "role": role,
            "email_verified": False,
            **profile,
            **self.tokens.stored(TokenPurpose.VERIFY_EMAIL, issued, sent_at=self.tokens.now()),
        }
        record = AuditRecord(
            AuditAction.ACCOUNT_CREATED,
            Actor(ActorKind.SELF),
            {"path": AuthProvider.LOCAL.value, "role": role.value},
        )
        try:
            account = self.store.create(fields, audit=record)
        except DuplicateIdentity as error:
            raise EmailTaken() from error

        try:
            self._deliver(account, TokenPurpose.VERIFY_EMAIL, issued)
        except CollaboratorUnavailable:
            logger.warning("Verification email for account %s was not sent", account.id)
            account = self.store.update(account.id, {"last_verification_email_sent": None})
            return Registered(account=account, verification_sent=False)
        return Registered(account=account, verification_sent=True)

    @operation
    def login(self, email: str, password: str) -> SignedIn:
        """Authenticate a LOCAL account by password and mint a session."""

        account = self.store.find_by_email(email)
        if not self.local.authenticate(account, password):
            logger.info("Rejected password sign-in")
            raise InvalidCredentials()
        if not account.email_verified:
            raise EmailNotVerified()

        session = self.sessions.issue(account)
        self.ledger.record(
            account.id, AuditAction.LOGIN, Actor.self_service(account.id), {"method": "LOCAL"}
        )
        return SignedIn(account=account, session=session)

    @operation
    def sign_in_with_external_identity(self, auth_code: str) -> SignedIn:
        """Sign in with an identity provider credential, creating the account on first sight.

        An email already registered to a LOCAL account is never linked
        automatically; the caller gets ``AccountConflict`` instead.
        """

        identity = self.identity_provider.exchange(auth_code)
        account = self.store.find_by_external_id(identity.external_id)
        created = False

        if account is None:
            if self.store.find_by_email(identity.email) is not None:
                logger.info("External sign-in collided with an existing email")
                raise AccountConflict()
            record = AuditRecord(
                AuditAction.ACCOUNT_CREATED,
                Actor(ActorKind.SELF),
                {"path": AuthProvider.EXTERNAL.value, "role": Role.CUSTOMER.value},
            )
            try:
                account = self.store.create(
                    {
                        "email": normalize_email(identity.email),
                        "external_id": identity.external_id,
                        "auth_provider": AuthProvider.EXTERNAL,
                        "role": Role.CUSTOMER,
                        "email_verified": True,
                        "full_name": identity.display_name,
                        "avatar_url": identity.avatar_url,
                    },
                    audit=record,
                )
                created = True
            except DuplicateIdentity as error:
                if error.field != "external_id":
                    raise AccountConflict() from error
                account = self.store.find_by_external_id(identity.external_id)
                if account is None:
                    raise

        if not self.external.authenticate(account, identity):
            raise InvalidCredentials()

        session = self.sessions.issue(account)
        self.ledger.record(
            account.id, AuditAction.LOGIN, Actor.self_service(account.id), {"method": "EXTERNAL"}
        )
        return SignedIn(account=account, session=session, created=created)

    # Email verification

    @operation
    def request_verification(self, email: str) -> None:
        """Send a fresh verification token, subject to the resend cooldown."""

        account = self.store.find_by_email(email)
        if account is None:
            logger.info("Verification requested for an unknown email")
            return None
        if account.email_verified:
            raise NoChange("Email address is already verified.")
        self._reissue(account, TokenPurpose.VERIFY_EMAIL)
        return None

    @operation
    def confirm_verification(self, token: str) -> SignedIn:
        """Consume a verification token and mark the email as verified."""

        account = self._consume(
            TokenPurpose.VERIFY_EMAIL,
            token,
            {"email_verified": True},
            AuditAction.EMAIL_VERIFIED,
        )
        return SignedIn(account=account, session=self.sessions.issue(account))

    # Password reset

    @operation
    def request_password_reset(self, email: str) -> None:
        """Send a password reset token.

        Unknown emails and externally authenticated accounts get the same
        empty success as a real request.
        """

        account = self.store.find_by_email(email)
        if account is None or account.password_hash is None:
            logger.info("Password reset requested for an account without a password")
            return None
        self._reissue(account, TokenPurpose.RESET_PASSWORD)
        return None

    @operation
    def confirm_password_reset(self, token: str, new_password: str) -> SignedIn:
        """Consume a reset token and store the new password."""

        validate_password(new_password, self.password_min_length)
        account = self._consume(
            TokenPurpose.RESET_PASSWORD,
            token,
            {"password_hash": Account.hash_password(new_password)},
            AuditAction.PASSWORD_RESET,
        )
        return SignedIn(account=account, session=self.sessions.issue(account))

    # Roles and audit

    @operation
    def change_role(
        self, account_id: int, new_role, actor: Actor, actor_role: Optional[Role] = None
    ) -> Account:
        """Change an account's role; ``NoChange`` when it already has it."""

        self._authorize_role_change(actor, actor_role)
        return self.ledger.change_role(account_id, new_role, actor)

    @operation
    def promote_to_admin(
        self, account_id: int, actor: Actor, actor_role: Optional[Role] = None
    ) -> Account:
        self._authorize_role_change(actor, actor_role)
        return self.ledger.promote_to_admin(account_id, actor)

    @operation
    def get_history(
        self, account_id: int, limit: Optional[int] = None, offset: int = 0
    ) -> list[AuditEntry]:
        return self.ledger.history(account_id, limit=limit, offset=offset)

    # Profile

    @operation
    def get_profile(self, account_id: int) -> Account:
        return self._get(account_id)

    @operation
    def update_profile(self, account_id: int, **changes) -> Account:
        unknown = set(changes) - set(PROFILE_FIELDS)
        if unknown:
            raise InvalidInput(f"Unknown profile fields: {', '.join(sorted(unknown))}.")
        patch = {key: value for key, value in _clean_profile(changes).items() if value is not None}
        if not patch:
            raise InvalidInput("Provide at least one field to update.")
        self._get(account_id)
        return self.store.update(account_id, patch)

    @operation
    def change_password(self, account_id: int, current_password: str, new_password: str) -> Account:
        account = self._get(account_id)
        if not self.local.authenticate(account, current_password):
            raise InvalidCredentials("Current password is incorrect.")
        validate_password(new_password, self.password_min_length)
        return self.store.update(
            account.id,
            {
                "password_hash": Account.hash_password(new_password),
                **self.tokens.cleared(TokenPurpose.RESET_PASSWORD),
            },
            audit=AuditRecord(AuditAction.PASSWORD_CHANGED, Actor.self_service(account.id)),
        )

    @operation
    def change_email(self, account_id: int, new_email: str) -> Account:
        """Move a LOCAL account to a new email, which must then be verified again."""

        new_email = _require_email(new_email)
        account = self._get(account_id)
        if account.auth_provider == AuthProvider.EXTERNAL:
            raise AccountConflict("This email is managed by your sign-in provider.")
        if account.email == new_email:
            raise NoChange("That is already your email address.")
        if self.store.find_by_email(new_email) is not None:
            raise EmailTaken()

        issued = self.tokens.issue(TokenPurpose.VERIFY_EMAIL)
        previous_email = account.email
        try:
            account = self.store.update(
                account.id,
                {
                    "email": new_email,
                    "email_verified": False,
                    **self.tokens.stored(
                        TokenPurpose.VERIFY_EMAIL, issued, sent_at=self.tokens.now()
                    ),
                    # A reset link mailed to the previous address must stop working.
                    **self.tokens.cleared(TokenPurpose.RESET_PASSWORD),
                    "last_reset_email_sent": None,
                },
                audit=AuditRecord(
                    AuditAction.EMAIL_CHANGED,
                    Actor.self_service(account.id),
                    {"previousEmail": previous_email, "newEmail": new_email},
                ),
            )
        except DuplicateIdentity as error:
            raise EmailTaken() from error

        try:
            self._deliver(account, TokenPurpose.VERIFY_EMAIL, issued)
        except CollaboratorUnavailable:
            logger.warning("Verification email for account %s was not sent", account.id)
            account = self.store.update(account.id, {"last_verification_email_sent": None})
        return account

    # Helpers

    def _get(self, account_id: int) -> Account:
        account = self.store.get(account_id)
        if account is None:
            raise NotFound()
        return account

    @staticmethod
    def _authorize_role_change(actor: Actor, actor_role: Optional[Role]) -> None:
        if actor.kind == ActorKind.SYSTEM:
            return
        if actor.kind == ActorKind.OPERATOR and actor_role is not None:
            if is_allowed(actor_role, Resource.ROLE_MANAGEMENT):
                return
        raise Unauthorized("Only administrators can change roles.")

    def _deliver(self, account: Account, purpose: TokenPurpose, issued: IssuedToken) -> None:
        ttl = self.tokens.policies[purpose].ttl
        self.mailer.send(
            account.email,
            MAIL_TEMPLATES[purpose],
            {
                "token": issued.token,
                "email": account.email,
                "full_name": account.full_name,
                "expires_minutes": int(ttl.total_seconds() // 60),
            },
        )

    def _reissue(self, account: Account, purpose: TokenPurpose) -> Account:
        remaining = self.tokens.cooldown_remaining(account, purpose)
        if remaining is not None:
            raise CooldownActive(retry_after=remaining)

        last_sent_field = TOKEN_FIELDS[purpose].last_sent
        previous_sent = getattr(account, last_sent_field)
        issued = self.tokens.issue(purpose)
        # Deliver before persisting: a failed send leaves the account untouched.
        self._deliver(account, purpose, issued)
        try:
            return self.store.update(
                account.id,
                self.tokens.stored(purpose, issued, sent_at=self.tokens.now()),
                expect={last_sent_field: previous_sent},
            )
        except StaleWrite as error:
            raise CooldownActive() from error

    def _consume(
        self,
        purpose: TokenPurpose,
        token: str,
        effect: dict,
        action: AuditAction,
    ) -> Account:
        token_field = TOKEN_FIELDS[purpose].token
        account = self.store.find_by_token(token_field, token)
        if account is None or not self.tokens.validate(account, token, purpose):
            raise TokenInvalid()
        try:
            return self.store.update(
                account.id,
                {**effect, **self.tokens.cleared(purpose)},
                expect=self.tokens.guard(account, purpose),
                audit=AuditRecord(action, Actor.self_service(account.id)),
            )
        except (StaleWrite, NotFound) as error:
            raise TokenInvalid() from error
