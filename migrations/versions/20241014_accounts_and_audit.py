"""create accounts and audit entries tables"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "accounts_20241014"
down_revision = None
branch_labels = None
depends_on = None


AUTH_PROVIDERS = ("LOCAL", "EXTERNAL")
ROLES = ("CUSTOMER", "PROVIDER", "ADMIN")
AUDIT_ACTIONS = (
    "ACCOUNT_CREATED",
    "ROLE_CHANGED",
    "PROMOTED_TO_ADMIN",
    "EMAIL_VERIFIED",
    "EMAIL_CHANGED",
    "PASSWORD_RESET",
    "PASSWORD_CHANGED",
    "LOGIN",
)
ACTOR_KINDS = ("OPERATOR", "SYSTEM", "SELF")


def upgrade():
    auth_provider_enum = sa.Enum(*AUTH_PROVIDERS, name="auth_provider")
    role_enum = sa.Enum(*ROLES, name="account_role")
    audit_action_enum = sa.Enum(*AUDIT_ACTIONS, name="audit_action")
    actor_kind_enum = sa.Enum(*ACTOR_KINDS, name="audit_actor_kind")

    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=True),
        sa.Column("external_id", sa.String(length=255), nullable=True),
        sa.Column("auth_provider", auth_provider_enum, nullable=False),
        sa.Column("role", role_enum, nullable=False),
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("verification_token", sa.String(length=128), nullable=True),
        sa.Column("verification_token_expiry", sa.DateTime(), nullable=True),
        sa.Column("last_verification_email_sent", sa.DateTime(), nullable=True),
        sa.Column("reset_token", sa.String(length=128), nullable=True),
        sa.Column("reset_token_expiry", sa.DateTime(), nullable=True),
        sa.Column("last_reset_email_sent", sa.DateTime(), nullable=True),
        sa.Column("full_name", sa.String(length=255), nullable=True),
        sa.Column("avatar_url", sa.String(length=1024), nullable=True),
        sa.Column("phone", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("email", name="uq_accounts_email"),
        sa.UniqueConstraint("external_id", name="uq_accounts_external_id"),
        sa.CheckConstraint(
            "(auth_provider = 'LOCAL' AND password_hash IS NOT NULL AND external_id IS NULL)"
            " OR (auth_provider = 'EXTERNAL' AND password_hash IS NULL AND external_id IS NOT NULL)",
            name="ck_accounts_provider_credentials",
        ),
        sa.CheckConstraint(
            "(verification_token IS NULL) = (verification_token_expiry IS NULL)",
            name="ck_accounts_verification_pair",
        ),
        sa.CheckConstraint(
            "(reset_token IS NULL) = (reset_token_expiry IS NULL)",
            name="ck_accounts_reset_pair",
        ),
    )
    op.create_index("ix_accounts_verification_token", "accounts", ["verification_token"])
    op.create_index("ix_accounts_reset_token", "accounts", ["reset_token"])

    op.create_table(
        "audit_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("subject_account_id", sa.Integer(), sa.ForeignKey("accounts.id"), nullable=False),
        sa.Column("action", audit_action_enum, nullable=False),
        sa.Column("actor_kind", actor_kind_enum, nullable=False),
        sa.Column("actor_id", sa.String(length=255), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index(
        "ix_audit_entries_subject_account_id", "audit_entries", ["subject_account_id"]
    )


def downgrade():
    op.drop_index("ix_audit_entries_subject_account_id", table_name="audit_entries")
    op.drop_table("audit_entries")
    op.drop_index("ix_accounts_reset_token", table_name="accounts")
    op.drop_index("ix_accounts_verification_token", table_name="accounts")
    op.drop_table("accounts")

    bind = op.get_bind()
    for name in ("audit_actor_kind", "audit_action", "account_role", "auth_provider"):
        sa.Enum(name=name).drop(bind, checkfirst=True)
