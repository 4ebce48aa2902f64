"""Initial schema: users, payouts, credit ledger and audit log."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20261018_000001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table("users"):
        op.create_table(
            "users",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column("identity_subject", sa.String(length=128), nullable=False, unique=True),
            sa.Column("email", sa.String(length=255), nullable=False, unique=True),
            sa.Column("name", sa.String(length=120), nullable=True),
            sa.Column("image_url", sa.String(length=512), nullable=True),
            sa.Column("role", sa.String(length=16), nullable=False, server_default="UNASSIGNED"),
            sa.Column("specialty", sa.String(length=120), nullable=True),
            sa.Column("experience_years", sa.Integer(), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("verification_status", sa.String(length=16), nullable=True, server_default="PENDING"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("credits", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
            sa.CheckConstraint("credits >= 0", name="ck_users_credits_non_negative"),
        )
        op.create_index("ix_users_identity_subject", "users", ["identity_subject"])
        op.create_index("ix_users_role", "users", ["role"])
        op.create_index("ix_users_verification_status", "users", ["verification_status"])

    if not inspector.has_table("payouts"):
        op.create_table(
            "payouts",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column(
                "lawyer_id",
                sa.String(length=36),
                sa.ForeignKey("users.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("credits", sa.Integer(), nullable=False),
            sa.Column("amount", sa.Float(), nullable=False, server_default="0"),
            sa.Column("platform_fee", sa.Float(), nullable=False, server_default="0"),
            sa.Column("net_amount", sa.Float(), nullable=False, server_default="0"),
            sa.Column("paypal_email", sa.String(length=255), nullable=True),
            sa.Column("status", sa.String(length=16), nullable=False, server_default="PROCESSING"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
            sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("processed_by", sa.String(length=36), nullable=True),
        )
        op.create_index("ix_payouts_lawyer_id", "payouts", ["lawyer_id"])
        op.create_index("ix_payouts_status", "payouts", ["status"])

    if not inspector.has_table("credit_transactions"):
        op.create_table(
            "credit_transactions",
            sa.Column("id", sa.String(length=36), primary_key=True),
            sa.Column(
                "user_id",
                sa.String(length=36),
                sa.ForeignKey("users.id", ondelete="CASCADE"),
                nullable=False,
            ),
            sa.Column("amount", sa.Integer(), nullable=False),
            sa.Column("type", sa.String(length=32), nullable=False),
            sa.Column("package_id", sa.String(length=64), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        )
        op.create_index("ix_credit_transactions_user_id", "credit_transactions", ["user_id"])

    if not inspector.has_table("audit_logs"):
        op.create_table(
            "audit_logs",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
            sa.Column(
                "actor_id",
                sa.String(length=36),
                sa.ForeignKey("users.id", ondelete="SET NULL"),
                nullable=True,
            ),
            sa.Column("event_type", sa.String(length=64), nullable=False),
            sa.Column("message", sa.Text(), nullable=False),
            sa.Column("context", sa.JSON(), nullable=True),
            sa.Column("level", sa.String(length=20), nullable=False, server_default="info"),
        )
        op.create_index("ix_audit_logs_timestamp", "audit_logs", ["timestamp"])
        op.create_index("ix_audit_logs_actor_id", "audit_logs", ["actor_id"])
        op.create_index("ix_audit_logs_event_type", "audit_logs", ["event_type"])
        op.create_index("ix_audit_logs_level", "audit_logs", ["level"])


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("credit_transactions")
    op.drop_table("payouts")
    op.drop_table("users")
