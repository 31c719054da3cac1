"""init

Revision ID: 0001_init
Revises:
Create Date: 2026-10-16
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _inspector():
    from sqlalchemy import inspect as sa_inspect
    return sa_inspect(op.get_bind())


def upgrade() -> None:
    inspector = _inspector()
    existing_tables = set(inspector.get_table_names())

    def existing_indexes(table: str) -> set[str]:
        if table not in existing_tables:
            return set()
        return {idx["name"] for idx in inspector.get_indexes(table)}

    if "credits" not in existing_tables:
        op.create_table(
            "credits",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("code", sa.String(), nullable=False),
            sa.Column("link", sa.String(), nullable=False),
            sa.Column("used", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("test", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
            sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=True),
        )
    idxs = existing_indexes("credits")
    if "ix_credits_id" not in idxs:
        op.create_index("ix_credits_id", "credits", ["id"])
    if "ix_credits_code" not in idxs:
        op.create_index("ix_credits_code", "credits", ["code"], unique=True)
    if "ix_credits_used" not in idxs:
        op.create_index("ix_credits_used", "credits", ["used"])
    if "ix_credits_test" not in idxs:
        op.create_index("ix_credits_test", "credits", ["test"])
    if "ix_credits_created_at" not in idxs:
        op.create_index("ix_credits_created_at", "credits", ["created_at"])

    if "eligible_users" not in existing_tables:
        op.create_table(
            "eligible_users",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("email", sa.String(), nullable=False),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("company", sa.String(), nullable=True),
            sa.Column("role", sa.String(), nullable=True),
            sa.Column("approval_status", sa.String(), nullable=False, server_default="approved"),
            sa.Column("claimed", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("credit_id", sa.Integer(), sa.ForeignKey("credits.id"), nullable=True, unique=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
        )
    idxs = existing_indexes("eligible_users")
    if "ix_eligible_users_id" not in idxs:
        op.create_index("ix_eligible_users_id", "eligible_users", ["id"])
    if "ix_eligible_users_email" not in idxs:
        op.create_index("ix_eligible_users_email", "eligible_users", ["email"], unique=True)
    if "ix_eligible_users_approval_status" not in idxs:
        op.create_index("ix_eligible_users_approval_status", "eligible_users", ["approval_status"])
    if "ix_eligible_users_claimed" not in idxs:
        op.create_index("ix_eligible_users_claimed", "eligible_users", ["claimed"])


def downgrade() -> None:
    op.drop_table("eligible_users")
    op.drop_table("credits")
