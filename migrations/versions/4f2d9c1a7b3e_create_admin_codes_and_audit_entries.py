"""create_admin_codes_and_audit_entries

Revision ID: 4f2d9c1a7b3e
Revises:
Create Date: 2026-10-16 09:00:00.000000

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "4f2d9c1a7b3e"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the admin code store and the audit trail."""
    op.create_table(
        "admin_codes",
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("code_hash", sa.String(length=60), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("attempts", sa.Integer(), nullable=False),
        sa.Column("max_attempts", sa.Integer(), nullable=False),
        sa.Column("consumed", sa.Boolean(), nullable=False),
        sa.Column("consumed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_admin_codes_email"), "admin_codes", ["email"], unique=False
    )
    # At most one unconsumed code per email
    op.create_index(
        "uq_admin_codes_email_unconsumed",
        "admin_codes",
        ["email"],
        unique=True,
        postgresql_where=sa.text("NOT consumed"),
        sqlite_where=sa.text("NOT consumed"),
    )

    op.create_table(
        "audit_entries",
        sa.Column(
            "action",
            sa.Enum(
                "REQUEST_CODE",
                "VERIFY_CODE",
                "LOGOUT",
                name="audit_action",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column(
            "outcome",
            sa.Enum(
                "SUCCESS",
                "FAILURE",
                "RATE_LIMITED",
                name="audit_outcome",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column("reason", sa.String(length=64), nullable=True),
        sa.Column("principal_id", sa.String(length=255), nullable=True),
        sa.Column("client_key", sa.String(length=64), nullable=True),
        sa.Column("client_agent", sa.String(length=512), nullable=True),
        sa.Column("detail", sa.JSON(), nullable=True),
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_audit_entries_action"), "audit_entries", ["action"], unique=False
    )
    op.create_index(
        op.f("ix_audit_entries_outcome"), "audit_entries", ["outcome"], unique=False
    )
    op.create_index(
        op.f("ix_audit_entries_principal_id"),
        "audit_entries",
        ["principal_id"],
        unique=False,
    )


def downgrade() -> None:
    """Drop the audit trail and the admin code store."""
    op.drop_index(op.f("ix_audit_entries_principal_id"), table_name="audit_entries")
    op.drop_index(op.f("ix_audit_entries_outcome"), table_name="audit_entries")
    op.drop_index(op.f("ix_audit_entries_action"), table_name="audit_entries")
    op.drop_table("audit_entries")
    op.drop_index("uq_admin_codes_email_unconsumed", table_name="admin_codes")
    op.drop_index(op.f("ix_admin_codes_email"), table_name="admin_codes")
    op.drop_table("admin_codes")
