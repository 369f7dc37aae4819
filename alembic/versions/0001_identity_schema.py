from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


revision = "0001_identity_schema"
down_revision = None
branch_labels = None
depends_on = None

ROLE_VALUES = ("INSPECTOR", "MANAGER", "ADMIN")


def upgrade() -> None:
    bind = op.get_bind()
    inspector = inspect(bind)

    if "organizations" not in inspector.get_table_names():
        op.create_table(
            "organizations",
            sa.Column("id", sa.String(length=32), primary_key=True),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
        )

    inspector = inspect(bind)
    if "users" not in inspector.get_table_names():
        op.create_table(
            "users",
            sa.Column("id", sa.String(length=32), primary_key=True),
            sa.Column("email", sa.String(), nullable=False),
            sa.Column("name", sa.String(), nullable=True),
            sa.Column("password", sa.String(), nullable=True),
            sa.Column(
                "role",
                sa.Enum(*ROLE_VALUES, name="user_role", native_enum=False),
                nullable=False,
                server_default="INSPECTOR",
            ),
            sa.Column("is_owner", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("organization_id", sa.String(length=32), sa.ForeignKey("organizations.id"), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
        )
        op.create_index("ix_users_email", "users", ["email"], unique=True)
        op.create_index("ix_users_organization_id", "users", ["organization_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_users_organization_id", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
    op.drop_table("organizations")
