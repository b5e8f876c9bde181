"""create admin panel schema

Revision ID: a7c1e2d3f4b5
Revises:
Create Date: 2026-10-19

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = "a7c1e2d3f4b5"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=False),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    insp = inspect(bind)
    existing_tables = set(insp.get_table_names())

    if "users" not in existing_tables:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("email", sa.String(length=320), nullable=False),
            sa.Column("password_hash", sa.String(length=255), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            *_created_at(),
            sa.UniqueConstraint("email", name="uq_users_email"),
        )

    if "roles" not in existing_tables:
        op.create_table(
            "roles",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("key", sa.String(length=64), nullable=False),
            sa.Column("name", sa.String(length=128), nullable=False),
            *_created_at(),
            sa.UniqueConstraint("key", name="uq_roles_key"),
        )

    if "user_roles" not in existing_tables:
        op.create_table(
            "user_roles",
            sa.Column("user_id", sa.Integer(), nullable=False),
            sa.Column("role_id", sa.Integer(), nullable=False),
            sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["role_id"], ["roles.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("user_id", "role_id"),
        )

    if "permission_rules" not in existing_tables:
        op.create_table(
            "permission_rules",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("role_id", sa.Integer(), nullable=False),
            sa.Column("sequence", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("component", sa.String(length=255), nullable=False, server_default=".*"),
            sa.Column("instance", sa.String(length=255), nullable=False, server_default=".*"),
            sa.Column("level", sa.Integer(), nullable=False, server_default="0"),
            sa.ForeignKeyConstraint(["role_id"], ["roles.id"], ondelete="CASCADE"),
        )
        op.create_index("idx_permission_rules_role_sequence", "permission_rules", ["role_id", "sequence"])

    if "module_vars" not in existing_tables:
        op.create_table(
            "module_vars",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("namespace", sa.String(length=64), nullable=False),
            sa.Column("name", sa.String(length=64), nullable=False),
            sa.Column("value_json", sa.Text(), nullable=True),
            sa.UniqueConstraint("namespace", "name", name="uq_module_vars_namespace_name"),
        )

    if "audit_events" not in existing_tables:
        op.create_table(
            "audit_events",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            *_created_at(),
            sa.Column("request_id", sa.String(length=64), nullable=True),
            sa.Column("client_ip", sa.String(length=64), nullable=True),
            sa.Column("actor_user_id", sa.Integer(), nullable=True),
            sa.Column("actor_user_email", sa.String(length=320), nullable=True),
            sa.Column("action", sa.String(length=128), nullable=False),
            sa.Column("entity_type", sa.String(length=128), nullable=True),
            sa.Column("entity_id", sa.String(length=128), nullable=True),
            sa.Column("reason", sa.String(length=512), nullable=True),
            sa.Column("metadata_json", sa.Text(), nullable=True),
            sa.ForeignKeyConstraint(["actor_user_id"], ["users.id"], ondelete="SET NULL"),
        )
        op.create_index("idx_audit_events_action_created", "audit_events", ["action", "created_at"])

    if "admin_categories" not in existing_tables:
        op.create_table(
            "admin_categories",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("name", sa.String(length=32), nullable=False),
            sa.Column("description", sa.Text(), nullable=False, server_default=""),
            *_created_at(),
            sa.Column(
                "updated_at",
                sa.DateTime(timezone=False),
                nullable=False,
                server_default=sa.func.current_timestamp(),
            ),
            sa.UniqueConstraint("name", name="uq_admin_categories_name"),
        )

    if "installed_modules" not in existing_tables:
        op.create_table(
            "installed_modules",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("name", sa.String(length=64), nullable=False),
            sa.Column("display_name", sa.String(length=64), nullable=False),
            sa.Column("description", sa.Text(), nullable=False, server_default=""),
            sa.Column("icon_path", sa.String(length=255), nullable=False, server_default=""),
            sa.Column("kind", sa.String(length=16), nullable=False, server_default="user"),
            sa.Column("state", sa.String(length=16), nullable=False, server_default="active"),
            sa.Column("admin_capable", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.UniqueConstraint("name", name="uq_installed_modules_name"),
        )

    if "admin_module_links" not in existing_tables:
        # category_id carries no foreign key; dangling ids resolve to the default category.
        op.create_table(
            "admin_module_links",
            sa.Column("module_id", sa.Integer(), nullable=False),
            sa.Column("category_id", sa.Integer(), nullable=True),
            sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
            sa.ForeignKeyConstraint(["module_id"], ["installed_modules.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("module_id"),
        )
        op.create_index("idx_admin_module_links_category", "admin_module_links", ["category_id", "sort_order"])


def downgrade() -> None:
    op.drop_index("idx_admin_module_links_category", table_name="admin_module_links")
    op.drop_table("admin_module_links")
    op.drop_table("installed_modules")
    op.drop_table("admin_categories")
    op.drop_index("idx_audit_events_action_created", table_name="audit_events")
    op.drop_table("audit_events")
    op.drop_table("module_vars")
    op.drop_index("idx_permission_rules_role_sequence", table_name="permission_rules")
    op.drop_table("permission_rules")
    op.drop_table("user_roles")
    op.drop_table("roles")
    op.drop_table("users")
