"""create tenant schema

Revision ID: 7c1d2e3f4a5b
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
import sqlmodel.sql.sqltypes
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "7c1d2e3f4a5b"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create tenants, editor assignments, admin identity, permissions and documents."""
    # --- 1. Tenants and editor assignments ---
    op.create_table(
        "tenants",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("external_id", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("name", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("slug", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("domain", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("description", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug"),
    )
    op.create_index(op.f("ix_tenants_external_id"), "tenants", ["external_id"], unique=True)

    op.create_table(
        "editor_tenants",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("admin_user_email", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    # One tenant per editor email
    op.create_index(
        op.f("ix_editor_tenants_admin_user_email"),
        "editor_tenants",
        ["admin_user_email"],
        unique=True,
    )
    op.create_index(op.f("ix_editor_tenants_tenant_id"), "editor_tenants", ["tenant_id"])

    # --- 2. Admin identity ---
    op.create_table(
        "admin_roles",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("name", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("description", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_admin_roles_code"), "admin_roles", ["code"], unique=True)

    op.create_table(
        "admin_users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("firstname", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("lastname", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("password_hash", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_admin_users_email"), "admin_users", ["email"], unique=True)

    op.create_table(
        "admin_users_roles",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("role_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["role_id"], ["admin_roles.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["admin_users.id"]),
        sa.PrimaryKeyConstraint("user_id", "role_id"),
    )

    # --- 3. Permissions; the editor grant upserts on uq_admin_permissions_grant ---
    op.create_table(
        "admin_permissions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("role_id", sa.Integer(), nullable=False),
        sa.Column("action", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("subject", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("conditions", sa.JSON(), nullable=False),
        sa.Column("ord", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["role_id"], ["admin_roles.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("role_id", "action", "subject", name="uq_admin_permissions_grant"),
    )
    op.create_index(op.f("ix_admin_permissions_role_id"), "admin_permissions", ["role_id"])
    op.create_index(op.f("ix_admin_permissions_action"), "admin_permissions", ["action"])
    op.create_index(op.f("ix_admin_permissions_subject"), "admin_permissions", ["subject"])

    # --- 4. Documents ---
    op.create_table(
        "documents",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("document_id", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("content_type", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=True),
        sa.Column("published_at", sa.DateTime(), nullable=True),
        sa.Column("created_by_id", sa.Integer(), nullable=True),
        sa.Column("updated_by_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_documents_document_id"), "documents", ["document_id"], unique=True)
    op.create_index(op.f("ix_documents_content_type"), "documents", ["content_type"])
    op.create_index(op.f("ix_documents_tenant_id"), "documents", ["tenant_id"])


def downgrade() -> None:
    """Drop every table created by this revision."""
    op.drop_index(op.f("ix_documents_tenant_id"), table_name="documents")
    op.drop_index(op.f("ix_documents_content_type"), table_name="documents")
    op.drop_index(op.f("ix_documents_document_id"), table_name="documents")
    op.drop_table("documents")

    op.drop_index(op.f("ix_admin_permissions_subject"), table_name="admin_permissions")
    op.drop_index(op.f("ix_admin_permissions_action"), table_name="admin_permissions")
    op.drop_index(op.f("ix_admin_permissions_role_id"), table_name="admin_permissions")
    op.drop_table("admin_permissions")

    op.drop_table("admin_users_roles")

    op.drop_index(op.f("ix_admin_users_email"), table_name="admin_users")
    op.drop_table("admin_users")

    op.drop_index(op.f("ix_admin_roles_code"), table_name="admin_roles")
    op.drop_table("admin_roles")

    op.drop_index(op.f("ix_editor_tenants_tenant_id"), table_name="editor_tenants")
    op.drop_index(op.f("ix_editor_tenants_admin_user_email"), table_name="editor_tenants")
    op.drop_table("editor_tenants")

    op.drop_index(op.f("ix_tenants_external_id"), table_name="tenants")
    op.drop_table("tenants")
