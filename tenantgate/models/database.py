"""SQLModel database table models."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import Field, SQLModel


def _utc_now() -> datetime:
    """Return current UTC time as naive datetime for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


def _new_uuid() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Tenants
# ---------------------------------------------------------------------------


class Tenant(SQLModel, table=True):
    __tablename__ = "tenants"

    id: int | None = Field(default=None, primary_key=True)
    external_id: str = Field(unique=True, index=True)  # stable across environments
    name: str
    slug: str = Field(unique=True)
    domain: str | None = None
    description: str | None = None
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


class EditorTenant(SQLModel, table=True):
    """Editor to tenant assignment, joined on the admin email (stored lowercased)."""

    __tablename__ = "editor_tenants"

    id: int | None = Field(default=None, primary_key=True)
    admin_user_email: str = Field(unique=True, index=True)
    tenant_id: int = Field(foreign_key="tenants.id", index=True)
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


# ---------------------------------------------------------------------------
# Admin identity and permissions
# ---------------------------------------------------------------------------


class AdminRole(SQLModel, table=True):
    __tablename__ = "admin_roles"

    id: int | None = Field(default=None, primary_key=True)
    code: str = Field(unique=True, index=True)  # super-admin | editor | author
    name: str
    description: str = ""


class AdminUser(SQLModel, table=True):
    __tablename__ = "admin_users"

    id: int | None = Field(default=None, primary_key=True)
    email: str = Field(unique=True, index=True)
    firstname: str = ""
    lastname: str = ""
    password_hash: str = ""
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


class AdminUserRole(SQLModel, table=True):
    __tablename__ = "admin_users_roles"

    user_id: int = Field(foreign_key="admin_users.id", primary_key=True)
    role_id: int = Field(foreign_key="admin_roles.id", primary_key=True)


class AdminPermission(SQLModel, table=True):
    __tablename__ = "admin_permissions"
    __table_args__ = (
        UniqueConstraint("role_id", "action", "subject", name="uq_admin_permissions_grant"),
    )

    id: int | None = Field(default=None, primary_key=True)
    role_id: int = Field(foreign_key="admin_roles.id", index=True)
    action: str = Field(index=True)
    subject: str | None = Field(default=None, index=True)
    conditions: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    ord: int = Field(default=0)
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------


class Document(SQLModel, table=True):
    """One record of any registered content type; attributes live in ``data``."""

    __tablename__ = "documents"

    id: int | None = Field(default=None, primary_key=True)
    document_id: str = Field(default_factory=_new_uuid, unique=True, index=True)
    content_type: str = Field(index=True)
    data: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    tenant_id: int | None = Field(default=None, foreign_key="tenants.id", index=True)
    published_at: datetime | None = None
    created_by_id: int | None = None
    updated_by_id: int | None = None
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)
