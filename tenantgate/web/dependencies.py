"""Wiring of repositories, services and the tenant layer, shared by app and CLI."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog
from fastapi import Request

from tenantgate.config.settings import (
    AUTHOR_ROLE_CODE,
    EDITOR_ROLE_CODE,
    SUPER_ADMIN_ROLE_CODE,
    Settings,
)
from tenantgate.documents.service import DocumentService
from tenantgate.permissions.conditions import ConditionProvider
from tenantgate.permissions.engine import PermissionEngine
from tenantgate.storage.documents import DocumentStore
from tenantgate.storage.repositories.admin_users import AdminUserRepository
from tenantgate.storage.repositories.assignments import AssignmentRepository
from tenantgate.storage.repositories.permissions import PermissionRepository
from tenantgate.storage.repositories.tenants import TenantRepository
from tenantgate.tenancy.conditions import register_tenant_condition
from tenantgate.tenancy.grants import ensure_editor_tenant_permissions
from tenantgate.tenancy.interceptor import TenantAccessInterceptor
from tenantgate.tenancy.lifecycle import TenantAutoAssigner
from tenantgate.tenancy.resolver import TenantResolver
from tenantgate.web.auth.tokens import AdminTokenService

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = structlog.get_logger(__name__)

DEFAULT_ROLES = (
    (SUPER_ADMIN_ROLE_CODE, "Super Admin", "Full access to every tenant"),
    (EDITOR_ROLE_CODE, "Editor", "Manages the content of one tenant"),
    (AUTHOR_ROLE_CODE, "Author", "Manages own content"),
)


@dataclass
class Platform:
    settings: Settings
    engine: AsyncEngine
    store: DocumentStore
    tenants: TenantRepository
    assignments: AssignmentRepository
    users: AdminUserRepository
    permissions: PermissionRepository
    tokens: AdminTokenService
    resolver: TenantResolver
    conditions: ConditionProvider
    access: PermissionEngine
    documents: DocumentService
    assigner: TenantAutoAssigner


def build_platform(engine: AsyncEngine, settings: Settings) -> Platform:
    """Create every collaborator and register the tenant layer on them."""
    store = DocumentStore(engine)
    users = AdminUserRepository(engine)
    assignments = AssignmentRepository(engine)
    permissions = PermissionRepository(engine)
    tokens = AdminTokenService(settings.secret_key, settings.admin_token_ttl_seconds)
    resolver = TenantResolver(users, assignments, token_user_id=tokens.user_id_or_none)

    conditions = ConditionProvider()
    register_tenant_condition(conditions, resolver)

    documents = DocumentService(store, settings)
    documents.use(TenantAccessInterceptor(resolver, store))
    assigner = TenantAutoAssigner(resolver, store)
    assigner.register(documents)

    return Platform(
        settings=settings,
        engine=engine,
        store=store,
        tenants=TenantRepository(engine),
        assignments=assignments,
        users=users,
        permissions=permissions,
        tokens=tokens,
        resolver=resolver,
        conditions=conditions,
        access=PermissionEngine(permissions, conditions, store),
        documents=documents,
        assigner=assigner,
    )


async def bootstrap(platform: Platform) -> None:
    """Seed the default roles and the editor's same-tenant permissions."""
    for code, name, description in DEFAULT_ROLES:
        await platform.users.ensure_role(code, name, description)
    await ensure_editor_tenant_permissions(platform.users, platform.permissions)
    logger.info("platform_bootstrapped", conditions=platform.conditions.keys())


def get_platform(request: Request) -> Platform:
    return request.app.state.platform
