"""Tenant resolution: admin identity to assigned tenant.

This is the single resolver shared by the document interceptor, the
permission condition, the query rewriters and the lifecycle assigner, so
they can never disagree about a caller's tenant.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

import structlog
from sqlalchemy.exc import SQLAlchemyError

from tenantgate.models.domain import ResolvedTenant
from tenantgate.tenancy import context
from tenantgate.tenancy.scope import AdminIdentity, TenantScope

if TYPE_CHECKING:
    from tenantgate.storage.repositories.admin_users import AdminUserRepository
    from tenantgate.storage.repositories.assignments import AssignmentRepository
    from tenantgate.tenancy.context import RequestContext

logger = structlog.get_logger(__name__)

# Errors that mean "the assignment could not be looked up"
LOOKUP_ERRORS = (SQLAlchemyError, OSError)


class TenantResolver:
    def __init__(
        self,
        users: AdminUserRepository,
        assignments: AssignmentRepository,
        token_user_id: Callable[[str | None], int | None] | None = None,
    ) -> None:
        self._users = users
        self._assignments = assignments
        self._token_user_id = token_user_id

    async def load_identity(self, user: AdminIdentity | int | str | None) -> AdminIdentity | None:
        """Load an identity from an id, an email, or pass one through."""
        if user is None or isinstance(user, AdminIdentity):
            return user
        if isinstance(user, int) or user.isdigit():
            return await self._users.load_identity(int(user))
        if "@" not in user:
            return None
        row = await self._users.get_by_email(user)
        return await self._users.identity(row) if row is not None else None

    async def resolve_tenant_for_user(
        self, user: AdminIdentity | int | str | None
    ) -> ResolvedTenant | None:
        """Return the tenant ``user`` is assigned to, or ``None``.

        Only editors resolve to a tenant; super-admins never do, even with an
        assignment. Lookup errors propagate.
        """
        identity = await self.load_identity(user)
        if identity is None or identity.is_super_admin or not identity.is_editor:
            return None
        if not identity.email:
            return None
        tenant = await self._assignments.get_tenant_for_email(identity.email)
        if tenant is None or tenant.id is None:
            return None
        return ResolvedTenant(id=tenant.id, external_id=tenant.external_id)

    async def scope_for(self, identity: AdminIdentity | None) -> TenantScope:
        """Scope for ``identity``; editors fail closed when nothing resolves."""
        if identity is None or identity.is_super_admin or not identity.is_editor:
            return TenantScope.unscoped()
        try:
            tenant = await self.resolve_tenant_for_user(identity)
        except LOOKUP_ERRORS as exc:
            logger.warning("tenant_lookup_failed", user_id=identity.id, error=str(exc))
            return TenantScope.denied()
        if tenant is None:
            logger.info("editor_without_tenant", user_id=identity.id, email=identity.email)
            return TenantScope.denied()
        return TenantScope.for_tenant(tenant)

    async def identity_from_context(self, ctx: RequestContext) -> AdminIdentity | None:
        """Admin behind the request: request state first, then the bearer token."""
        if ctx.user is not None:
            return ctx.user
        if ctx.has_resolved_identity():
            return ctx.resolved_identity
        identity = None
        if self._token_user_id is not None:
            user_id = self._token_user_id(ctx.bearer_token)
            if user_id is not None:
                identity = await self._users.load_identity(user_id)
        ctx.resolved_identity = identity
        return identity

    async def current_scope(self) -> TenantScope:
        """Scope of the caller bound to the current request; unscoped outside one."""
        ctx = context.get()
        if ctx is None:
            return TenantScope.unscoped()
        if ctx.resolved_scope is not None:
            return ctx.resolved_scope
        try:
            identity = await self.identity_from_context(ctx)
        except LOOKUP_ERRORS as exc:
            logger.warning("identity_lookup_failed", path=ctx.path, error=str(exc))
            return TenantScope.denied()
        scope = await self.scope_for(identity)
        ctx.resolved_scope = scope
        return scope
