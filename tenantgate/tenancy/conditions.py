"""The ``is-same-tenant-as-user`` permission condition."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from tenantgate.models.domain import ResolvedTenant
from tenantgate.tenancy.resolver import LOOKUP_ERRORS
from tenantgate.tenancy.scope import MATCH_NOTHING, AdminIdentity, TenantScope

if TYPE_CHECKING:
    from tenantgate.permissions.conditions import Condition, ConditionHandler, ConditionProvider
    from tenantgate.tenancy.resolver import TenantResolver

logger = structlog.get_logger(__name__)

SAME_TENANT_CONDITION = "api::is-same-tenant-as-user"
SAME_TENANT_DISPLAY_NAME = "Is same tenant as user"
SAME_TENANT_CATEGORY = "Multi-tenant"


def same_tenant_filter(tenant: ResolvedTenant | None) -> dict[str, Any]:
    if tenant is None:
        return MATCH_NOTHING
    fragment = TenantScope.for_tenant(tenant).list_filter()
    return fragment if fragment is not None else MATCH_NOTHING


def is_same_tenant_as_user(resolver: TenantResolver) -> ConditionHandler:
    """Build the handler restricting records to the acting admin's tenant."""

    async def handler(user: AdminIdentity) -> dict[str, Any]:
        try:
            tenant = await resolver.resolve_tenant_for_user(user)
        except LOOKUP_ERRORS as exc:
            logger.warning("tenant_condition_lookup_failed", user_id=user.id, error=str(exc))
            return MATCH_NOTHING
        return same_tenant_filter(tenant)

    return handler


def register_tenant_condition(provider: ConditionProvider, resolver: TenantResolver) -> Condition:
    """Register the condition once; later calls return the existing entry."""
    existing = provider.get(SAME_TENANT_CONDITION)
    if existing is not None:
        return existing
    return provider.register(
        SAME_TENANT_CONDITION,
        SAME_TENANT_DISPLAY_NAME,
        is_same_tenant_as_user(resolver),
        category=SAME_TENANT_CATEGORY,
    )
