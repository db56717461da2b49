"""Document service middleware enforcing tenant isolation.

Lists are narrowed to the caller's tenant. Point reads are checked after the
read, mutating point actions before anything is written. Records are never
modified here.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from tenantgate.content_types.registry import is_tenant_scoped
from tenantgate.exceptions import TenantAccessDenied
from tenantgate.models.domain import DocumentRecord
from tenantgate.tenancy.scope import TenantScope, conjoin
from tenantgate.types import MUTATING_POINT_ACTIONS, DocumentAction

if TYPE_CHECKING:
    from tenantgate.documents.service import CallNext, DocumentActionContext
    from tenantgate.storage.documents import DocumentStore
    from tenantgate.tenancy.resolver import TenantResolver

logger = structlog.get_logger(__name__)


class TenantAccessInterceptor:
    """Register with ``DocumentService.use(interceptor)``."""

    def __init__(self, resolver: TenantResolver, store: DocumentStore) -> None:
        self._resolver = resolver
        self._store = store

    async def __call__(self, ctx: DocumentActionContext, call_next: CallNext) -> Any:
        if not is_tenant_scoped(ctx.uid):
            return await call_next(ctx)

        scope = await self._resolver.current_scope()
        if scope.is_unscoped:
            return await call_next(ctx)

        if ctx.action is DocumentAction.FIND_MANY:
            ctx.params["filters"] = conjoin(ctx.params.get("filters"), scope.list_filter())
            return await call_next(ctx)

        if ctx.action is DocumentAction.CREATE:
            if scope.is_denied:
                self._deny(ctx, scope, None)
            return await call_next(ctx)

        if scope.is_denied:
            self._deny(ctx, scope, None)

        if ctx.action in MUTATING_POINT_ACTIONS:
            existing = await self._store.find_one(ctx.uid, ctx.params["document_id"])
            if existing is not None and not scope.allows(existing.tenant):
                self._deny(ctx, scope, existing)
            return await call_next(ctx)

        result = await call_next(ctx)
        if isinstance(result, DocumentRecord) and not scope.allows(result.tenant):
            self._deny(ctx, scope, result)
        return result

    def _deny(
        self, ctx: DocumentActionContext, scope: TenantScope, record: DocumentRecord | None
    ) -> None:
        logger.warning(
            "tenant_access_denied",
            uid=ctx.uid,
            action=str(ctx.action),
            document_id=ctx.params.get("document_id"),
            record_tenant_id=record.tenant.id if record and record.tenant else None,
            caller_tenant_id=scope.tenant.id if scope.tenant else None,
            scope=str(scope.kind),
        )
        raise TenantAccessDenied("Forbidden")
