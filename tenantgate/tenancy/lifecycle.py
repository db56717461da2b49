"""Keep tenant-scoped records stamped with a tenant.

``TenantAutoAssigner`` subscribes to the document service lifecycle of every
tenant-scoped type. Creates are stamped with the creator's tenant before
they are persisted; records that still end up without a tenant are healed by
a detached task after the write. ``backfill_tenant`` is the operator sweep
for records written around the lifecycle (imports, direct database writes).
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import TYPE_CHECKING

import structlog
from sqlalchemy.exc import SQLAlchemyError

from tenantgate.content_types.registry import TENANT_FIELD, TENANT_SCOPED_UIDS
from tenantgate.exceptions import NotFoundError, StorageError, ValidationError
from tenantgate.tenancy import context

if TYPE_CHECKING:
    from tenantgate.documents.service import DocumentService, LifecycleEvent
    from tenantgate.models.database import Tenant
    from tenantgate.storage.documents import DocumentStore
    from tenantgate.storage.repositories.tenants import TenantRepository
    from tenantgate.tenancy.resolver import TenantResolver

logger = structlog.get_logger(__name__)


class TenantAutoAssigner:
    def __init__(self, resolver: TenantResolver, store: DocumentStore) -> None:
        self._resolver = resolver
        self._store = store
        self._tasks: set[asyncio.Task[None]] = set()

    def register(self, service: DocumentService) -> None:
        service.subscribe(sorted(TENANT_SCOPED_UIDS), self)

    # -- lifecycle hooks ---------------------------------------------------

    async def before_create(self, event: LifecycleEvent) -> None:
        data = event.params["data"]
        if context.get() is None:
            # Operator scripts and imports choose the tenant themselves
            return
        scope = await self._resolver.current_scope()
        if scope.tenant is not None:
            supplied = data.get(TENANT_FIELD)
            if supplied is not None and supplied != scope.tenant.id:
                logger.info(
                    "client_tenant_overridden",
                    uid=event.uid,
                    supplied=str(supplied),
                    tenant_id=scope.tenant.id,
                )
            data[TENANT_FIELD] = scope.tenant.id
        else:
            data.pop(TENANT_FIELD, None)

    async def before_update(self, event: LifecycleEvent) -> None:
        data = event.params["data"]
        if TENANT_FIELD not in data or context.get() is None:
            return
        scope = await self._resolver.current_scope()
        if scope.tenant is not None:
            # Editors cannot move a record to another tenant
            data[TENANT_FIELD] = scope.tenant.id

    async def after_create(self, event: LifecycleEvent) -> None:
        record = event.result
        if record is None or record.tenant is not None:
            return
        self._schedule_heal(event.uid, record.document_id, record.created_by_id)

    async def after_update(self, event: LifecycleEvent) -> None:
        record = event.result
        if record is None or record.tenant is not None:
            return
        actor = record.updated_by_id if record.updated_by_id is not None else record.created_by_id
        self._schedule_heal(event.uid, record.document_id, actor)

    # -- detached heal -----------------------------------------------------

    def _schedule_heal(self, uid: str, document_id: str, user_id: int | None) -> None:
        if user_id is None:
            return
        task = asyncio.create_task(self._heal(uid, document_id, user_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _heal(self, uid: str, document_id: str, user_id: int) -> None:
        try:
            tenant = await self._resolver.resolve_tenant_for_user(user_id)
            if tenant is None:
                return
            changed = await self._store.assign_tenant(uid, [document_id], tenant.id)
            if changed:
                logger.info(
                    "tenant_auto_assigned", uid=uid, document_id=document_id, tenant_id=tenant.id
                )
        except Exception as exc:
            logger.warning(
                "tenant_auto_assign_failed", uid=uid, document_id=document_id, error=str(exc)
            )

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every scheduled heal to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))


async def backfill_tenant(
    tenants: TenantRepository,
    store: DocumentStore,
    tenant: str | int,
    uids: Iterable[str] | None = None,
) -> dict[str, int]:
    """Connect every tenant-less record of ``uids`` to ``tenant``.

    ``tenant`` is an external id or a numeric id; ``uids`` defaults to every
    tenant-scoped type. Returns the number of records connected per type.
    """
    target: Tenant | None
    if isinstance(tenant, int) or str(tenant).isdigit():
        target = await tenants.get(int(tenant))
    else:
        target = await tenants.get_by_external_id(tenant)
    if target is None or target.id is None:
        raise NotFoundError(f"Tenant not found: {tenant}")

    selected = sorted(TENANT_SCOPED_UIDS) if uids is None else list(uids)
    unknown = [uid for uid in selected if uid not in TENANT_SCOPED_UIDS]
    if unknown:
        raise ValidationError(f"Not tenant-scoped: {', '.join(unknown)}")

    try:
        counts = await store.backfill_tenant(selected, target.id)
    except SQLAlchemyError as exc:
        logger.warning("tenant_backfill_failed", tenant=target.external_id, error=str(exc))
        raise StorageError("Tenant backfill failed") from exc

    logger.info(
        "tenant_backfill_completed",
        tenant=target.external_id,
        total=sum(counts.values()),
        per_type={uid: n for uid, n in counts.items() if n},
    )
    return counts
