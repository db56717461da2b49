"""Database-backed document store using SQLModel + AsyncSession.

The store knows nothing about callers or tenants' access rules; it persists
records and converts every row it reads into a ``DocumentRecord`` whose
tenant relation is already in canonical ``TenantRef`` form.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import func, update
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from tenantgate.content_types.registry import TENANT_FIELD, TENANT_SCOPED_UIDS, get_content_type
from tenantgate.exceptions import ValidationError
from tenantgate.models.database import Document, Tenant, _utc_now
from tenantgate.models.domain import DocumentPage, DocumentRecord, Pagination, TenantRef
from tenantgate.storage.filters import compile_filters, compile_sort

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = structlog.get_logger(__name__)

# Keys of the document body that are stored in columns, never in ``data``
_RESERVED_KEYS = frozenset(
    {"id", "documentId", TENANT_FIELD, "publishedAt", "createdAt", "updatedAt", "createdBy", "updatedBy"}
)


def tenant_reference(value: Any) -> tuple[str, Any] | None:
    """Normalize a client-style tenant relation value.

    Accepts a tenant id, an external id, ``{"id": ...}``,
    ``{"externalId": ...}`` / ``{"documentId": ...}`` and the
    ``{"connect": [...]}`` form. Returns ``("id", int)``,
    ``("external_id", str)`` or ``None`` for an explicit disconnect.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError("Invalid tenant relation")
    if isinstance(value, int):
        return ("id", value)
    if isinstance(value, str):
        return ("id", int(value)) if value.isdigit() else ("external_id", value)
    if isinstance(value, TenantRef):
        return ("id", value.id)
    if isinstance(value, Mapping):
        if "connect" in value:
            connect = value["connect"]
            if isinstance(connect, list):
                if not connect:
                    return None
                connect = connect[0]
            return tenant_reference(connect)
        if value.get("disconnect") and "set" not in value:
            return None
        if "set" in value:
            return tenant_reference(value["set"][0] if value["set"] else None)
        if value.get("id") is not None:
            return tenant_reference(value["id"])
        for key in ("externalId", "documentId"):
            if value.get(key):
                return ("external_id", str(value[key]))
    raise ValidationError("Invalid tenant relation")


def _to_record(doc: Document, tenant: Tenant | None) -> DocumentRecord:
    tenant_ref = None
    if tenant is not None and tenant.id is not None:
        tenant_ref = TenantRef(id=tenant.id, external_id=tenant.external_id, name=tenant.name)
    return DocumentRecord(
        id=doc.id or 0,
        document_id=doc.document_id,
        content_type=doc.content_type,
        data=dict(doc.data or {}),
        tenant=tenant_ref,
        published_at=doc.published_at,
        created_by_id=doc.created_by_id,
        updated_by_id=doc.updated_by_id,
        created_at=doc.created_at,
        updated_at=doc.updated_at,
    )


def _attributes(data: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if k not in _RESERVED_KEYS}


class DocumentStore:
    """PostgreSQL-backed store for documents of every registered content type."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    # -- reads -------------------------------------------------------------

    def _select(self, uid: str) -> Any:
        return (
            select(Document, Tenant)
            .outerjoin(Tenant, col(Document.tenant_id) == col(Tenant.id))
            .where(col(Document.content_type) == uid)
        )

    async def find_many(
        self,
        uid: str,
        *,
        filters: Mapping[str, Any] | None = None,
        sort: str | list[str] | None = None,
        page: int = 1,
        page_size: int = 10,
        search: str | None = None,
        published_only: bool = False,
    ) -> DocumentPage:
        spec = get_content_type(uid)
        page = max(page, 1)
        page_size = max(page_size, 1)

        conditions = [col(Document.content_type) == uid, compile_filters(uid, filters)]
        if search:
            main = Document.data[spec.main_field].as_string()
            conditions.append(func.lower(main).contains(search.lower()))
        if published_only:
            conditions.append(col(Document.published_at).is_not(None))

        order_by = compile_sort(sort, uid)
        if not order_by and spec.default_sort:
            order_by = compile_sort(":".join(spec.default_sort), uid)
        order_by.append(col(Document.id).asc())

        statement = (
            select(Document, Tenant)
            .outerjoin(Tenant, col(Document.tenant_id) == col(Tenant.id))
            .where(*conditions)
            .order_by(*order_by)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        count_statement = select(func.count()).select_from(Document).where(*conditions)

        async with AsyncSession(self._engine) as session:
            total = (await session.execute(count_statement)).scalar_one()
            rows = (await session.execute(statement)).all()

        return DocumentPage(
            results=[_to_record(doc, tenant) for doc, tenant in rows],
            pagination=Pagination(
                page=page,
                page_size=page_size,
                page_count=math.ceil(total / page_size) if total else 0,
                total=total,
            ),
        )

    async def find_one(
        self, uid: str, document_id: str, *, published_only: bool = False
    ) -> DocumentRecord | None:
        statement = self._select(uid).where(col(Document.document_id) == document_id)
        if published_only:
            statement = statement.where(col(Document.published_at).is_not(None))
        async with AsyncSession(self._engine) as session:
            row = (await session.execute(statement)).first()
        if row is None:
            return None
        doc, tenant = row
        return _to_record(doc, tenant)

    # -- writes ------------------------------------------------------------

    async def _resolve_tenant_id(self, session: AsyncSession, value: Any) -> int | None:
        ref = tenant_reference(value)
        if ref is None:
            return None
        kind, key = ref
        column = Tenant.id if kind == "id" else Tenant.external_id
        result = await session.execute(select(Tenant.id).where(col(column) == key))
        tenant_id = result.scalars().first()
        if tenant_id is None:
            raise ValidationError(f"Unknown tenant: {key}")
        return tenant_id

    async def _load(self, session: AsyncSession, doc: Document) -> DocumentRecord:
        await session.refresh(doc)
        tenant = await session.get(Tenant, doc.tenant_id) if doc.tenant_id else None
        return _to_record(doc, tenant)

    async def _get_row(self, session: AsyncSession, uid: str, document_id: str) -> Document | None:
        statement = select(Document).where(
            col(Document.content_type) == uid, col(Document.document_id) == document_id
        )
        return (await session.execute(statement)).scalars().first()

    async def create(
        self,
        uid: str,
        data: Mapping[str, Any],
        *,
        created_by_id: int | None = None,
        publish: bool = False,
    ) -> DocumentRecord:
        spec = get_content_type(uid)
        async with AsyncSession(self._engine) as session:
            doc = Document(
                content_type=uid,
                data=_attributes(data),
                created_by_id=created_by_id,
                updated_by_id=created_by_id,
            )
            if spec.tenant_scoped and TENANT_FIELD in data:
                doc.tenant_id = await self._resolve_tenant_id(session, data[TENANT_FIELD])
            if publish or not spec.draft_and_publish:
                doc.published_at = _utc_now()
            session.add(doc)
            await session.commit()
            record = await self._load(session, doc)
        logger.info(
            "document_created",
            uid=uid,
            document_id=record.document_id,
            tenant_id=record.tenant.id if record.tenant else None,
        )
        return record

    async def update(
        self,
        uid: str,
        document_id: str,
        data: Mapping[str, Any],
        *,
        updated_by_id: int | None = None,
    ) -> DocumentRecord | None:
        spec = get_content_type(uid)
        async with AsyncSession(self._engine) as session:
            doc = await self._get_row(session, uid, document_id)
            if doc is None:
                return None
            # Reassign so the JSON column is flagged dirty
            doc.data = {**(doc.data or {}), **_attributes(data)}
            if spec.tenant_scoped and TENANT_FIELD in data:
                doc.tenant_id = await self._resolve_tenant_id(session, data[TENANT_FIELD])
            if updated_by_id is not None:
                doc.updated_by_id = updated_by_id
            doc.updated_at = _utc_now()
            session.add(doc)
            await session.commit()
            record = await self._load(session, doc)
        logger.info("document_updated", uid=uid, document_id=document_id)
        return record

    async def delete(self, uid: str, document_id: str) -> DocumentRecord | None:
        async with AsyncSession(self._engine) as session:
            doc = await self._get_row(session, uid, document_id)
            if doc is None:
                return None
            tenant = await session.get(Tenant, doc.tenant_id) if doc.tenant_id else None
            record = _to_record(doc, tenant)
            await session.delete(doc)
            await session.commit()
        logger.info("document_deleted", uid=uid, document_id=document_id)
        return record

    async def set_published(
        self,
        uid: str,
        document_id: str,
        published: bool,
        *,
        updated_by_id: int | None = None,
    ) -> DocumentRecord | None:
        async with AsyncSession(self._engine) as session:
            doc = await self._get_row(session, uid, document_id)
            if doc is None:
                return None
            doc.published_at = _utc_now() if published else None
            if updated_by_id is not None:
                doc.updated_by_id = updated_by_id
            doc.updated_at = _utc_now()
            session.add(doc)
            await session.commit()
            record = await self._load(session, doc)
        logger.info("document_publish_state_changed", uid=uid, document_id=document_id, published=published)
        return record

    # -- tenant maintenance ------------------------------------------------

    async def assign_tenant(self, uid: str, document_ids: Iterable[str], tenant_id: int) -> int:
        """Connect tenant-less records to ``tenant_id``; returns rows changed.

        Records that already carry a tenant are left alone.
        """
        ids = list(document_ids)
        if not ids:
            return 0
        statement = (
            update(Document)
            .where(
                col(Document.content_type) == uid,
                col(Document.document_id).in_(ids),
                col(Document.tenant_id).is_(None),
            )
            .values(tenant_id=tenant_id)
        )
        async with AsyncSession(self._engine) as session:
            result = await session.execute(statement)
            await session.commit()
        return result.rowcount or 0

    async def backfill_tenant(
        self, uids: Iterable[str] | None, tenant_id: int
    ) -> dict[str, int]:
        """Connect every tenant-less record of ``uids`` to ``tenant_id`` in bulk."""
        targets = sorted(TENANT_SCOPED_UIDS) if uids is None else list(uids)
        counts: dict[str, int] = {}
        async with AsyncSession(self._engine) as session:
            for uid in targets:
                statement = (
                    update(Document)
                    .where(col(Document.content_type) == uid, col(Document.tenant_id).is_(None))
                    .values(tenant_id=tenant_id)
                )
                result = await session.execute(statement)
                counts[uid] = result.rowcount or 0
            await session.commit()
        return counts
