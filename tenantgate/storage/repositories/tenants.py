"""Tenant repository, PostgreSQL-backed."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy.exc import IntegrityError
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from tenantgate.exceptions import ValidationError
from tenantgate.models.database import Tenant

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = structlog.get_logger(__name__)


class TenantRepository:
    """Tenants are created once per organization and never deleted."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def create(
        self,
        external_id: str,
        name: str,
        slug: str | None = None,
        domain: str | None = None,
        description: str | None = None,
    ) -> Tenant:
        async with AsyncSession(self._engine) as session:
            tenant = Tenant(
                external_id=external_id,
                name=name,
                slug=slug or external_id,
                domain=domain,
                description=description,
            )
            session.add(tenant)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise ValidationError(f"Tenant already exists: {external_id}") from exc
            await session.refresh(tenant)
            logger.info("tenant_created", tenant_id=tenant.id, external_id=external_id)
            return tenant

    async def get(self, tenant_id: int) -> Tenant | None:
        async with AsyncSession(self._engine) as session:
            return await session.get(Tenant, tenant_id)

    async def get_by_external_id(self, external_id: str) -> Tenant | None:
        async with AsyncSession(self._engine) as session:
            stmt = select(Tenant).where(col(Tenant.external_id) == external_id)
            result = await session.execute(stmt)
            return result.scalars().first()

    async def list_all(self) -> list[Tenant]:
        async with AsyncSession(self._engine) as session:
            result = await session.execute(select(Tenant).order_by(col(Tenant.id)))
            return list(result.scalars().all())
