"""Editor to tenant assignment repository.

Assignments join on the admin email, stored lowercased under a unique index,
so a lookup is a single indexed equality match.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy.exc import IntegrityError
from sqlmodel import col, delete, select
from sqlmodel.ext.asyncio.session import AsyncSession

from tenantgate.exceptions import DuplicateAssignmentError, NotFoundError, ValidationError
from tenantgate.models.database import EditorTenant, Tenant, _utc_now

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = structlog.get_logger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AssignmentRepository:
    """PostgreSQL-backed editor to tenant assignments."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def assign(self, email: str, tenant_id: int, *, replace: bool = False) -> EditorTenant:
        """Assign ``email`` to ``tenant_id``.

        An existing assignment for the same email raises
        ``DuplicateAssignmentError`` unless ``replace`` is set, in which case
        it is moved to the new tenant.
        """
        normalized = normalize_email(email)
        if not normalized:
            raise ValidationError("Editor email is required")
        async with AsyncSession(self._engine) as session:
            if await session.get(Tenant, tenant_id) is None:
                raise NotFoundError(f"Tenant {tenant_id} not found")

            stmt = select(EditorTenant).where(col(EditorTenant.admin_user_email) == normalized)
            existing = (await session.execute(stmt)).scalars().first()
            if existing is not None:
                if not replace and existing.tenant_id != tenant_id:
                    raise DuplicateAssignmentError(f"{normalized} is already assigned to a tenant")
                existing.tenant_id = tenant_id
                existing.updated_at = _utc_now()
                session.add(existing)
                assignment = existing
            else:
                assignment = EditorTenant(admin_user_email=normalized, tenant_id=tenant_id)
                session.add(assignment)

            try:
                await session.commit()
            except IntegrityError as exc:
                # Lost a race with a concurrent insert for the same email
                await session.rollback()
                raise DuplicateAssignmentError(
                    f"{normalized} is already assigned to a tenant"
                ) from exc
            await session.refresh(assignment)

        logger.info("editor_assigned", email=normalized, tenant_id=tenant_id)
        return assignment

    async def get_tenant_for_email(self, email: str) -> Tenant | None:
        """Return the tenant assigned to ``email``; matching is case-insensitive."""
        normalized = normalize_email(email)
        if not normalized:
            return None
        async with AsyncSession(self._engine) as session:
            stmt = (
                select(Tenant)
                .join(EditorTenant, col(EditorTenant.tenant_id) == col(Tenant.id))
                .where(col(EditorTenant.admin_user_email) == normalized)
            )
            result = await session.execute(stmt)
            return result.scalars().first()

    async def list_all(self) -> list[tuple[EditorTenant, Tenant]]:
        async with AsyncSession(self._engine) as session:
            stmt = (
                select(EditorTenant, Tenant)
                .join(Tenant, col(EditorTenant.tenant_id) == col(Tenant.id))
                .order_by(col(EditorTenant.admin_user_email))
            )
            result = await session.execute(stmt)
            return [(assignment, tenant) for assignment, tenant in result.all()]

    async def remove(self, email: str) -> bool:
        normalized = normalize_email(email)
        async with AsyncSession(self._engine) as session:
            result = await session.execute(
                delete(EditorTenant).where(col(EditorTenant.admin_user_email) == normalized)
            )
            await session.commit()
        removed = bool(result.rowcount)
        if removed:
            logger.info("editor_unassigned", email=normalized)
        return removed
