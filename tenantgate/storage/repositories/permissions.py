"""Admin permission repository.

Grants are unique per ``(role_id, action, subject)``; ``upsert_grants``
relies on that constraint so concurrent writers converge on one row each.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import func, or_
from sqlalchemy.dialects import postgresql, sqlite
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from tenantgate.exceptions import ConfigError, StorageError
from tenantgate.models.database import AdminPermission, AdminRole, _utc_now

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = structlog.get_logger(__name__)

_UPSERT_INSERTS: dict[str, Any] = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class PermissionRepository:
    """PostgreSQL-backed role permissions."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def list_for_role(self, role_id: int) -> list[AdminPermission]:
        async with AsyncSession(self._engine) as session:
            stmt = (
                select(AdminPermission)
                .where(col(AdminPermission.role_id) == role_id)
                .order_by(col(AdminPermission.ord), col(AdminPermission.id))
            )
            return list((await session.execute(stmt)).scalars().all())

    async def find_matching(
        self, role_codes: Iterable[str], action: str, subject: str | None
    ) -> list[AdminPermission]:
        """Permissions of the roles ``role_codes`` for ``action`` on ``subject`` (or on any subject)."""
        codes = list(role_codes)
        if not codes:
            return []
        async with AsyncSession(self._engine) as session:
            stmt = (
                select(AdminPermission)
                .join(AdminRole, col(AdminRole.id) == col(AdminPermission.role_id))
                .where(
                    col(AdminRole.code).in_(codes),
                    col(AdminPermission.action) == action,
                    or_(
                        col(AdminPermission.subject) == subject,
                        col(AdminPermission.subject).is_(None),
                    ),
                )
                .order_by(col(AdminPermission.ord))
            )
            return list((await session.execute(stmt)).scalars().all())

    async def upsert_grants(
        self,
        role_id: int,
        grants: Sequence[tuple[str, str | None]],
        conditions: list[str],
    ) -> dict[str, int]:
        """Make every ``(action, subject)`` grant exist with exactly ``conditions``.

        Missing grants are inserted with the next ordering key of the role;
        existing ones keep their ordering key and get their conditions
        replaced. Returns counts of ``created``, ``updated`` and ``unchanged``
        as performed by this call: when several writers race, each grant is
        counted as created by exactly one of them.
        """
        insert = _UPSERT_INSERTS.get(self._engine.dialect.name)
        if insert is None:
            raise ConfigError(f"Unsupported database dialect: {self._engine.dialect.name}")

        counts = {"created": 0, "updated": 0, "unchanged": 0}
        async with AsyncSession(self._engine) as session:
            max_ord = (
                await session.execute(
                    select(func.max(AdminPermission.ord)).where(
                        col(AdminPermission.role_id) == role_id
                    )
                )
            ).scalar_one()
            next_ord = (max_ord or 0) + 1

            for action, subject in grants:
                now = _utc_now()
                current = await self._lock_grant(session, role_id, action, subject)
                if current is None:
                    stmt = insert(AdminPermission).values(
                        role_id=role_id,
                        action=action,
                        subject=subject,
                        conditions=conditions,
                        ord=next_ord,
                        created_at=now,
                        updated_at=now,
                    )
                    result = await session.execute(
                        stmt.on_conflict_do_nothing(index_elements=["role_id", "action", "subject"])
                    )
                    if result.rowcount:
                        counts["created"] += 1
                        next_ord += 1
                        continue
                    # Another writer inserted it first
                    current = await self._lock_grant(session, role_id, action, subject)
                    if current is None:
                        raise StorageError(f"Grant {action} on {subject} vanished during upsert")

                if list(current.conditions or []) == conditions:
                    counts["unchanged"] += 1
                    continue
                current.conditions = list(conditions)
                current.updated_at = now
                session.add(current)
                await session.flush()
                counts["updated"] += 1

            await session.commit()

        logger.info("permissions_upserted", role_id=role_id, **counts)
        return counts

    @staticmethod
    async def _lock_grant(
        session: AsyncSession, role_id: int, action: str, subject: str | None
    ) -> AdminPermission | None:
        subject_clause = (
            col(AdminPermission.subject).is_(None)
            if subject is None
            else col(AdminPermission.subject) == subject
        )
        stmt = (
            select(AdminPermission)
            .where(
                col(AdminPermission.role_id) == role_id,
                col(AdminPermission.action) == action,
                subject_clause,
            )
            .with_for_update()
        )
        return (await session.execute(stmt)).scalars().first()
