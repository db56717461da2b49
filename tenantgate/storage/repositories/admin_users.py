"""Admin user and role repository, PostgreSQL-backed."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from tenantgate.exceptions import NotFoundError, ValidationError
from tenantgate.models.database import AdminRole, AdminUser, AdminUserRole
from tenantgate.storage.repositories.assignments import normalize_email
from tenantgate.tenancy.scope import AdminIdentity

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = structlog.get_logger(__name__)


class AdminUserRepository:
    """Admin users with their role codes."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def ensure_role(self, code: str, name: str, description: str = "") -> AdminRole:
        async with AsyncSession(self._engine) as session:
            stmt = select(AdminRole).where(col(AdminRole.code) == code)
            role = (await session.execute(stmt)).scalars().first()
            if role is None:
                role = AdminRole(code=code, name=name, description=description)
                session.add(role)
                await session.commit()
                await session.refresh(role)
                logger.info("admin_role_created", code=code, role_id=role.id)
            return role

    async def get_role(self, code: str) -> AdminRole | None:
        async with AsyncSession(self._engine) as session:
            stmt = select(AdminRole).where(col(AdminRole.code) == code)
            return (await session.execute(stmt)).scalars().first()

    async def create(
        self,
        email: str,
        password_hash: str,
        roles: Iterable[str] = (),
        firstname: str = "",
        lastname: str = "",
    ) -> AdminUser:
        roles = list(roles)
        normalized = normalize_email(email)
        if not normalized:
            raise ValidationError("Email is required")
        async with AsyncSession(self._engine) as session:
            user = AdminUser(
                email=normalized,
                password_hash=password_hash,
                firstname=firstname,
                lastname=lastname,
                is_active=True,
            )
            session.add(user)
            try:
                await session.flush()  # populate user.id without committing
            except IntegrityError as exc:
                await session.rollback()
                raise ValidationError(f"Admin user already exists: {normalized}") from exc

            for code in roles:
                stmt = select(AdminRole).where(col(AdminRole.code) == code)
                role = (await session.execute(stmt)).scalars().first()
                if role is None:
                    await session.rollback()
                    raise NotFoundError(f"Unknown role: {code}")
                session.add(AdminUserRole(user_id=user.id, role_id=role.id))

            await session.commit()
            await session.refresh(user)

        logger.info("admin_user_created", user_id=user.id, email=normalized, roles=sorted(roles))
        return user

    async def get_by_id(self, user_id: int) -> AdminUser | None:
        async with AsyncSession(self._engine) as session:
            stmt = select(AdminUser).where(
                col(AdminUser.id) == user_id, col(AdminUser.is_active).is_(True)
            )
            return (await session.execute(stmt)).scalars().first()

    async def get_by_email(self, email: str) -> AdminUser | None:
        """Case-insensitive lookup of an active admin."""
        normalized = normalize_email(email)
        async with AsyncSession(self._engine) as session:
            stmt = select(AdminUser).where(
                func.lower(col(AdminUser.email)) == normalized, col(AdminUser.is_active).is_(True)
            )
            return (await session.execute(stmt)).scalars().first()

    async def get_role_codes(self, user_id: int) -> frozenset[str]:
        async with AsyncSession(self._engine) as session:
            stmt = (
                select(AdminRole.code)
                .join(AdminUserRole, col(AdminUserRole.role_id) == col(AdminRole.id))
                .where(col(AdminUserRole.user_id) == user_id)
            )
            result = await session.execute(stmt)
            return frozenset(result.scalars().all())

    async def identity(self, user: AdminUser) -> AdminIdentity:
        """Build the identity the tenant layer consumes."""
        roles = await self.get_role_codes(user.id) if user.id is not None else frozenset()
        return AdminIdentity(id=user.id or 0, email=user.email, roles=roles)

    async def load_identity(self, user_id: int) -> AdminIdentity | None:
        user = await self.get_by_id(user_id)
        if user is None:
            return None
        return await self.identity(user)
