"""Shared test fixtures."""

from __future__ import annotations

from dataclasses import dataclass

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlmodel import SQLModel

from tenantgate.config.settings import Settings
from tenantgate.models.database import Tenant
from tenantgate.tenancy.scope import AdminIdentity
from tenantgate.web.app import create_app
from tenantgate.web.auth.tokens import hash_password
from tenantgate.web.dependencies import Platform, bootstrap, build_platform

PASSWORD = "correct-horse"


@dataclass
class Seed:
    tenant_a: Tenant
    tenant_b: Tenant
    super_admin: AdminIdentity
    editor_a: AdminIdentity
    editor_b: AdminIdentity
    orphan_editor: AdminIdentity
    author: AdminIdentity


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite://",
        secret_key="test-secret",
        log_level="WARNING",
    )


@pytest.fixture()
async def async_engine(tmp_path):
    """File-backed SQLite engine with all tables created.

    A file rather than ``:memory:`` so heal tasks and requests can hold
    separate connections to the same database.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'tenantgate.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
async def platform(async_engine, settings) -> Platform:
    """Wired platform with default roles and editor permissions seeded."""
    platform = build_platform(async_engine, settings)
    await bootstrap(platform)
    yield platform
    await platform.assigner.drain()


@pytest.fixture()
async def seed(platform: Platform) -> Seed:
    """Two tenants, a super-admin, an editor per tenant, an unassigned editor and an author."""
    tenant_a = await platform.tenants.create("news-a", "News A")
    tenant_b = await platform.tenants.create("news-b", "News B")

    async def admin(email: str, *roles: str) -> AdminIdentity:
        user = await platform.users.create(
            email, hash_password(PASSWORD, iterations=1000), roles=roles
        )
        return await platform.users.identity(user)

    super_admin = await admin("root@example.com", "super-admin")
    editor_a = await admin("Editor.A@Example.com", "editor")
    editor_b = await admin("editor.b@example.com", "editor")
    orphan_editor = await admin("orphan@example.com", "editor")
    author = await admin("author@example.com", "author")

    await platform.assignments.assign("editor.a@example.com", tenant_a.id)
    await platform.assignments.assign("EDITOR.B@example.com", tenant_b.id)
    return Seed(
        tenant_a=tenant_a,
        tenant_b=tenant_b,
        super_admin=super_admin,
        editor_a=editor_a,
        editor_b=editor_b,
        orphan_editor=orphan_editor,
        author=author,
    )


@pytest.fixture()
def app(platform: Platform):
    """App sharing the test platform; lifespan does not run under ASGITransport."""
    return create_app(platform=platform)


@pytest.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture()
def auth_headers(platform: Platform):
    """Build bearer headers for an identity."""

    def build(identity: AdminIdentity) -> dict[str, str]:
        return {"Authorization": f"Bearer {platform.tokens.issue(identity.id)}"}

    return build
