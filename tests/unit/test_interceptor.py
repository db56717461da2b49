"""Unit tests for tenant isolation in the document service pipeline."""

from __future__ import annotations

import pytest

from tenantgate.content_types.registry import api_uid
from tenantgate.exceptions import TenantAccessDenied
from tenantgate.tenancy import context
from tenantgate.tenancy.context import RequestContext

ARTICLE = api_uid("article")
CATEGORY = api_uid("category")


def as_user(identity):
    return context.bind(RequestContext(user=identity))


@pytest.fixture()
async def docs(platform, seed):
    """Two articles per tenant plus one without a tenant, written outside any request."""
    store = platform.store
    a1 = await store.create(ARTICLE, {"title": "A1", "tenant": seed.tenant_a.id})
    a2 = await store.create(ARTICLE, {"title": "A2", "tenant": "news-a"})
    b1 = await store.create(ARTICLE, {"title": "B1", "tenant": seed.tenant_b.id})
    b2 = await store.create(ARTICLE, {"title": "B2", "tenant": seed.tenant_b.id})
    bare = await store.create(ARTICLE, {"title": "Bare"})
    return {"a1": a1, "a2": a2, "b1": b1, "b2": b2, "bare": bare}


@pytest.mark.unit
class TestListIsolation:
    async def test_editor_sees_only_own_tenant(self, platform, seed, docs) -> None:
        with as_user(seed.editor_a):
            page = await platform.documents.find_many(ARTICLE, sort="title")
        assert [r.data["title"] for r in page.results] == ["A1", "A2"]
        assert all(r.tenant.id == seed.tenant_a.id for r in page.results)

    async def test_client_filters_cannot_widen(self, platform, seed, docs) -> None:
        with as_user(seed.editor_a):
            page = await platform.documents.find_many(
                ARTICLE, filters={"tenant": {"id": {"$eq": seed.tenant_b.id}}}
            )
        assert page.results == []

    async def test_client_filters_still_apply(self, platform, seed, docs) -> None:
        with as_user(seed.editor_b):
            page = await platform.documents.find_many(ARTICLE, filters={"title": "B2"})
        assert [r.data["title"] for r in page.results] == ["B2"]

    async def test_super_admin_sees_everything(self, platform, seed, docs) -> None:
        with as_user(seed.super_admin):
            page = await platform.documents.find_many(ARTICLE)
        assert page.pagination.total == 5

    async def test_no_request_is_unrestricted(self, platform, seed, docs) -> None:
        page = await platform.documents.find_many(ARTICLE)
        assert page.pagination.total == 5

    async def test_unassigned_editor_sees_nothing(self, platform, seed, docs) -> None:
        with as_user(seed.orphan_editor):
            page = await platform.documents.find_many(ARTICLE)
        assert page.results == []

    async def test_unscoped_types_are_untouched(self, platform, seed) -> None:
        await platform.store.create(CATEGORY, {"name": "Feasts"})
        with as_user(seed.orphan_editor):
            page = await platform.documents.find_many(CATEGORY)
        assert page.pagination.total == 1

    async def test_page_size_is_capped(self, platform, seed, docs) -> None:
        page = await platform.documents.find_many(ARTICLE, page_size=10_000)
        assert page.pagination.page_size == platform.settings.max_page_size


@pytest.mark.unit
class TestPointIsolation:
    async def test_find_one_own_and_foreign(self, platform, seed, docs) -> None:
        with as_user(seed.editor_a):
            own = await platform.documents.find_one(ARTICLE, docs["a1"].document_id)
            assert own.data["title"] == "A1"
            with pytest.raises(TenantAccessDenied) as exc_info:
                await platform.documents.find_one(ARTICLE, docs["b1"].document_id)
        assert exc_info.value.message == "Forbidden"
        assert exc_info.value.status_code == 403

    async def test_missing_record_is_none(self, platform, seed) -> None:
        with as_user(seed.editor_a):
            assert await platform.documents.find_one(ARTICLE, "missing") is None
            assert await platform.documents.update(ARTICLE, "missing", {"title": "x"}) is None

    async def test_foreign_update_writes_nothing(self, platform, seed, docs) -> None:
        with as_user(seed.editor_a):
            with pytest.raises(TenantAccessDenied):
                await platform.documents.update(ARTICLE, docs["b1"].document_id, {"title": "pwned"})
        after = await platform.store.find_one(ARTICLE, docs["b1"].document_id)
        assert after.data["title"] == "B1"

    async def test_foreign_delete_and_publish(self, platform, seed, docs) -> None:
        target = docs["b2"].document_id
        with as_user(seed.editor_a):
            with pytest.raises(TenantAccessDenied):
                await platform.documents.delete(ARTICLE, target)
            with pytest.raises(TenantAccessDenied):
                await platform.documents.publish(ARTICLE, target)
            with pytest.raises(TenantAccessDenied):
                await platform.documents.unpublish(ARTICLE, target)
        after = await platform.store.find_one(ARTICLE, target)
        assert after is not None
        assert after.published_at is None

    async def test_own_mutations_succeed(self, platform, seed, docs) -> None:
        target = docs["a2"].document_id
        with as_user(seed.editor_a):
            updated = await platform.documents.update(ARTICLE, target, {"title": "A2!"})
            published = await platform.documents.publish(ARTICLE, target)
            deleted = await platform.documents.delete(ARTICLE, target)
        assert updated.data["title"] == "A2!"
        assert published.published_at is not None
        assert deleted.document_id == target

    async def test_tenantless_record_is_not_foreign(self, platform, seed, docs) -> None:
        with as_user(seed.editor_a):
            record = await platform.documents.find_one(ARTICLE, docs["bare"].document_id)
        assert record.tenant is None

    async def test_super_admin_touches_any_tenant(self, platform, seed, docs) -> None:
        with as_user(seed.super_admin):
            updated = await platform.documents.update(ARTICLE, docs["b1"].document_id, {"title": "x"})
        assert updated.tenant.id == seed.tenant_b.id

    async def test_unassigned_editor_is_denied_everything(self, platform, seed, docs) -> None:
        with as_user(seed.orphan_editor):
            with pytest.raises(TenantAccessDenied):
                await platform.documents.find_one(ARTICLE, docs["bare"].document_id)
            with pytest.raises(TenantAccessDenied):
                await platform.documents.find_one(ARTICLE, "missing")
            with pytest.raises(TenantAccessDenied):
                await platform.documents.create(ARTICLE, {"title": "x"})
        assert (await platform.store.find_many(ARTICLE)).pagination.total == 5
