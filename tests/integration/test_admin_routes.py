import pytest

from tenantgate.content_types.registry import api_uid

ARTICLE = api_uid("article")


async def _tenantless(store, uid: str) -> int:
    return (await store.find_many(uid, filters={"tenant": None})).pagination.total


@pytest.mark.integration
class TestTenantAdmin:
    @pytest.mark.asyncio
    async def test_create_and_list_tenants(self, client, seed, auth_headers) -> None:
        headers = auth_headers(seed.super_admin)
        created = await client.post(
            "/admin/tenants",
            json={"externalId": "diocese-x", "name": "Diocese X", "domain": "x.example.org"},
            headers=headers,
        )
        assert created.status_code == 201
        assert created.json()["data"]["slug"] == "diocese-x"

        listed = await client.get("/admin/tenants", headers=headers)
        assert [t["externalId"] for t in listed.json()["data"]] == ["news-a", "news-b", "diocese-x"]

    @pytest.mark.asyncio
    async def test_duplicate_tenant(self, client, seed, auth_headers) -> None:
        response = await client.post(
            "/admin/tenants",
            json={"externalId": "news-a", "name": "Again", "slug": "again"},
            headers=auth_headers(seed.super_admin),
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_editors_are_forbidden(self, client, seed, auth_headers) -> None:
        response = await client.get("/admin/tenants", headers=auth_headers(seed.editor_a))
        assert response.status_code == 403
        assert response.json()["error"]["message"] == "Forbidden"

    @pytest.mark.asyncio
    async def test_backfill(self, client, platform, seed, auth_headers) -> None:
        await platform.store.create(ARTICLE, {"title": "legacy 1"})
        await platform.store.create(ARTICLE, {"title": "legacy 2"})
        response = await client.post(
            "/admin/tenants/news-b/backfill",
            json={"uids": [ARTICLE]},
            headers=auth_headers(seed.super_admin),
        )
        assert response.status_code == 200
        assert response.json()["data"] == {
            "tenant": "news-b",
            "counts": {ARTICLE: 2},
            "total": 2,
        }
        assert await _tenantless(platform.store, ARTICLE) == 0

    @pytest.mark.asyncio
    async def test_backfill_without_body(self, client, seed, auth_headers) -> None:
        response = await client.post(
            "/admin/tenants/news-a/backfill", headers=auth_headers(seed.super_admin)
        )
        assert response.status_code == 200
        assert response.json()["data"]["total"] == 0

    @pytest.mark.asyncio
    async def test_backfill_unknown_tenant(self, client, seed, auth_headers) -> None:
        response = await client.post(
            "/admin/tenants/nope/backfill", headers=auth_headers(seed.super_admin)
        )
        assert response.status_code == 404


@pytest.mark.integration
class TestEditorAssignments:
    @pytest.mark.asyncio
    async def test_list(self, client, seed, auth_headers) -> None:
        response = await client.get("/admin/editor-tenants", headers=auth_headers(seed.super_admin))
        rows = response.json()["data"]
        assert [(r["email"], r["tenant"]["externalId"]) for r in rows] == [
            ("editor.a@example.com", "news-a"),
            ("editor.b@example.com", "news-b"),
        ]

    @pytest.mark.asyncio
    async def test_assign_and_conflict(self, client, seed, auth_headers) -> None:
        headers = auth_headers(seed.super_admin)
        assigned = await client.put(
            "/admin/editor-tenants",
            json={"email": "Orphan@Example.com", "tenant": "news-a"},
            headers=headers,
        )
        assert assigned.status_code == 200
        assert assigned.json()["data"]["email"] == "orphan@example.com"

        conflict = await client.put(
            "/admin/editor-tenants",
            json={"email": "orphan@example.com", "tenant": "news-b"},
            headers=headers,
        )
        assert conflict.status_code == 409
        assert conflict.json()["error"]["name"] == "ConflictError"

        moved = await client.put(
            "/admin/editor-tenants",
            json={"email": "orphan@example.com", "tenant": "news-b", "replace": True},
            headers=headers,
        )
        assert moved.json()["data"]["tenant"]["externalId"] == "news-b"

    @pytest.mark.asyncio
    async def test_assignment_takes_effect(self, client, platform, seed, auth_headers) -> None:
        await platform.store.create(ARTICLE, {"title": "A", "tenant": seed.tenant_a.id})
        before = await client.get(
            f"/content-manager/collection-types/{ARTICLE}", headers=auth_headers(seed.orphan_editor)
        )
        assert before.json()["results"] == []

        await client.put(
            "/admin/editor-tenants",
            json={"email": "orphan@example.com", "tenant": "news-a"},
            headers=auth_headers(seed.super_admin),
        )
        after = await client.get(
            f"/content-manager/collection-types/{ARTICLE}", headers=auth_headers(seed.orphan_editor)
        )
        assert [r["title"] for r in after.json()["results"]] == ["A"]

    @pytest.mark.asyncio
    async def test_unassign(self, client, seed, auth_headers) -> None:
        headers = auth_headers(seed.super_admin)
        removed = await client.delete("/admin/editor-tenants/editor.b@example.com", headers=headers)
        assert removed.status_code == 204
        again = await client.delete("/admin/editor-tenants/editor.b@example.com", headers=headers)
        assert again.status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_tenant(self, client, seed, auth_headers) -> None:
        response = await client.put(
            "/admin/editor-tenants",
            json={"email": "orphan@example.com", "tenant": "nope"},
            headers=auth_headers(seed.super_admin),
        )
        assert response.status_code == 404


@pytest.mark.integration
class TestContentApi:
    @pytest.mark.asyncio
    async def test_only_published_documents(self, client, platform, seed) -> None:
        live = await platform.store.create(
            ARTICLE, {"title": "Live", "tenant": seed.tenant_a.id}, publish=True
        )
        draft = await platform.store.create(ARTICLE, {"title": "Draft", "tenant": seed.tenant_a.id})

        listed = await client.get("/api/articles")
        assert listed.status_code == 200
        body = listed.json()
        assert [a["title"] for a in body["data"]] == ["Live"]
        assert "createdBy" not in body["data"][0]
        assert body["meta"]["pagination"]["total"] == 1

        assert (await client.get(f"/api/articles/{live.document_id}")).status_code == 200
        assert (await client.get(f"/api/articles/{draft.document_id}")).status_code == 404

    @pytest.mark.asyncio
    async def test_filters(self, client, platform, seed) -> None:
        await platform.store.create(ARTICLE, {"title": "A", "tenant": seed.tenant_a.id}, publish=True)
        await platform.store.create(ARTICLE, {"title": "B", "tenant": seed.tenant_b.id}, publish=True)
        response = await client.get(
            "/api/articles", params={"filters": '{"tenant": {"externalId": {"$eq": "news-b"}}}'}
        )
        assert [a["title"] for a in response.json()["data"]] == ["B"]
