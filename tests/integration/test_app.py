import pytest

from tenantgate.web.app import create_app


@pytest.mark.integration
class TestAppFactory:
    def test_create_app(self, platform) -> None:
        app = create_app(platform=platform)
        assert app.title == "tenantgate"
        assert app.state.platform is platform

    @pytest.mark.asyncio
    async def test_health_endpoint(self, client) -> None:
        response = await client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "connected"

    @pytest.mark.asyncio
    async def test_request_id_header(self, client) -> None:
        response = await client.get("/api/health")
        assert "x-request-id" in response.headers
        echoed = await client.get("/api/health", headers={"X-Request-ID": "abc-123"})
        assert echoed.headers["x-request-id"] == "abc-123"

    @pytest.mark.asyncio
    async def test_cors_headers(self, client) -> None:
        response = await client.options(
            "/api/health",
            headers={
                "Origin": "http://localhost:1337",
                "Access-Control-Request-Method": "GET",
            },
        )
        assert response.headers.get("access-control-allow-origin") == "http://localhost:1337"

    @pytest.mark.asyncio
    async def test_404_error_body(self, client) -> None:
        response = await client.get("/nonexistent")
        assert response.status_code == 404
        assert response.json()["error"]["name"] == "NotFoundError"

    @pytest.mark.asyncio
    async def test_unknown_content_type(self, client) -> None:
        response = await client.get("/api/nopes")
        assert response.status_code == 404
        assert response.json() == {
            "error": {"status": 404, "name": "NotFoundError", "message": "Unknown content type: nopes"}
        }

    @pytest.mark.asyncio
    async def test_validation_error_is_400(self, client) -> None:
        response = await client.post("/admin/login", json={"email": "x"})
        assert response.status_code == 400
        assert response.json()["error"]["name"] == "ValidationError"


@pytest.mark.integration
class TestAuthRoutes:
    @pytest.mark.asyncio
    async def test_login_and_me(self, client, seed) -> None:
        login = await client.post(
            "/admin/login", json={"email": "EDITOR.A@example.com", "password": "correct-horse"}
        )
        assert login.status_code == 200
        body = login.json()["data"]
        assert body["user"]["roles"] == ["editor"]

        me = await client.get(
            "/admin/users/me", headers={"Authorization": f"Bearer {body['token']}"}
        )
        assert me.status_code == 200
        assert me.json()["data"]["tenant"] == {"id": seed.tenant_a.id, "externalId": "news-a"}

    @pytest.mark.asyncio
    async def test_bad_password(self, client, seed) -> None:
        response = await client.post(
            "/admin/login", json={"email": "root@example.com", "password": "nope"}
        )
        assert response.status_code == 401
        assert response.json()["error"]["name"] == "UnauthorizedError"

    @pytest.mark.asyncio
    async def test_me_requires_token(self, client, seed) -> None:
        assert (await client.get("/admin/users/me")).status_code == 401
        bad = await client.get("/admin/users/me", headers={"Authorization": "Bearer nope"})
        assert bad.status_code == 401

    @pytest.mark.asyncio
    async def test_super_admin_has_no_tenant(self, client, seed, auth_headers) -> None:
        me = await client.get("/admin/users/me", headers=auth_headers(seed.super_admin))
        assert me.json()["data"]["tenant"] is None
