import pytest
from sqlalchemy.exc import OperationalError

from tenantgate.tenancy import context
from tenantgate.tenancy.context import RequestContext
from tenantgate.tenancy.scope import AdminIdentity
from tenantgate.types import ScopeKind


def _db_down(*_args, **_kwargs):
    raise OperationalError("SELECT 1", {}, Exception("connection refused"))


@pytest.mark.unit
class TestResolveTenantForUser:
    async def test_editor_resolves_case_insensitively(self, platform, seed) -> None:
        tenant = await platform.resolver.resolve_tenant_for_user(seed.editor_a)
        assert tenant is not None
        assert tenant.id == seed.tenant_a.id
        assert tenant.external_id == "news-a"

    async def test_lookup_by_id_and_email(self, platform, seed) -> None:
        by_id = await platform.resolver.resolve_tenant_for_user(seed.editor_b.id)
        by_str_id = await platform.resolver.resolve_tenant_for_user(str(seed.editor_b.id))
        by_email = await platform.resolver.resolve_tenant_for_user("Editor.B@Example.com")
        assert by_id == by_str_id == by_email
        assert by_id.id == seed.tenant_b.id

    async def test_super_admin_never_resolves(self, platform, seed) -> None:
        await platform.assignments.assign("root@example.com", seed.tenant_a.id)
        assert await platform.resolver.resolve_tenant_for_user(seed.super_admin) is None

    async def test_non_editor_and_unknown(self, platform, seed) -> None:
        assert await platform.resolver.resolve_tenant_for_user(seed.author) is None
        assert await platform.resolver.resolve_tenant_for_user(seed.orphan_editor) is None
        assert await platform.resolver.resolve_tenant_for_user(None) is None
        assert await platform.resolver.resolve_tenant_for_user("not-an-email") is None
        assert await platform.resolver.resolve_tenant_for_user(9999) is None

    async def test_lookup_errors_propagate(self, platform, seed, monkeypatch) -> None:
        monkeypatch.setattr(platform.assignments, "get_tenant_for_email", _db_down)
        with pytest.raises(OperationalError):
            await platform.resolver.resolve_tenant_for_user(seed.editor_a)


@pytest.mark.unit
class TestScopeFor:
    async def test_kinds(self, platform, seed) -> None:
        assert (await platform.resolver.scope_for(seed.super_admin)).is_unscoped
        assert (await platform.resolver.scope_for(seed.author)).is_unscoped
        assert (await platform.resolver.scope_for(None)).is_unscoped
        assert (await platform.resolver.scope_for(seed.orphan_editor)).is_denied
        scope = await platform.resolver.scope_for(seed.editor_a)
        assert scope.kind is ScopeKind.TENANT
        assert scope.tenant.id == seed.tenant_a.id

    async def test_editor_fails_closed_on_lookup_error(self, platform, seed, monkeypatch) -> None:
        monkeypatch.setattr(platform.assignments, "get_tenant_for_email", _db_down)
        assert (await platform.resolver.scope_for(seed.editor_a)).is_denied

    async def test_editor_without_email_is_denied(self, platform) -> None:
        identity = AdminIdentity(id=77, email="", roles=frozenset({"editor"}))
        assert (await platform.resolver.scope_for(identity)).is_denied


@pytest.mark.unit
class TestCurrentScope:
    async def test_unscoped_outside_a_request(self, platform, seed) -> None:
        assert (await platform.resolver.current_scope()).is_unscoped

    async def test_uses_request_user(self, platform, seed) -> None:
        with context.bind(RequestContext(user=seed.editor_b)):
            scope = await platform.resolver.current_scope()
        assert scope.tenant.id == seed.tenant_b.id

    async def test_falls_back_to_bearer_token(self, platform, seed) -> None:
        token = platform.tokens.issue(seed.editor_a.id)
        ctx = RequestContext(headers={"authorization": f"Bearer {token}"})
        with context.bind(ctx):
            scope = await platform.resolver.current_scope()
            identity = await platform.resolver.identity_from_context(ctx)
        assert scope.tenant.id == seed.tenant_a.id
        assert identity == seed.editor_a

    async def test_bad_token_is_anonymous(self, platform, seed) -> None:
        ctx = RequestContext(headers={"authorization": "Bearer not-a-token"})
        with context.bind(ctx):
            assert (await platform.resolver.current_scope()).is_unscoped

    async def test_scope_is_memoized_per_request(self, platform, seed, monkeypatch) -> None:
        calls = []
        original = platform.assignments.get_tenant_for_email

        async def counting(email):
            calls.append(email)
            return await original(email)

        monkeypatch.setattr(platform.assignments, "get_tenant_for_email", counting)
        with context.bind(RequestContext(user=seed.editor_a)):
            first = await platform.resolver.current_scope()
            second = await platform.resolver.current_scope()
        assert first is second
        assert calls == ["editor.a@example.com"]

    async def test_identity_lookup_error_denies(self, platform, seed, monkeypatch) -> None:
        monkeypatch.setattr(platform.users, "load_identity", _db_down)
        token = platform.tokens.issue(seed.editor_a.id)
        with context.bind(RequestContext(headers={"authorization": f"Bearer {token}"})):
            assert (await platform.resolver.current_scope()).is_denied
