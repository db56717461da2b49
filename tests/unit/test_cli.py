import pytest

from tenantgate import cli
from tenantgate.config.settings import get_settings
from tenantgate.storage.database import get_engine


@pytest.fixture()
def cli_env(tmp_path, monkeypatch: pytest.MonkeyPatch):
    """Point the CLI at a throwaway SQLite database."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}")
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    get_engine.cache_clear()
    yield
    get_settings.cache_clear()
    get_engine.cache_clear()


@pytest.mark.unit
class TestParser:
    def test_subcommands(self) -> None:
        parser = cli.build_parser()
        args = parser.parse_args(["assign-editor", "e@example.com", "news-a", "--replace"])
        assert args.command == "assign-editor"
        assert args.replace is True
        assert parser.parse_args(["migrate"]).revision == "head"

    def test_repeatable_options(self) -> None:
        parser = cli.build_parser()
        args = parser.parse_args(
            ["backfill-tenant", "news-a", "--uid", "api::article.article", "--uid", "api::bishop.bishop"]
        )
        assert args.uid == ["api::article.article", "api::bishop.bishop"]
        admin = parser.parse_args(["create-admin", "r@example.com", "--role", "super-admin"])
        assert admin.role == ["super-admin"]
        assert admin.password is None

    def test_command_is_required(self) -> None:
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])


@pytest.mark.unit
class TestCommands:
    def test_operator_workflow(self, cli_env, capsys: pytest.CaptureFixture[str]) -> None:
        assert cli.main(["init-db"]) == 0
        assert cli.main(["create-tenant", "cli-tenant", "CLI Tenant"]) == 0
        assert (
            cli.main(["create-admin", "Ed@Example.com", "--password", "pw", "--role", "editor"]) == 0
        )
        assert cli.main(["assign-editor", "ed@example.com", "cli-tenant"]) == 0
        assert cli.main(["grant-editor-permissions"]) == 0
        assert cli.main(["backfill-tenant", "cli-tenant"]) == 0

        out = capsys.readouterr().out
        assert '"externalId": "cli-tenant"' in out
        assert '"email": "ed@example.com"' in out
        assert '"created": 0' in out
        assert '"total": 0' in out

    def test_migrate_is_repeatable(self, cli_env, capsys: pytest.CaptureFixture[str]) -> None:
        assert cli.main(["migrate"]) == 0
        assert cli.main(["migrate"]) == 0
        assert cli.main(["create-tenant", "migrated", "Migrated"]) == 0
        assert cli.main(["grant-editor-permissions"]) == 0

        out = capsys.readouterr().out
        assert '"revision": "head"' in out
        assert '"externalId": "migrated"' in out
        assert '"created": 0' in out

    def test_errors_exit_non_zero(self, cli_env, capsys: pytest.CaptureFixture[str]) -> None:
        assert cli.main(["init-db"]) == 0
        assert cli.main(["assign-editor", "ed@example.com", "missing"]) == 1
        assert "Tenant not found: missing" in capsys.readouterr().err
