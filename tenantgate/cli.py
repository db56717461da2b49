"""Operator CLI: schema, admins, tenants, assignments, grants and backfill."""

from __future__ import annotations

import argparse
import asyncio
import getpass
import json
import sys
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from tenantgate.config.logging import setup_logging
from tenantgate.config.settings import get_settings
from tenantgate.exceptions import NotFoundError, TenantGateError
from tenantgate.storage.database import get_engine, init_db, upgrade_schema
from tenantgate.tenancy.grants import ensure_editor_tenant_permissions
from tenantgate.tenancy.lifecycle import backfill_tenant
from tenantgate.web.auth.tokens import hash_password
from tenantgate.web.dependencies import Platform, bootstrap, build_platform

logger = structlog.get_logger(__name__)


def _print(payload: dict[str, Any]) -> None:
    sys.stdout.write(json.dumps(payload, indent=2, default=str) + "\n")


async def _init_db(platform: Platform, _args: argparse.Namespace) -> None:
    await init_db(platform.engine)
    await bootstrap(platform)
    _print({"status": "ok"})


async def _migrate(platform: Platform, args: argparse.Namespace) -> None:
    await bootstrap(platform)
    _print({"status": "ok", "revision": args.revision})


async def _create_admin(platform: Platform, args: argparse.Namespace) -> None:
    password = args.password or getpass.getpass("Password: ")
    user = await platform.users.create(
        args.email,
        hash_password(password),
        roles=args.role,
        firstname=args.firstname,
        lastname=args.lastname,
    )
    _print({"id": user.id, "email": user.email, "roles": args.role})


async def _create_tenant(platform: Platform, args: argparse.Namespace) -> None:
    tenant = await platform.tenants.create(
        external_id=args.external_id,
        name=args.name,
        slug=args.slug,
        domain=args.domain,
        description=args.description,
    )
    _print({"id": tenant.id, "externalId": tenant.external_id, "name": tenant.name})


async def _assign_editor(platform: Platform, args: argparse.Namespace) -> None:
    tenant = await platform.tenants.get_by_external_id(args.tenant)
    if tenant is None or tenant.id is None:
        raise NotFoundError(f"Tenant not found: {args.tenant}")
    assignment = await platform.assignments.assign(args.email, tenant.id, replace=args.replace)
    _print({"email": assignment.admin_user_email, "tenant": tenant.external_id})


async def _grant_editor_permissions(platform: Platform, _args: argparse.Namespace) -> None:
    _print(await ensure_editor_tenant_permissions(platform.users, platform.permissions))


async def _backfill_tenant(platform: Platform, args: argparse.Namespace) -> None:
    counts = await backfill_tenant(platform.tenants, platform.store, args.tenant, args.uid or None)
    _print({"tenant": args.tenant, "counts": counts, "total": sum(counts.values())})


_COMMANDS: dict[str, Callable[[Platform, argparse.Namespace], Awaitable[None]]] = {
    "init-db": _init_db,
    "migrate": _migrate,
    "create-admin": _create_admin,
    "create-tenant": _create_tenant,
    "assign-editor": _assign_editor,
    "grant-editor-permissions": _grant_editor_permissions,
    "backfill-tenant": _backfill_tenant,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tenantgate", description=__doc__)
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create tables without migrations (dev only), then seed")

    migrate = sub.add_parser(
        "migrate", help="Apply schema migrations, seed roles and editor permissions"
    )
    migrate.add_argument("--revision", default="head", help="Target revision")

    admin = sub.add_parser("create-admin", help="Create an admin user")
    admin.add_argument("email")
    admin.add_argument("--password", help="Prompted for when omitted")
    admin.add_argument("--role", action="append", default=[], help="Role code; repeatable")
    admin.add_argument("--firstname", default="")
    admin.add_argument("--lastname", default="")

    tenant = sub.add_parser("create-tenant", help="Create a tenant")
    tenant.add_argument("external_id")
    tenant.add_argument("name")
    tenant.add_argument("--slug")
    tenant.add_argument("--domain")
    tenant.add_argument("--description")

    assign = sub.add_parser("assign-editor", help="Assign an editor email to a tenant")
    assign.add_argument("email")
    assign.add_argument("tenant", help="Tenant external id")
    assign.add_argument("--replace", action="store_true", help="Move an existing assignment")

    sub.add_parser(
        "grant-editor-permissions", help="Ensure editor same-tenant permissions (idempotent)"
    )

    backfill = sub.add_parser("backfill-tenant", help="Connect tenant-less records to a tenant")
    backfill.add_argument("tenant", help="Tenant external id or numeric id")
    backfill.add_argument(
        "--uid", action="append", default=[], help="Content-type uid; repeatable, default all"
    )
    return parser


async def _run(args: argparse.Namespace) -> None:
    engine = get_engine()
    platform = build_platform(engine, get_settings())
    try:
        await _COMMANDS[args.command](platform, args)
    finally:
        await engine.dispose()


def main(argv: list[str] | None = None) -> int:
    """Run one operator command; returns the process exit code."""
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(log_level=settings.log_level, json_output=True)
    try:
        if args.command == "migrate":
            upgrade_schema(settings.database_url, args.revision)
        asyncio.run(_run(args))
    except TenantGateError as exc:
        logger.error("command_failed", command=args.command, error=exc.message)
        sys.stderr.write(f"error: {exc.message}\n")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
