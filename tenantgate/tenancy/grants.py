"""Idempotent editor permission grant for tenant-scoped content types."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from tenantgate.config.settings import EDITOR_ROLE_CODE
from tenantgate.content_types.registry import TENANT_SCOPED_UIDS
from tenantgate.tenancy.conditions import SAME_TENANT_CONDITION
from tenantgate.types import PermissionAction

if TYPE_CHECKING:
    from tenantgate.storage.repositories.admin_users import AdminUserRepository
    from tenantgate.storage.repositories.permissions import PermissionRepository

logger = structlog.get_logger(__name__)

EDITOR_ACTIONS = (
    PermissionAction.CREATE,
    PermissionAction.READ,
    PermissionAction.UPDATE,
    PermissionAction.DELETE,
    PermissionAction.PUBLISH,
)


def editor_grants() -> list[tuple[str, str]]:
    return [(str(action), uid) for uid in sorted(TENANT_SCOPED_UIDS) for action in EDITOR_ACTIONS]


async def ensure_editor_tenant_permissions(
    users: AdminUserRepository, permissions: PermissionRepository
) -> dict[str, int]:
    """Give the editor role one same-tenant permission per scoped type and action.

    Safe to run on every startup and from several processes at once.
    """
    role = await users.get_role(EDITOR_ROLE_CODE)
    if role is None or role.id is None:
        logger.warning("editor_role_missing", code=EDITOR_ROLE_CODE)
        return {"created": 0, "updated": 0, "unchanged": 0}

    counts = await permissions.upsert_grants(role.id, editor_grants(), [SAME_TENANT_CONDITION])
    logger.info("editor_permissions_ensured", role_id=role.id, **counts)
    return counts
