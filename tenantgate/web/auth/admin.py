"""Admin authentication dependencies."""

from __future__ import annotations

import structlog
from fastapi import Depends, Request

from tenantgate.exceptions import AuthenticationError, ForbiddenError
from tenantgate.tenancy import context
from tenantgate.tenancy.scope import AdminIdentity
from tenantgate.web.dependencies import Platform, get_platform

logger = structlog.get_logger(__name__)


def _bearer_token(request: Request) -> str:
    auth_header = request.headers.get("authorization", "")
    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthenticationError("Missing or invalid credentials")
    return parts[1]


async def require_admin_user(
    request: Request, platform: Platform = Depends(get_platform)
) -> AdminIdentity:
    """Authenticate the bearer token and record the admin on the request."""
    user_id = platform.tokens.verify(_bearer_token(request))
    identity = await platform.users.load_identity(user_id)
    if identity is None:
        logger.info("admin_user_inactive", user_id=user_id)
        raise AuthenticationError("Missing or invalid credentials")

    request.state.user = identity
    ctx = context.get()
    if ctx is not None:
        ctx.set_user(identity)
    structlog.contextvars.bind_contextvars(admin_id=identity.id)
    return identity


async def require_super_admin(
    identity: AdminIdentity = Depends(require_admin_user),
) -> AdminIdentity:
    if not identity.is_super_admin:
        raise ForbiddenError("Forbidden")
    return identity
