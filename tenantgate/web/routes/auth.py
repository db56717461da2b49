"""Admin authentication routes: password login and current user."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from tenantgate.exceptions import AuthenticationError
from tenantgate.tenancy.scope import AdminIdentity
from tenantgate.web.auth.admin import require_admin_user
from tenantgate.web.auth.tokens import verify_password
from tenantgate.web.dependencies import Platform, get_platform

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["auth"])


class LoginRequest(BaseModel):
    email: str
    password: str


def _user_body(identity: AdminIdentity) -> dict[str, Any]:
    return {"id": identity.id, "email": identity.email, "roles": sorted(identity.roles)}


@router.post("/login")
async def login(body: LoginRequest, platform: Platform = Depends(get_platform)) -> dict[str, Any]:
    user = await platform.users.get_by_email(body.email)
    if user is None or not verify_password(body.password, user.password_hash):
        logger.info("admin_login_failed", email=body.email.lower())
        raise AuthenticationError("Invalid credentials")

    identity = await platform.users.identity(user)
    token = platform.tokens.issue(identity.id)
    logger.info("admin_login", user_id=identity.id)
    return {"data": {"token": token, "user": _user_body(identity)}}


@router.get("/users/me")
async def me(
    identity: AdminIdentity = Depends(require_admin_user),
    platform: Platform = Depends(get_platform),
) -> dict[str, Any]:
    body = _user_body(identity)
    tenant = await platform.resolver.resolve_tenant_for_user(identity)
    body["tenant"] = {"id": tenant.id, "externalId": tenant.external_id} if tenant else None
    return {"data": body}
