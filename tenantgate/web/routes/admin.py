"""Super-admin routes: tenants, editor assignments and the tenant backfill."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends, Response
from pydantic import BaseModel, ConfigDict, Field

from tenantgate.exceptions import NotFoundError
from tenantgate.models.database import Tenant
from tenantgate.tenancy.lifecycle import backfill_tenant
from tenantgate.tenancy.scope import AdminIdentity
from tenantgate.web.auth.admin import require_super_admin
from tenantgate.web.dependencies import Platform, get_platform

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_super_admin)])


class CreateTenantRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    external_id: str = Field(alias="externalId", min_length=1, max_length=200)
    name: str = Field(min_length=1, max_length=200)
    slug: str | None = None
    domain: str | None = None
    description: str | None = None


class AssignEditorRequest(BaseModel):
    email: str = Field(min_length=3)
    tenant: str = Field(min_length=1, description="Tenant external id")
    replace: bool = False


class BackfillRequest(BaseModel):
    uids: list[str] | None = None


def _tenant_body(tenant: Tenant) -> dict[str, Any]:
    return {
        "id": tenant.id,
        "externalId": tenant.external_id,
        "name": tenant.name,
        "slug": tenant.slug,
        "domain": tenant.domain,
        "description": tenant.description,
    }


# ---------------------------------------------------------------------------
# Tenants
# ---------------------------------------------------------------------------


@router.get("/tenants")
async def list_tenants(platform: Platform = Depends(get_platform)) -> dict[str, Any]:
    return {"data": [_tenant_body(t) for t in await platform.tenants.list_all()]}


@router.post("/tenants", status_code=201)
async def create_tenant(
    body: CreateTenantRequest, platform: Platform = Depends(get_platform)
) -> dict[str, Any]:
    tenant = await platform.tenants.create(
        external_id=body.external_id,
        name=body.name,
        slug=body.slug,
        domain=body.domain,
        description=body.description,
    )
    return {"data": _tenant_body(tenant)}


@router.post("/tenants/{external_id}/backfill")
async def backfill(
    external_id: str,
    body: BackfillRequest | None = Body(None),
    user: AdminIdentity = Depends(require_super_admin),
    platform: Platform = Depends(get_platform),
) -> dict[str, Any]:
    counts = await backfill_tenant(
        platform.tenants, platform.store, external_id, body.uids if body else None
    )
    logger.info("tenant_backfill_requested", tenant=external_id, user_id=user.id)
    return {"data": {"tenant": external_id, "counts": counts, "total": sum(counts.values())}}


# ---------------------------------------------------------------------------
# Editor assignments
# ---------------------------------------------------------------------------


@router.get("/editor-tenants")
async def list_assignments(platform: Platform = Depends(get_platform)) -> dict[str, Any]:
    rows = await platform.assignments.list_all()
    return {
        "data": [
            {"email": assignment.admin_user_email, "tenant": _tenant_body(tenant)}
            for assignment, tenant in rows
        ]
    }


@router.put("/editor-tenants")
async def assign_editor(
    body: AssignEditorRequest, platform: Platform = Depends(get_platform)
) -> dict[str, Any]:
    tenant = await platform.tenants.get_by_external_id(body.tenant)
    if tenant is None or tenant.id is None:
        raise NotFoundError(f"Tenant not found: {body.tenant}")
    assignment = await platform.assignments.assign(body.email, tenant.id, replace=body.replace)
    return {"data": {"email": assignment.admin_user_email, "tenant": _tenant_body(tenant)}}


@router.delete("/editor-tenants/{email}", status_code=204)
async def unassign_editor(email: str, platform: Platform = Depends(get_platform)) -> Response:
    if not await platform.assignments.remove(email):
        raise NotFoundError(f"No assignment for {email}")
    return Response(status_code=204)
