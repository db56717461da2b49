"""Content-manager admin routes: collection types, relations, configuration."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends

from tenantgate.content_types.configuration import build_configuration
from tenantgate.content_types.registry import get_content_type
from tenantgate.exceptions import NotFoundError
from tenantgate.models.domain import DocumentRecord
from tenantgate.tenancy.rewriters import ListQuery, RelationQuery, list_view_query, relation_picker_query
from tenantgate.tenancy.scope import AdminIdentity, conjoin
from tenantgate.tenancy.scrubber import scrub_configuration
from tenantgate.types import PermissionAction
from tenantgate.web.auth.admin import require_admin_user
from tenantgate.web.dependencies import Platform, get_platform

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/content-manager", tags=["content-manager"])


def _found(record: DocumentRecord | None, uid: str, document_id: str) -> dict[str, Any]:
    if record is None:
        raise NotFoundError(f"{uid} {document_id} not found")
    return {"data": record.to_dict()}


# ---------------------------------------------------------------------------
# Collection types
# ---------------------------------------------------------------------------


@router.get("/collection-types/{uid}")
async def list_documents(
    query: ListQuery = Depends(list_view_query),
    user: AdminIdentity = Depends(require_admin_user),
    platform: Platform = Depends(get_platform),
) -> dict[str, Any]:
    restriction = await platform.access.query_filter(user, PermissionAction.READ, query.uid)
    page = await platform.documents.find_many(
        query.uid,
        filters=conjoin(query.filters, restriction),
        sort=query.sort,
        page=query.page,
        page_size=query.page_size,
        search=query.search,
    )
    return {
        "results": [r.to_dict() for r in page.results],
        "pagination": page.pagination.to_dict(),
    }


@router.post("/collection-types/{uid}", status_code=201)
async def create_document(
    uid: str,
    body: dict[str, Any] = Body(...),
    user: AdminIdentity = Depends(require_admin_user),
    platform: Platform = Depends(get_platform),
) -> dict[str, Any]:
    get_content_type(uid)
    await platform.access.query_filter(user, PermissionAction.CREATE, uid)
    record = await platform.documents.create(uid, body, user_id=user.id)
    return {"data": record.to_dict()}


@router.get("/collection-types/{uid}/{document_id}")
async def get_document(
    uid: str,
    document_id: str,
    user: AdminIdentity = Depends(require_admin_user),
    platform: Platform = Depends(get_platform),
) -> dict[str, Any]:
    get_content_type(uid)
    await platform.access.ensure_document_permitted(user, PermissionAction.READ, uid, document_id)
    record = await platform.documents.find_one(uid, document_id)
    return _found(record, uid, document_id)


@router.put("/collection-types/{uid}/{document_id}")
async def update_document(
    uid: str,
    document_id: str,
    body: dict[str, Any] = Body(...),
    user: AdminIdentity = Depends(require_admin_user),
    platform: Platform = Depends(get_platform),
) -> dict[str, Any]:
    get_content_type(uid)
    await platform.access.ensure_document_permitted(user, PermissionAction.UPDATE, uid, document_id)
    record = await platform.documents.update(uid, document_id, body, user_id=user.id)
    return _found(record, uid, document_id)


@router.delete("/collection-types/{uid}/{document_id}")
async def delete_document(
    uid: str,
    document_id: str,
    user: AdminIdentity = Depends(require_admin_user),
    platform: Platform = Depends(get_platform),
) -> dict[str, Any]:
    get_content_type(uid)
    await platform.access.ensure_document_permitted(user, PermissionAction.DELETE, uid, document_id)
    record = await platform.documents.delete(uid, document_id)
    return _found(record, uid, document_id)


@router.post("/collection-types/{uid}/{document_id}/actions/publish")
async def publish_document(
    uid: str,
    document_id: str,
    user: AdminIdentity = Depends(require_admin_user),
    platform: Platform = Depends(get_platform),
) -> dict[str, Any]:
    get_content_type(uid)
    await platform.access.ensure_document_permitted(user, PermissionAction.PUBLISH, uid, document_id)
    record = await platform.documents.publish(uid, document_id, user_id=user.id)
    return _found(record, uid, document_id)


@router.post("/collection-types/{uid}/{document_id}/actions/unpublish")
async def unpublish_document(
    uid: str,
    document_id: str,
    user: AdminIdentity = Depends(require_admin_user),
    platform: Platform = Depends(get_platform),
) -> dict[str, Any]:
    get_content_type(uid)
    await platform.access.ensure_document_permitted(user, PermissionAction.PUBLISH, uid, document_id)
    record = await platform.documents.unpublish(uid, document_id, user_id=user.id)
    return _found(record, uid, document_id)


# ---------------------------------------------------------------------------
# Relation picker
# ---------------------------------------------------------------------------


@router.get("/relations/{uid}/{field}")
async def find_available_relations(
    query: RelationQuery = Depends(relation_picker_query),
    _user: AdminIdentity = Depends(require_admin_user),
    platform: Platform = Depends(get_platform),
) -> dict[str, Any]:
    target = get_content_type(query.target_uid)
    page = await platform.store.find_many(
        query.target_uid,
        filters=query.filters,
        page=query.page,
        page_size=min(query.page_size, platform.settings.max_page_size),
        search=query.search,
    )
    return {
        "results": [
            {
                "id": r.id,
                "documentId": r.document_id,
                target.main_field: r.data.get(target.main_field),
                "publishedAt": r.published_at.isoformat() if r.published_at else None,
            }
            for r in page.results
        ],
        "pagination": page.pagination.to_dict(),
    }


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@router.get("/content-types/{uid}/configuration")
async def get_configuration(
    uid: str,
    user: AdminIdentity = Depends(require_admin_user),
    platform: Platform = Depends(get_platform),
) -> dict[str, Any]:
    spec = get_content_type(uid)
    config = build_configuration(spec, page_size=platform.settings.default_page_size)
    return scrub_configuration(config, uid, user)
