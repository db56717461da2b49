"""Public read-only content API; only published documents are served."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from tenantgate.content_types.registry import by_plural_name
from tenantgate.exceptions import NotFoundError
from tenantgate.tenancy.rewriters import parse_filters
from tenantgate.web.dependencies import Platform, get_platform

router = APIRouter(prefix="/api", tags=["content-api"])


@router.get("/{plural}")
async def list_published(
    plural: str,
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, alias="pageSize", ge=1),
    sort: str | None = None,
    filters: str | None = None,
    platform: Platform = Depends(get_platform),
) -> dict[str, Any]:
    spec = by_plural_name(plural)
    result = await platform.documents.find_many(
        spec.uid,
        filters=parse_filters(filters),
        sort=sort,
        page=page,
        page_size=page_size,
        published_only=True,
    )
    return {
        "data": [r.to_dict(include_actors=False) for r in result.results],
        "meta": {"pagination": result.pagination.to_dict()},
    }


@router.get("/{plural}/{document_id}")
async def get_published(
    plural: str, document_id: str, platform: Platform = Depends(get_platform)
) -> dict[str, Any]:
    spec = by_plural_name(plural)
    record = await platform.documents.find_one(spec.uid, document_id, published_only=True)
    if record is None:
        raise NotFoundError(f"{plural} {document_id} not found")
    return {"data": record.to_dict(include_actors=False), "meta": {}}
