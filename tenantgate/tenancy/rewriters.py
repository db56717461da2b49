"""Admin list-view and relation-picker query rewriting.

Both are FastAPI dependencies resolved before the route body. Each one
authenticates the admin first, so content-type uids are only looked up for
authenticated callers; the scope then comes from the request context.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import structlog
from fastapi import Depends, Query

from tenantgate.content_types.registry import get_content_type, is_tenant_scoped
from tenantgate.exceptions import InvalidFilterError, NotFoundError
from tenantgate.tenancy.scope import MATCH_NOTHING, AdminIdentity, conjoin
from tenantgate.web.auth.admin import require_admin_user
from tenantgate.web.dependencies import Platform, get_platform

logger = structlog.get_logger(__name__)


@dataclass
class ListQuery:
    uid: str
    page: int
    page_size: int
    sort: str | None = None
    search: str | None = None
    filters: dict[str, Any] | None = None


@dataclass
class RelationQuery:
    uid: str
    field: str
    target_uid: str
    page: int
    page_size: int
    search: str | None = None
    filters: dict[str, Any] | None = None


def parse_filters(raw: str | None) -> dict[str, Any] | None:
    if not raw:
        return None
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InvalidFilterError("filters must be a JSON object") from exc
    if not isinstance(parsed, dict):
        raise InvalidFilterError("filters must be a JSON object")
    return parsed


async def list_view_query(
    uid: str,
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, alias="pageSize", ge=1),
    sort: str | None = None,
    search: str | None = Query(None, alias="_q"),
    filters: str | None = None,
    platform: Platform = Depends(get_platform),
    _user: AdminIdentity = Depends(require_admin_user),
) -> ListQuery:
    """Query for the content-manager list view, narrowed for editors."""
    get_content_type(uid)
    query = ListQuery(
        uid=uid,
        page=page,
        page_size=page_size or platform.settings.default_page_size,
        sort=sort,
        search=search,
        filters=parse_filters(filters),
    )
    if not is_tenant_scoped(uid):
        return query

    scope = await platform.resolver.current_scope()
    if scope.is_unscoped:
        return query

    query.filters = conjoin(query.filters, scope.list_filter())
    query.page_size = max(query.page_size, platform.settings.editor_min_page_size)
    logger.debug(
        "list_query_scoped",
        uid=uid,
        tenant_id=scope.tenant.id if scope.tenant else None,
        page_size=query.page_size,
    )
    return query


async def relation_picker_query(
    uid: str,
    field: str,
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, alias="pageSize", ge=1),
    search: str | None = Query(None, alias="_q"),
    platform: Platform = Depends(get_platform),
    _user: AdminIdentity = Depends(require_admin_user),
) -> RelationQuery:
    """Query for the relation picker; the picker reads storage directly."""
    target = get_content_type(uid).relation_target(field)
    if target is None:
        raise NotFoundError(f"{field} is not a relation of {uid}")

    query = RelationQuery(
        uid=uid,
        field=field,
        target_uid=target,
        page=page,
        page_size=max(
            page_size or platform.settings.default_page_size,
            platform.settings.relation_min_page_size,
        ),
        search=search,
    )
    if not is_tenant_scoped(target):
        return query

    scope = await platform.resolver.current_scope()
    if scope.tenant is not None:
        query.filters = {"tenant": {"id": {"$eq": scope.tenant.id}}}
    elif scope.is_denied:
        query.filters = MATCH_NOTHING
    return query
