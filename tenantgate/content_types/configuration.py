"""Content-manager configuration (list/edit layouts) generated from the registry."""

from __future__ import annotations

from typing import Any

from tenantgate.content_types.registry import TENANT_FIELD, ContentTypeSpec, api_uid
from tenantgate.types import FieldType

_LIST_COLUMNS = 3
_NOT_LISTABLE = frozenset({FieldType.RICHTEXT, FieldType.MEDIA, FieldType.RELATION})
_ARTICLE_UID = api_uid("article")


def _metadata(name: str, *, listable: bool = True) -> dict[str, Any]:
    return {
        "edit": {"label": name, "description": "", "visible": True, "editable": True},
        "list": {"label": name, "searchable": listable, "sortable": listable},
    }


def _list_layout(spec: ContentTypeSpec) -> list[str]:
    columns = ["id", spec.main_field]
    for field in spec.fields:
        if len(columns) >= _LIST_COLUMNS + 1:
            break
        if field.name not in columns and field.type not in _NOT_LISTABLE:
            columns.append(field.name)
    if spec.uid == _ARTICLE_UID:
        columns.append("publishedAt")
    if spec.tenant_scoped:
        columns.append(TENANT_FIELD)
    return columns


def _edit_layout(spec: ContentTypeSpec) -> list[list[dict[str, Any]]]:
    cells = [{"name": f.name, "size": 12 if f.type is FieldType.RICHTEXT else 6} for f in spec.fields]
    if spec.tenant_scoped:
        cells.append({"name": TENANT_FIELD, "size": 6})

    rows: list[list[dict[str, Any]]] = []
    row: list[dict[str, Any]] = []
    width = 0
    for cell in cells:
        if width + cell["size"] > 12 and row:
            rows.append(row)
            row, width = [], 0
        row.append(cell)
        width += cell["size"]
    if row:
        rows.append(row)
    return rows


def build_configuration(spec: ContentTypeSpec, page_size: int = 10) -> dict[str, Any]:
    """Configuration body for ``GET /content-manager/content-types/{uid}/configuration``."""
    sort_by, sort_order = spec.default_sort or (spec.main_field, "ASC")

    metadatas = {f.name: _metadata(f.name, listable=f.type not in _NOT_LISTABLE) for f in spec.fields}
    metadatas["id"] = _metadata("id")
    if spec.draft_and_publish or spec.uid == _ARTICLE_UID:
        metadatas["publishedAt"] = _metadata("publishedAt")
        metadatas["publishedAt"]["list"]["searchable"] = False
    if spec.tenant_scoped:
        metadatas[TENANT_FIELD] = _metadata(TENANT_FIELD, listable=False)

    return {
        "data": {
            "contentType": {
                "uid": spec.uid,
                "settings": {
                    "mainField": spec.main_field,
                    "defaultSortBy": sort_by,
                    "defaultSortOrder": sort_order,
                    "pageSize": page_size,
                    "searchable": True,
                    "filterable": True,
                    "bulkable": True,
                },
                "metadatas": metadatas,
                "layouts": {"list": _list_layout(spec), "edit": _edit_layout(spec)},
            }
        }
    }
