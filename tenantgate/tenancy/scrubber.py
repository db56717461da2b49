"""Hide internal fields from the admin configuration editors receive.

Purely cosmetic: the interceptor and the lifecycle assigner enforce tenancy
whether or not the field is visible.
"""

from __future__ import annotations

import copy
from typing import Any

from tenantgate.content_types.registry import SCRUBBED_CONFIGURATION_UIDS, api_uid
from tenantgate.tenancy.scope import AdminIdentity

HIDDEN_FIELDS = frozenset({"tenant", "views", "isFeatured"})
FLASH_NEWS_ITEM_UID = api_uid("flash-news-item")


def _cell_name(item: Any) -> Any:
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        return item.get("name", item.get("field"))
    return None


def _strip_array(items: list[Any]) -> list[Any]:
    kept = []
    for item in items:
        if _cell_name(item) in HIDDEN_FIELDS:
            continue
        if isinstance(item, list):
            item = _strip_array(item)
        elif isinstance(item, dict):
            _strip_node(item)
        kept.append(item)
    return kept


def _strip_node(node: dict[str, Any]) -> None:
    for key, value in node.items():
        if key == "metadatas":
            continue
        if isinstance(value, list):
            node[key] = _strip_array(value)
        elif isinstance(value, dict):
            _strip_node(value)


def _is_layout_grid(value: Any) -> bool:
    """An array of rows whose first cell names a field."""
    if not isinstance(value, list) or not value or not isinstance(value[0], list) or not value[0]:
        return False
    cell = value[0][0]
    return isinstance(cell, dict) and ("name" in cell or "field" in cell)


def _move_title_first(grid: list[list[Any]]) -> None:
    for row_index, row in enumerate(grid):
        if not isinstance(row, list):
            continue
        for cell_index, cell in enumerate(row):
            if _cell_name(cell) == "title":
                row.pop(cell_index)
                if not row:
                    grid.pop(row_index)
                if grid:
                    grid[0].insert(0, cell)
                else:
                    grid.append([cell])
                return


def _title_first_everywhere(node: Any) -> None:
    if isinstance(node, list):
        if _is_layout_grid(node):
            _move_title_first(node)
            return
        for item in node:
            _title_first_everywhere(item)
    elif isinstance(node, dict):
        for value in node.values():
            _title_first_everywhere(value)


def scrub_configuration(
    config: dict[str, Any], uid: str, identity: AdminIdentity | None
) -> dict[str, Any]:
    """Return ``config`` as an editor should see it; others get it unchanged."""
    if identity is None or not identity.is_editor or uid not in SCRUBBED_CONFIGURATION_UIDS:
        return config
    scrubbed = copy.deepcopy(config)
    _strip_node(scrubbed)
    if uid == FLASH_NEWS_ITEM_UID:
        _title_first_everywhere(scrubbed)
    return scrubbed
