"""Compile filter expressions into SQLAlchemy clauses over ``documents``.

Filters are nested dicts in the content-manager query style::

    {"$and": [{"title": {"$containsi": "feast"}}, {"tenant": {"id": {"$eq": 7}}}]}

Known columns map to real columns; any other field name must be declared on
the content type and addresses a key of the JSON ``data`` column, cast by the
declared field type. Operands are converted to that type up front so the
database never sees a mistyped comparison. ``tenant`` accepts a tenant id
(int), a tenant external id (str), ``None`` or a nested ``{"id": ...}`` /
``{"externalId": ...}`` expression, so both stored representations of the
relation match.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import String, and_, cast, false, func, not_, or_, select, true
from sqlalchemy.sql.elements import ColumnElement

from tenantgate.content_types.registry import ContentTypeSpec, get_content_type
from tenantgate.exceptions import InvalidFilterError
from tenantgate.models.database import Document, Tenant
from tenantgate.types import FieldType

_COLUMNS: dict[str, tuple[Any, FieldType]] = {
    "id": (Document.id, FieldType.INTEGER),
    "documentId": (Document.document_id, FieldType.STRING),
    "publishedAt": (Document.published_at, FieldType.DATETIME),
    "createdAt": (Document.created_at, FieldType.DATETIME),
    "updatedAt": (Document.updated_at, FieldType.DATETIME),
    "createdBy": (Document.created_by_id, FieldType.INTEGER),
    "updatedBy": (Document.updated_by_id, FieldType.INTEGER),
}
_TENANT_EXTERNAL_KEYS = frozenset({"externalId", "documentId"})

_OPERATORS: dict[str, Callable[[Any, Any], ColumnElement[bool]]] = {
    "$eq": lambda expr, v: expr.is_(None) if v is None else expr == v,
    "$ne": lambda expr, v: expr.is_not(None) if v is None else expr != v,
    "$in": lambda expr, v: expr.in_(v),
    "$notIn": lambda expr, v: expr.not_in(v),
    "$lt": lambda expr, v: expr < v,
    "$lte": lambda expr, v: expr <= v,
    "$gt": lambda expr, v: expr > v,
    "$gte": lambda expr, v: expr >= v,
    "$null": lambda expr, v: expr.is_(None) if v else expr.is_not(None),
    "$notNull": lambda expr, v: expr.is_not(None) if v else expr.is_(None),
    "$contains": lambda expr, v: expr.contains(v),
    "$containsi": lambda expr, v: func.lower(expr).contains(v.lower()),
    "$startsWith": lambda expr, v: expr.startswith(v),
}
_LIST_OPERATORS = frozenset({"$in", "$notIn"})
_NULL_OPERATORS = frozenset({"$null", "$notNull"})
# Pattern operators always compare the text form
_TEXT_OPERATORS = frozenset({"$contains", "$containsi", "$startsWith"})
_TRUE_STRINGS = frozenset({"true", "1"})
_FALSE_STRINGS = frozenset({"false", "0"})


def compile_filters(uid: str, filters: Mapping[str, Any] | None) -> ColumnElement[bool]:
    """Compile a filter expression for content type ``uid``.

    An empty expression matches everything.
    """
    spec = get_content_type(uid)
    if not filters:
        return true()
    return _compile_node(spec, filters)


def _compile_node(spec: ContentTypeSpec, node: Any) -> ColumnElement[bool]:
    if not isinstance(node, Mapping):
        raise InvalidFilterError(f"Filter must be an object, got {type(node).__name__}")

    clauses: list[ColumnElement[bool]] = []
    for key, value in node.items():
        if key == "$and":
            parts = [_compile_node(spec, v) for v in _as_sequence(key, value)]
            clauses.append(and_(*parts) if parts else true())
        elif key == "$or":
            parts = [_compile_node(spec, v) for v in _as_sequence(key, value)]
            clauses.append(or_(*parts) if parts else false())
        elif key == "$not":
            clauses.append(not_(_compile_node(spec, value)))
        elif key.startswith("$"):
            raise InvalidFilterError(f"Unknown logical operator: {key}")
        elif key == "tenant":
            clauses.append(_compile_tenant(value))
        else:
            clauses.append(_compile_field(spec, key, value))

    if not clauses:
        return true()
    return clauses[0] if len(clauses) == 1 else and_(*clauses)


def _as_sequence(key: str, value: Any) -> Sequence[Any]:
    if not isinstance(value, list | tuple):
        raise InvalidFilterError(f"{key} expects a list")
    return value


def _is_operator_map(value: Any) -> bool:
    return isinstance(value, Mapping) and bool(value) and all(str(k).startswith("$") for k in value)


def _field_type(spec: ContentTypeSpec, name: str) -> FieldType:
    if name in _COLUMNS:
        return _COLUMNS[name][1]
    field = spec.get_field(name)
    if field is None:
        raise InvalidFilterError(f"Unknown field {name} on {spec.uid}")
    return field.type


def _compile_field(spec: ContentTypeSpec, name: str, value: Any) -> ColumnElement[bool]:
    if isinstance(value, Mapping) and not _is_operator_map(value):
        raise InvalidFilterError(f"Nested filters are not supported on {name}")
    operators = value if _is_operator_map(value) else {"$eq": value}
    field_type = _field_type(spec, name)
    return _compile_ops(
        operators, name, field_type, lambda op: _field_expression(name, field_type, op)
    )


def _field_expression(name: str, field_type: FieldType, op: str) -> Any:
    if name in _COLUMNS:
        return _column_expression(_COLUMNS[name][0], field_type, op)
    element = Document.data[name]
    if op in _TEXT_OPERATORS or op in _NULL_OPERATORS:
        return element.as_string()
    if field_type is FieldType.INTEGER:
        return element.as_integer()
    if field_type is FieldType.BOOLEAN:
        return element.as_boolean()
    return element.as_string()


def _column_expression(column: Any, field_type: FieldType, op: str) -> Any:
    if op in _TEXT_OPERATORS and field_type is not FieldType.STRING:
        return cast(column, String)
    return column


def _compile_ops(
    ops: Mapping[str, Any],
    label: str,
    field_type: FieldType,
    expression: Callable[[str], Any],
) -> ColumnElement[bool]:
    clauses = []
    for op, operand in ops.items():
        apply = _OPERATORS.get(op)
        if apply is None:
            raise InvalidFilterError(f"Unknown operator {op} on {label}")
        if op in _LIST_OPERATORS:
            items = _as_sequence(f"{op} on {label}", operand)
            values = [_operand(label, field_type, op, v) for v in items]
            clauses.append(apply(expression(op), values))
        elif op in _NULL_OPERATORS:
            clauses.append(apply(expression(op), operand))
        else:
            clauses.append(apply(expression(op), _operand(label, field_type, op, operand)))
    return clauses[0] if len(clauses) == 1 else and_(*clauses)


def _operand(label: str, field_type: FieldType, op: str, value: Any) -> Any:
    """Convert ``value`` to what the compared expression holds."""
    if value is None and op not in _TEXT_OPERATORS:
        return None
    if isinstance(value, Mapping | list | tuple):
        raise InvalidFilterError(f"{op} on {label} expects a scalar")
    if op in _TEXT_OPERATORS:
        if value is None or isinstance(value, bool):
            raise InvalidFilterError(f"{op} on {label} expects text")
        return str(value)
    if field_type is FieldType.INTEGER:
        return _as_integer(label, value)
    if field_type is FieldType.BOOLEAN:
        return _as_boolean(label, value)
    if field_type is FieldType.DATETIME and label in _COLUMNS:
        return _parse_datetime(label, value)
    if isinstance(value, bool):
        raise InvalidFilterError(f"Invalid value for {label}: {value}")
    return str(value)


def _as_integer(label: str, value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidFilterError(f"Invalid integer for {label}: {value}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError as exc:
            raise InvalidFilterError(f"Invalid integer for {label}: {value}") from exc
    raise InvalidFilterError(f"Invalid integer for {label}: {value}")


def _as_boolean(label: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise InvalidFilterError(f"Invalid boolean for {label}: {value}")


def _parse_datetime(label: str, value: Any) -> datetime:
    if not isinstance(value, str):
        raise InvalidFilterError(f"Invalid datetime for {label}: {value}")
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise InvalidFilterError(f"Invalid datetime for {label}: {value}") from exc
    return parsed.replace(tzinfo=None)


# ---------------------------------------------------------------------------
# Tenant relation
# ---------------------------------------------------------------------------


def _tenant_where(clause: ColumnElement[bool]) -> ColumnElement[bool]:
    return Document.tenant_id.in_(select(Tenant.id).where(clause))


def _compile_tenant(value: Any) -> ColumnElement[bool]:
    if value is None:
        return Document.tenant_id.is_(None)
    if isinstance(value, bool):
        raise InvalidFilterError("tenant filter cannot be a boolean")
    if isinstance(value, int):
        return Document.tenant_id == value
    if isinstance(value, str):
        return _tenant_where(Tenant.external_id == value)
    if not isinstance(value, Mapping) or not value:
        raise InvalidFilterError("Invalid tenant filter")

    clauses = []
    for key, operand in value.items():
        if key == "id":
            ops = operand if _is_operator_map(operand) else {"$eq": operand}
            clauses.append(
                _compile_ops(
                    ops,
                    "tenant.id",
                    FieldType.INTEGER,
                    lambda op: _column_expression(Document.tenant_id, FieldType.INTEGER, op),
                )
            )
        elif key in _TENANT_EXTERNAL_KEYS:
            ops = operand if _is_operator_map(operand) else {"$eq": operand}
            matched = _compile_ops(ops, "tenant", FieldType.STRING, lambda op: Tenant.external_id)
            clauses.append(_tenant_where(matched))
        elif key.startswith("$"):
            clauses.append(_compile_tenant_operator(key, operand))
        else:
            raise InvalidFilterError(f"Unknown tenant attribute: {key}")
    return clauses[0] if len(clauses) == 1 else and_(*clauses)


def _compile_tenant_operator(op: str, operand: Any) -> ColumnElement[bool]:
    if op in _NULL_OPERATORS:
        return _OPERATORS[op](Document.tenant_id, operand)
    if op == "$eq":
        return _compile_tenant(operand)
    if op == "$ne":
        return not_(_compile_tenant(operand))
    if op in _LIST_OPERATORS:
        matched = or_(*[_compile_tenant(v) for v in _as_sequence(op, operand)]) if operand else false()
        return matched if op == "$in" else not_(matched)
    raise InvalidFilterError(f"Unsupported operator {op} on tenant")


# ---------------------------------------------------------------------------
# Sorting
# ---------------------------------------------------------------------------


def _sort_expression(spec: ContentTypeSpec | None, name: str) -> Any:
    if name in _COLUMNS:
        return _COLUMNS[name][0]
    element = Document.data[name]
    field = spec.get_field(name) if spec is not None else None
    if field is not None and field.type is FieldType.INTEGER:
        return element.as_integer()
    if field is not None and field.type is FieldType.BOOLEAN:
        return element.as_boolean()
    return element.as_string()


def compile_sort(sort: str | Sequence[str] | None, uid: str | None = None) -> list[Any]:
    """Compile ``"field:ASC"`` style sort keys into ORDER BY clauses.

    With ``uid``, declared numeric and boolean attributes sort by value.
    """
    if not sort:
        return []
    spec = get_content_type(uid) if uid is not None else None
    keys = [sort] if isinstance(sort, str) else list(sort)
    clauses = []
    for key in keys:
        for part in key.split(","):
            part = part.strip()
            if not part:
                continue
            field, _, direction = part.partition(":")
            direction = (direction or "ASC").upper()
            if direction not in ("ASC", "DESC"):
                raise InvalidFilterError(f"Invalid sort direction: {part}")
            expr = _sort_expression(spec, field)
            clauses.append(expr.desc() if direction == "DESC" else expr.asc())
    return clauses
