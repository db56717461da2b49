"""Enums and type aliases for tenantgate."""

from enum import StrEnum


class DocumentAction(StrEnum):
    FIND_MANY = "findMany"
    FIND_ONE = "findOne"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    PUBLISH = "publish"
    UNPUBLISH = "unpublish"


class PermissionAction(StrEnum):
    CREATE = "content-manager.explorer.create"
    READ = "content-manager.explorer.read"
    UPDATE = "content-manager.explorer.update"
    DELETE = "content-manager.explorer.delete"
    PUBLISH = "content-manager.explorer.publish"


class ScopeKind(StrEnum):
    UNSCOPED = "unscoped"
    TENANT = "tenant"
    DENIED = "denied"


class FieldType(StrEnum):
    STRING = "string"
    TEXT = "text"
    RICHTEXT = "richtext"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    DATE = "date"
    DATETIME = "datetime"
    MEDIA = "media"
    RELATION = "relation"


# Point operations checked against the caller's tenant after (or before) they run
POINT_ACTIONS = frozenset(
    {
        DocumentAction.FIND_ONE,
        DocumentAction.UPDATE,
        DocumentAction.DELETE,
        DocumentAction.PUBLISH,
        DocumentAction.UNPUBLISH,
    }
)

MUTATING_POINT_ACTIONS = POINT_ACTIONS - {DocumentAction.FIND_ONE}

ACTION_PERMISSIONS: dict[DocumentAction, PermissionAction] = {
    DocumentAction.FIND_MANY: PermissionAction.READ,
    DocumentAction.FIND_ONE: PermissionAction.READ,
    DocumentAction.CREATE: PermissionAction.CREATE,
    DocumentAction.UPDATE: PermissionAction.UPDATE,
    DocumentAction.DELETE: PermissionAction.DELETE,
    DocumentAction.PUBLISH: PermissionAction.PUBLISH,
    DocumentAction.UNPUBLISH: PermissionAction.PUBLISH,
}
