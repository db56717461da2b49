"""Admin identity and the tenant scope derived from it."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from tenantgate.config.settings import EDITOR_ROLE_CODE, SUPER_ADMIN_ROLE_CODE
from tenantgate.models.domain import ResolvedTenant, TenantRef
from tenantgate.types import ScopeKind

# Matches nothing: every document has a primary key
MATCH_NOTHING: dict[str, Any] = {"id": {"$eq": None}}


@dataclass(frozen=True, slots=True)
class AdminIdentity:
    """Authenticated admin user as seen by the tenant layer."""

    id: int
    email: str
    roles: frozenset[str] = field(default_factory=frozenset)

    def has_role(self, code: str) -> bool:
        return code in self.roles

    @property
    def is_editor(self) -> bool:
        return EDITOR_ROLE_CODE in self.roles

    @property
    def is_super_admin(self) -> bool:
        return SUPER_ADMIN_ROLE_CODE in self.roles


@dataclass(frozen=True, slots=True)
class TenantScope:
    """Outcome of tenant resolution for one caller.

    ``unscoped`` callers (super-admins, anonymous and system callers) are not
    restricted. ``tenant`` callers see only their tenant. ``denied`` callers
    are editors whose tenant could not be resolved; they see nothing.
    """

    kind: ScopeKind
    tenant: ResolvedTenant | None = None

    @classmethod
    def unscoped(cls) -> TenantScope:
        return cls(kind=ScopeKind.UNSCOPED)

    @classmethod
    def denied(cls) -> TenantScope:
        return cls(kind=ScopeKind.DENIED)

    @classmethod
    def for_tenant(cls, tenant: ResolvedTenant) -> TenantScope:
        return cls(kind=ScopeKind.TENANT, tenant=tenant)

    @property
    def is_unscoped(self) -> bool:
        return self.kind is ScopeKind.UNSCOPED

    @property
    def is_denied(self) -> bool:
        return self.kind is ScopeKind.DENIED

    def list_filter(self) -> dict[str, Any] | None:
        """Filter fragment matching the caller's records, by id or external id."""
        if self.kind is ScopeKind.UNSCOPED:
            return None
        if self.tenant is None:
            return MATCH_NOTHING
        return {
            "$or": [
                {"tenant": {"id": {"$eq": self.tenant.id}}},
                {"tenant": {"externalId": {"$eq": self.tenant.external_id}}},
            ]
        }

    def allows(self, record_tenant: TenantRef | None) -> bool:
        """Whether a record with ``record_tenant`` may be touched by this caller.

        Tenant-less records are not foreign; they are healed on the next write.
        """
        if self.kind is ScopeKind.UNSCOPED:
            return True
        if self.tenant is None:
            return False
        return record_tenant is None or record_tenant.id == self.tenant.id


def conjoin(*filters: dict[str, Any] | None) -> dict[str, Any] | None:
    """AND together the non-empty filters."""
    parts = [f for f in filters if f]
    if not parts:
        return None
    if len(parts) == 1:
        return parts[0]
    return {"$and": parts}
