"""Inter-module data contracts (not persisted directly)."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class TenantRef(BaseModel):
    """Canonical form of a tenant relation, built once when a row is read."""

    model_config = ConfigDict(frozen=True)

    id: int
    external_id: str
    name: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "externalId": self.external_id, "name": self.name}


class DocumentRecord(BaseModel):
    id: int
    document_id: str
    content_type: str
    data: dict[str, Any] = {}
    tenant: TenantRef | None = None
    published_at: datetime | None = None
    created_by_id: int | None = None
    updated_by_id: int | None = None
    created_at: datetime
    updated_at: datetime

    def to_dict(self, *, include_actors: bool = True) -> dict[str, Any]:
        """Flatten into the attribute-style shape the HTTP surfaces return."""
        body: dict[str, Any] = {"id": self.id, "documentId": self.document_id}
        body.update(self.data)
        body["tenant"] = self.tenant.to_dict() if self.tenant else None
        body["publishedAt"] = self.published_at.isoformat() if self.published_at else None
        body["createdAt"] = self.created_at.isoformat()
        body["updatedAt"] = self.updated_at.isoformat()
        if include_actors:
            body["createdBy"] = self.created_by_id
            body["updatedBy"] = self.updated_by_id
        return body


class Pagination(BaseModel):
    page: int
    page_size: int
    page_count: int
    total: int

    def to_dict(self) -> dict[str, int]:
        return {
            "page": self.page,
            "pageSize": self.page_size,
            "pageCount": self.page_count,
            "total": self.total,
        }


class DocumentPage(BaseModel):
    results: list[DocumentRecord] = []
    pagination: Pagination


class ResolvedTenant(BaseModel):
    """The tenant an editor is assigned to."""

    model_config = ConfigDict(frozen=True)

    id: int
    external_id: str
