"""Evaluate role permissions and their conditions into query filters."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from tenantgate.exceptions import PermissionDeniedError
from tenantgate.tenancy.scope import MATCH_NOTHING, AdminIdentity, conjoin

if TYPE_CHECKING:
    from tenantgate.permissions.conditions import ConditionProvider
    from tenantgate.storage.documents import DocumentStore
    from tenantgate.storage.repositories.permissions import PermissionRepository

logger = structlog.get_logger(__name__)


class PermissionEngine:
    def __init__(
        self,
        permissions: PermissionRepository,
        conditions: ConditionProvider,
        store: DocumentStore,
    ) -> None:
        self._permissions = permissions
        self._conditions = conditions
        self._store = store

    async def query_filter(
        self, user: AdminIdentity, action: str, subject: str | None
    ) -> dict[str, Any] | None:
        """Filter restricting ``action`` on ``subject`` to what ``user`` may touch.

        ``None`` means unrestricted. Raises ``PermissionDeniedError`` when no
        permission of the user's roles covers the action at all.
        """
        if user.is_super_admin:
            return None

        permissions = await self._permissions.find_matching(user.roles, action, subject)
        if not permissions:
            logger.info("permission_missing", user_id=user.id, action=action, subject=subject)
            raise PermissionDeniedError("Forbidden")

        fragments: list[dict[str, Any]] = []
        seen: set[str] = set()
        for permission in permissions:
            uids = list(permission.conditions or [])
            if not uids:
                return None
            for uid in uids:
                if uid in seen:
                    continue
                seen.add(uid)
                condition = self._conditions.get(uid)
                if condition is None:
                    logger.warning("permission_condition_unknown", condition=uid)
                    continue
                result = await condition.handler(user)
                if result is True:
                    return None
                if isinstance(result, dict):
                    fragments.append(result)

        if not fragments:
            return MATCH_NOTHING
        return fragments[0] if len(fragments) == 1 else {"$or": fragments}

    async def ensure_document_permitted(
        self, user: AdminIdentity, action: str, uid: str, document_id: str
    ) -> None:
        """Raise ``PermissionDeniedError`` unless the record matches the conditions.

        Missing records pass; the caller reports them as not found.
        """
        restriction = await self.query_filter(user, action, uid)
        if restriction is None:
            return
        page = await self._store.find_many(
            uid,
            filters=conjoin({"documentId": {"$eq": document_id}}, restriction),
            page_size=1,
        )
        if page.pagination.total:
            return
        if await self._store.find_one(uid, document_id) is None:
            return
        logger.info(
            "permission_condition_rejected",
            user_id=user.id,
            action=action,
            uid=uid,
            document_id=document_id,
        )
        raise PermissionDeniedError("Forbidden")
