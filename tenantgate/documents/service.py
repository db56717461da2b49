"""Document service: the data-access API every surface goes through.

Each call is described by a ``DocumentActionContext`` and passed through the
registered middlewares, outermost first, before reaching the store::

    async def middleware(ctx, call_next):
        ...  # inspect or rewrite ctx.params
        return await call_next(ctx)

Lifecycle subscribers run around the store call in the innermost layer.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from tenantgate.content_types.registry import get_content_type
from tenantgate.types import DocumentAction

if TYPE_CHECKING:
    from tenantgate.config.settings import Settings
    from tenantgate.models.domain import DocumentPage, DocumentRecord
    from tenantgate.storage.documents import DocumentStore

logger = structlog.get_logger(__name__)


@dataclass
class DocumentActionContext:
    uid: str
    action: DocumentAction
    params: dict[str, Any] = field(default_factory=dict)


CallNext = Callable[[DocumentActionContext], Awaitable[Any]]
Middleware = Callable[[DocumentActionContext, CallNext], Awaitable[Any]]


@dataclass
class LifecycleEvent:
    uid: str
    action: DocumentAction
    params: dict[str, Any]
    result: DocumentRecord | None = None


class LifecycleSubscriber(Protocol):
    async def before_create(self, event: LifecycleEvent) -> None: ...

    async def before_update(self, event: LifecycleEvent) -> None: ...

    async def after_create(self, event: LifecycleEvent) -> None: ...

    async def after_update(self, event: LifecycleEvent) -> None: ...


class DocumentService:
    def __init__(self, store: DocumentStore, settings: Settings) -> None:
        self._store = store
        self._settings = settings
        self._middlewares: list[Middleware] = []
        self._subscribers: dict[str, list[LifecycleSubscriber]] = {}

    @property
    def store(self) -> DocumentStore:
        return self._store

    def use(self, middleware: Middleware) -> None:
        """Append a middleware; the first registered runs outermost."""
        self._middlewares.append(middleware)

    def subscribe(self, uids: Iterable[str], subscriber: LifecycleSubscriber) -> None:
        for uid in uids:
            self._subscribers.setdefault(uid, []).append(subscriber)

    # -- public API --------------------------------------------------------

    async def find_many(
        self,
        uid: str,
        *,
        filters: dict[str, Any] | None = None,
        sort: str | list[str] | None = None,
        page: int = 1,
        page_size: int | None = None,
        search: str | None = None,
        published_only: bool = False,
    ) -> DocumentPage:
        size = page_size or self._settings.default_page_size
        params = {
            "filters": filters,
            "sort": sort,
            "page": page,
            "page_size": min(size, self._settings.max_page_size),
            "search": search,
            "published_only": published_only,
        }
        return await self._run(uid, DocumentAction.FIND_MANY, params)

    async def find_one(
        self, uid: str, document_id: str, *, published_only: bool = False
    ) -> DocumentRecord | None:
        params = {"document_id": document_id, "published_only": published_only}
        return await self._run(uid, DocumentAction.FIND_ONE, params)

    async def create(
        self,
        uid: str,
        data: dict[str, Any],
        *,
        user_id: int | None = None,
        publish: bool = False,
    ) -> DocumentRecord:
        params = {"data": dict(data), "user_id": user_id, "publish": publish}
        return await self._run(uid, DocumentAction.CREATE, params)

    async def update(
        self, uid: str, document_id: str, data: dict[str, Any], *, user_id: int | None = None
    ) -> DocumentRecord | None:
        params = {"document_id": document_id, "data": dict(data), "user_id": user_id}
        return await self._run(uid, DocumentAction.UPDATE, params)

    async def delete(self, uid: str, document_id: str) -> DocumentRecord | None:
        return await self._run(uid, DocumentAction.DELETE, {"document_id": document_id})

    async def publish(
        self, uid: str, document_id: str, *, user_id: int | None = None
    ) -> DocumentRecord | None:
        params = {"document_id": document_id, "user_id": user_id}
        return await self._run(uid, DocumentAction.PUBLISH, params)

    async def unpublish(
        self, uid: str, document_id: str, *, user_id: int | None = None
    ) -> DocumentRecord | None:
        params = {"document_id": document_id, "user_id": user_id}
        return await self._run(uid, DocumentAction.UNPUBLISH, params)

    # -- pipeline ----------------------------------------------------------

    async def _run(self, uid: str, action: DocumentAction, params: dict[str, Any]) -> Any:
        get_content_type(uid)
        ctx = DocumentActionContext(uid=uid, action=action, params=params)

        call: CallNext = self._execute
        for middleware in reversed(self._middlewares):
            call = _bind(middleware, call)
        return await call(ctx)

    async def _execute(self, ctx: DocumentActionContext) -> Any:
        handler = self._handlers[ctx.action]
        return await handler(self, ctx)

    async def _find_many(self, ctx: DocumentActionContext) -> DocumentPage:
        p = ctx.params
        return await self._store.find_many(
            ctx.uid,
            filters=p.get("filters"),
            sort=p.get("sort"),
            page=p.get("page", 1),
            page_size=p.get("page_size", self._settings.default_page_size),
            search=p.get("search"),
            published_only=p.get("published_only", False),
        )

    async def _find_one(self, ctx: DocumentActionContext) -> DocumentRecord | None:
        return await self._store.find_one(
            ctx.uid, ctx.params["document_id"], published_only=ctx.params.get("published_only", False)
        )

    async def _create(self, ctx: DocumentActionContext) -> DocumentRecord:
        event = LifecycleEvent(uid=ctx.uid, action=ctx.action, params=ctx.params)
        for subscriber in self._subscribers.get(ctx.uid, []):
            await subscriber.before_create(event)
        record = await self._store.create(
            ctx.uid,
            ctx.params["data"],
            created_by_id=ctx.params.get("user_id"),
            publish=ctx.params.get("publish", False),
        )
        event.result = record
        for subscriber in self._subscribers.get(ctx.uid, []):
            await subscriber.after_create(event)
        return record

    async def _update(self, ctx: DocumentActionContext) -> DocumentRecord | None:
        before = LifecycleEvent(uid=ctx.uid, action=ctx.action, params=ctx.params)
        for subscriber in self._subscribers.get(ctx.uid, []):
            await subscriber.before_update(before)
        record = await self._store.update(
            ctx.uid,
            ctx.params["document_id"],
            ctx.params["data"],
            updated_by_id=ctx.params.get("user_id"),
        )
        if record is not None:
            event = LifecycleEvent(uid=ctx.uid, action=ctx.action, params=ctx.params, result=record)
            for subscriber in self._subscribers.get(ctx.uid, []):
                await subscriber.after_update(event)
        return record

    async def _delete(self, ctx: DocumentActionContext) -> DocumentRecord | None:
        return await self._store.delete(ctx.uid, ctx.params["document_id"])

    async def _set_published(self, ctx: DocumentActionContext) -> DocumentRecord | None:
        return await self._store.set_published(
            ctx.uid,
            ctx.params["document_id"],
            ctx.action is DocumentAction.PUBLISH,
            updated_by_id=ctx.params.get("user_id"),
        )

    _handlers: dict[DocumentAction, Callable[[Any, DocumentActionContext], Awaitable[Any]]] = {
        DocumentAction.FIND_MANY: _find_many,
        DocumentAction.FIND_ONE: _find_one,
        DocumentAction.CREATE: _create,
        DocumentAction.UPDATE: _update,
        DocumentAction.DELETE: _delete,
        DocumentAction.PUBLISH: _set_published,
        DocumentAction.UNPUBLISH: _set_published,
    }


def _bind(middleware: Middleware, call_next: CallNext) -> CallNext:
    async def call(ctx: DocumentActionContext) -> Any:
        return await middleware(ctx, call_next)

    return call
