"""Request context for multi-tenant request scoping.

Code invoked deep inside the document pipeline never receives the request
object, so the in-flight request is carried in a ``ContextVar``. Each asyncio
task gets its own copy of the variable, which keeps interleaved requests
apart.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, TypeVar

if TYPE_CHECKING:
    from tenantgate.tenancy.scope import AdminIdentity, TenantScope

T = TypeVar("T")

_UNSET: Any = object()


@dataclass
class RequestContext:
    """Mutable per-request state; later stages fill in what earlier ones learn."""

    method: str = ""
    path: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)
    user: AdminIdentity | None = None
    # Memoized by the resolver so each request resolves its tenant once
    resolved_identity: Any = _UNSET
    resolved_scope: TenantScope | None = None

    @property
    def bearer_token(self) -> str | None:
        auth_header = self.headers.get("authorization", "").strip()
        parts = auth_header.split()
        if len(parts) != 2 or parts[0].lower() != "bearer":
            return None
        return parts[1]

    def set_user(self, user: AdminIdentity) -> None:
        """Record the authenticated admin, dropping anything resolved before."""
        self.user = user
        self.resolved_identity = user
        self.resolved_scope = None

    def has_resolved_identity(self) -> bool:
        return self.resolved_identity is not _UNSET


_current: ContextVar[RequestContext | None] = ContextVar("tenantgate_request_context", default=None)


def get() -> RequestContext | None:
    """Return the context bound to the current execution, if any."""
    return _current.get()


@contextmanager
def bind(context: RequestContext) -> Iterator[RequestContext]:
    """Bind ``context`` for the duration of the ``with`` block."""
    token = _current.set(context)
    try:
        yield context
    finally:
        _current.reset(token)


async def run(context: RequestContext, fn: Callable[[], Awaitable[T]]) -> T:
    """Await ``fn()`` with ``context`` bound."""
    with bind(context):
        return await fn()
