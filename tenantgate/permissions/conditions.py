"""Registry of named permission conditions.

A condition handler receives the acting admin and returns a filter fragment
restricting the records the permission applies to, ``True`` for no
restriction, or ``False`` for no records at all.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import structlog

from tenantgate.exceptions import ConfigError
from tenantgate.tenancy.scope import AdminIdentity

logger = structlog.get_logger(__name__)

ConditionResult = dict[str, Any] | bool
ConditionHandler = Callable[[AdminIdentity], Awaitable[ConditionResult]]


@dataclass(frozen=True, slots=True)
class Condition:
    uid: str
    display_name: str
    category: str
    handler: ConditionHandler


class ConditionProvider:
    """Named conditions referenced by ``admin_permissions.conditions``."""

    def __init__(self) -> None:
        self._conditions: dict[str, Condition] = {}

    def register(
        self,
        uid: str,
        display_name: str,
        handler: ConditionHandler,
        category: str = "default",
        *,
        replace: bool = False,
    ) -> Condition:
        if uid in self._conditions and not replace:
            raise ConfigError(f"Condition already registered: {uid}")
        condition = Condition(uid=uid, display_name=display_name, category=category, handler=handler)
        self._conditions[uid] = condition
        logger.debug("condition_registered", uid=uid, category=category)
        return condition

    def get(self, uid: str) -> Condition | None:
        return self._conditions.get(uid)

    def keys(self) -> list[str]:
        return sorted(self._conditions)
