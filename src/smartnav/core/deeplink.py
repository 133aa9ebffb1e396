"""Deep-link strategy dispatch.

A route reached through an external location string is applied according to
its ``deeplink_strategy``:

- ``replace``: reset every path and activate the route (default for routes
  without the capability);
- ``navigate``: pop back to an existing equal route or push it;
- ``push``: push unconditionally;
- ``custom``: call ``route.deeplink_handler(coordinator, location)``; the
  dispatcher performs no stack mutation itself.

:func:`dispatch_deeplink` returns whatever the applied action returned, so a
guard rejection during ``navigate`` (``False``) reaches the caller.

The coordinator supplies the three stack actions so the dispatcher never
re-resolves redirects on an already resolved route.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Optional

from ._invoke import invoke
from .target import RouteTarget

__all__ = ["DeeplinkStrategy", "strategy_of", "dispatch_deeplink"]


class DeeplinkStrategy(str, Enum):
    REPLACE = "replace"
    NAVIGATE = "navigate"
    PUSH = "push"
    CUSTOM = "custom"


def strategy_of(route: RouteTarget) -> DeeplinkStrategy:
    if not route.is_deeplink_aware:
        return DeeplinkStrategy.REPLACE
    return DeeplinkStrategy(route.deeplink_strategy)


async def dispatch_deeplink(
    coordinator: Any,
    route: RouteTarget,
    location: Optional[str],
    actions: Mapping[DeeplinkStrategy, Callable[[RouteTarget], Awaitable[Any]]],
) -> Any:
    """Apply ``route`` with its strategy and return the action outcome."""
    strategy = strategy_of(route)
    if strategy is DeeplinkStrategy.CUSTOM:
        handler = route.deeplink_handler
        if handler is None:
            raise TypeError(f"{route!r} uses the custom deep-link strategy without a deeplink_handler")
        return await invoke(handler, coordinator, location)
    return await actions[strategy](route)
