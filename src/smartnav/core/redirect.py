"""Redirect resolution (source of truth).

Runs before a route is accepted by any path.

Simple redirects
----------------
A route with ``redirect(coordinator)`` (sync or async) is resolved once:

- returns the route itself (or an equal route) → proceed with the route;
- returns another route → substitute it, discarding the original; the
  substitute is NOT resolved again;
- returns ``None`` → abort; the route is discarded and the caller must leave
  all state untouched.

Rule chains
-----------
A route with ``redirect_rules`` evaluates them in order. Each rule returns a
:class:`RedirectResult`:

- :class:`Stop` → abort (as ``None`` above);
- :class:`Continue` → evaluate the next rule; if every rule continues the
  route proceeds unchanged;
- :class:`RedirectTo` → substitute. A substitute that can itself redirect is
  resolved again, so rule chains may hop several times.

Rules are :class:`RedirectRule` instances or plain callables with the same
``(coordinator, route)`` signature.

Cycle bound
-----------
Chained hops are counted; more than ``max_hops`` raises
:class:`~smartnav.core.errors.RedirectLoopError`. ``max_hops`` of ``0`` or
``None`` disables the limit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional, Union

from ._invoke import invoke
from .errors import RedirectLoopError
from .target import RouteTarget

if TYPE_CHECKING:  # pragma: no cover - import for typing only
    from .coordinator import Coordinator

__all__ = [
    "DEFAULT_MAX_HOPS",
    "Stop",
    "Continue",
    "RedirectTo",
    "RedirectResult",
    "RedirectRule",
    "resolve_redirect",
]

DEFAULT_MAX_HOPS = 32

logger = logging.getLogger("smartnav")


@dataclass(frozen=True)
class Stop:
    """Abort the navigation."""


@dataclass(frozen=True)
class Continue:
    """Defer to the next rule."""


@dataclass(frozen=True)
class RedirectTo:
    """Substitute ``route`` for the requested one."""

    route: RouteTarget


RedirectResult = Union[Stop, Continue, RedirectTo]


class RedirectRule:
    """Base class for composable redirect rules."""

    def redirect_result(self, coordinator: Any, route: RouteTarget) -> Any:
        raise NotImplementedError


async def _run_rules(route: RouteTarget, coordinator: Any) -> Optional[RouteTarget]:
    for rule in route.redirect_rules or ():
        handler = rule.redirect_result if isinstance(rule, RedirectRule) else rule
        result = await invoke(handler, coordinator, route)
        if isinstance(result, Continue):
            continue
        if isinstance(result, Stop):
            return None
        if isinstance(result, RedirectTo):
            return result.route
        raise TypeError(f"Redirect rule {rule!r} returned {result!r}, expected a RedirectResult")
    return route


async def resolve_redirect(
    route: RouteTarget,
    coordinator: Optional["Coordinator"] = None,
    *,
    max_hops: Optional[int] = DEFAULT_MAX_HOPS,
    discard: bool = True,
) -> Optional[RouteTarget]:
    """Return the route to navigate to, or ``None`` when navigation aborts.

    With ``discard=False`` redirected-away routes keep their result slot open
    (used for the fixed entries of an indexed path).
    """
    current = route
    hops = 0
    while current.can_redirect:
        chained = bool(current.redirect_rules)
        if chained:
            target = await _run_rules(current, coordinator)
        else:
            target = await invoke(current.redirect, coordinator)
        if target is None:
            logger.debug("redirect aborted at %r", current)
            if discard:
                current.discard()
            return None
        if target is current or target == current:
            break
        hops += 1
        if max_hops and hops > max_hops:
            raise RedirectLoopError(route, max_hops)
        if discard:
            current.discard()
        current = target
        if not chained:
            break
    return current
