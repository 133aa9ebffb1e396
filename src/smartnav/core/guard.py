"""Pop-guard evaluation.

A guard is consulted right before a route leaves a path because of back
navigation: ``pop``, the intermediate pops of ``navigate``, the pop inside
``push_replacement`` and an indexed path switching away from its active
route. It is never consulted by ``remove`` or ``reset``.

A rejection is a normal outcome reported as ``False``; callers decide whether
to fire the location resync signal.
"""

from __future__ import annotations

from typing import Any

from ._invoke import invoke
from .target import RouteTarget

__all__ = ["evaluate_guard"]


async def evaluate_guard(route: RouteTarget, coordinator: Any = None) -> bool:
    """Return True when ``route`` may be removed."""
    if not route.can_guard_pop:
        return True
    return bool(await invoke(route.guard, coordinator))
