"""Stack paths (source of truth).

A path is an ordered container of :class:`~smartnav.core.target.RouteTarget`
with a debug ``label``, a weak handle to its coordinator and a listener list.

Constructor and slots
---------------------
Constructor signature::

    NavigationPath(stack=(), *, label=None, coordinator=None)
    IndexedStackPath(stack, *, label=None, coordinator=None)

- When ``coordinator`` is a route module (a coordinator nested in another),
  ``coordinator`` resolves to the top-level root coordinator and
  ``proxy_coordinator`` keeps the module. Both are weak references.
- ``stack`` is exposed as a tuple; only path methods mutate it.

Ownership
---------
A route held by a path has ``stack_path`` pointing at it. Adopting a route
held by another path releases it there first (the other path notifies), so a
route is owned by exactly one path. Routes that leave a path get
``stack_path = None``.

Notification
------------
Every logical operation that changes observable state calls
``notify_listeners()`` exactly once, synchronously, right after mutating.
Operations that end without a change do not notify, except the documented
resync cases (guard rejection inside ``navigate``, an unknown route passed to
``IndexedStackPath.navigate``) where a notification lets the host restore its
external location.

Redirects
---------
Mutators taking a route resolve its redirects first unless called with
``resolved=True`` (the coordinator resolves once and passes the result down).
A redirect abort returns ``None`` and leaves the path untouched.

NavigationPath
--------------
- ``push`` appends and returns the route's pending result future.
- ``push_or_move_to_top`` de-duplicates: an equal route is moved to the top
  (or left there) with ``params`` merged; the incoming instance is discarded.
- ``pop`` returns ``None`` on an empty stack and, for a coordinator-bound
  path, on a single-entry stack; ``False`` when the top route's guard
  rejects; ``True`` once the top route is removed and its result delivered.
- ``remove`` drops a route from any position without consulting guards.
- ``navigate`` pops back to an existing equal route (guards apply) or pushes.
- ``push_replacement`` swaps the top route; see the method docstring.
- ``reset`` drops everything without guards; results resolve to ``None``.
- ``activate_route`` is ``reset`` + ``push`` notified once.

IndexedStackPath
----------------
Fixed list of N >= 1 routes; results of its routes resolve to ``None`` at
creation. ``go_to_indexed`` switches the active index (guard on the old route,
redirect on the new one), ``activate_route`` selects the index of an equal
route, ``reset`` returns to index 0.
"""

from __future__ import annotations

import asyncio
import weakref
from typing import TYPE_CHECKING, Any, Callable, Iterable, List, Optional

from .guard import evaluate_guard
from .redirect import DEFAULT_MAX_HOPS, resolve_redirect
from .target import RouteTarget

if TYPE_CHECKING:  # pragma: no cover - import for typing only
    from .coordinator import Coordinator

__all__ = ["StackPath", "NavigationPath", "IndexedStackPath"]


class StackPath:
    """Common state shared by sequential and indexed paths."""

    path_key = "StackPath"

    def __init__(
        self,
        *,
        label: Optional[str] = None,
        coordinator: Optional["Coordinator"] = None,
    ) -> None:
        self.label = label
        self._stack: List[RouteTarget] = []
        self._listeners: List[Callable[[], Any]] = []
        self._coordinator_ref: Optional[weakref.ref] = None
        self._proxy_ref: Optional[weakref.ref] = None
        if coordinator is not None:
            if coordinator.is_route_module:
                self._proxy_ref = weakref.ref(coordinator)
                coordinator = coordinator.root_coordinator
            self._coordinator_ref = weakref.ref(coordinator)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def coordinator(self) -> Optional["Coordinator"]:
        return self._coordinator_ref() if self._coordinator_ref is not None else None

    @property
    def proxy_coordinator(self) -> Optional["Coordinator"]:
        return self._proxy_ref() if self._proxy_ref is not None else None

    @property
    def stack(self) -> tuple:
        return tuple(self._stack)

    @property
    def active_route(self) -> Optional[RouteTarget]:  # pragma: no cover - overridden
        raise NotImplementedError

    def __len__(self) -> int:
        return len(self._stack)

    def __contains__(self, route: object) -> bool:
        return route in self._stack

    def __repr__(self) -> str:
        owner = self.proxy_coordinator or self.coordinator
        return f"{self.label or hex(id(self))} [{owner!r} | {self.path_key}]"

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------
    def add_listener(self, listener: Callable[[], Any]) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[], Any]) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def notify_listeners(self) -> None:
        for listener in list(self._listeners):
            listener()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _index_of(self, route: RouteTarget) -> Optional[int]:
        for index, held in enumerate(self._stack):
            if held is route:
                return index
        for index, held in enumerate(self._stack):
            if held == route:
                return index
        return None

    def _holds(self, route: RouteTarget) -> bool:
        return any(held is route for held in self._stack)

    async def _resolve(self, route: RouteTarget, resolved: bool) -> Optional[RouteTarget]:
        if resolved:
            return route
        coordinator = self.coordinator
        max_hops = getattr(coordinator, "max_redirect_hops", DEFAULT_MAX_HOPS)
        return await resolve_redirect(route, coordinator, max_hops=max_hops)

    def _release(self, route: RouteTarget) -> None:
        """Give up ``route`` because another path adopted it."""
        for index, held in enumerate(self._stack):
            if held is route:
                del self._stack[index]
                route._clear_path()
                self.notify_listeners()
                return

    def clear(self) -> None:
        """Drop every route, resolving pending results with ``None``."""
        routes, self._stack = self._stack, []
        for route in routes:
            route._clear_path()
            route.discard()

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------
    def reset(self) -> None:  # pragma: no cover - overridden
        raise NotImplementedError

    async def activate_route(self, route: RouteTarget, *, resolved: bool = False) -> Any:
        raise NotImplementedError  # pragma: no cover - overridden

    async def navigate(self, route: RouteTarget, *, resolved: bool = False) -> Optional[bool]:
        raise NotImplementedError  # pragma: no cover - overridden


class NavigationPath(StackPath):
    """Sequential LIFO path."""

    path_key = "NavigationPath"

    def __init__(
        self,
        stack: Iterable[RouteTarget] = (),
        *,
        label: Optional[str] = None,
        coordinator: Optional["Coordinator"] = None,
    ) -> None:
        super().__init__(label=label, coordinator=coordinator)
        for route in stack:
            self._adopt(route)

    @property
    def active_route(self) -> Optional[RouteTarget]:
        return self._stack[-1] if self._stack else None

    def _adopt(self, route: RouteTarget) -> None:
        if route.stack_path is self:
            self._stack[:] = [held for held in self._stack if held is not route]
        route._bind_path(self)
        self._stack.append(route)

    def bind_layout(self, layout_key: Any, constructor: Callable[[], Any]) -> None:
        """Register a layout constructor on the owning coordinator."""
        coordinator = self.coordinator
        if coordinator is None:
            raise ValueError(f"Path {self.label!r} is not bound to a coordinator")
        coordinator.define_layout(layout_key, constructor)

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------
    async def push(
        self, route: RouteTarget, *, resolved: bool = False
    ) -> Optional[asyncio.Future]:
        target = await self._resolve(route, resolved)
        if target is None:
            return None
        self._adopt(target)
        self.notify_listeners()
        return target.on_result

    async def push_or_move_to_top(self, route: RouteTarget, *, resolved: bool = False) -> None:
        target = await self._resolve(route, resolved)
        if target is None:
            return
        index = self._index_of(target)
        if index is None:
            self._adopt(target)
            self.notify_listeners()
            return
        existing = self._stack[index]
        changed = False
        if existing is not target:
            changed = existing.on_update(target)
            target.discard()
        if index == len(self._stack) - 1:
            if changed:
                self.notify_listeners()
            return
        del self._stack[index]
        self._stack.append(existing)
        self.notify_listeners()

    async def _pop(self, result: Any, *, notify: bool) -> Optional[bool]:
        coordinator = self.coordinator
        minimum = 2 if coordinator is not None else 1
        if len(self._stack) < minimum:
            return None
        if not await evaluate_guard(self._stack[-1], coordinator):
            return False
        # the stack may have shrunk while the guard was pending
        if len(self._stack) < minimum:
            return None
        route = self._stack.pop()
        route._clear_path()
        route.is_pop_by_path = True
        route.complete_on_result(result)
        route.on_did_pop(result, coordinator)
        if notify:
            self.notify_listeners()
        return True

    async def pop(self, result: Any = None) -> Optional[bool]:
        """Guarded removal of the top route; see the module docstring."""
        return await self._pop(result, notify=True)

    def remove(self, route: RouteTarget, *, discard: bool = True) -> bool:
        index = self._index_of(route)
        if index is None:
            return False
        removed = self._stack.pop(index)
        removed._clear_path()
        if discard:
            removed.discard()
        self.notify_listeners()
        return True

    async def navigate(self, route: RouteTarget, *, resolved: bool = False) -> Optional[bool]:
        target = await self._resolve(route, resolved)
        if target is None:
            return None
        index = self._index_of(target)
        if index is None:
            await self.push(target, resolved=True)
            return True
        existing = self._stack[index]
        while self._stack and self._stack[-1] is not existing:
            allowed = await self._pop(None, notify=False)
            if not allowed:
                self.notify_listeners()
                return False
        if not self._holds(existing):
            self.notify_listeners()
            return False
        if existing is not target:
            existing.on_update(target)
            target.discard()
        self.notify_listeners()
        return True

    async def push_replacement(
        self, route: RouteTarget, result: Any = None, *, resolved: bool = False
    ) -> Optional[asyncio.Future]:
        """Replace the top route with ``route``.

        - empty stack: plain push;
        - one route: it receives ``result`` and is replaced in place, no guard;
        - two or more: guarded pop delivering ``result``; a rejection returns
          ``None`` and leaves the stack unchanged.
        """
        target = await self._resolve(route, resolved)
        if target is None:
            return None
        active = self.active_route
        if active is None:
            return await self.push(target, resolved=True)
        if len(self._stack) == 1:
            self._stack.clear()
            active._clear_path()
            active.complete_on_result(result)
            active.on_discard()
        else:
            popped = await self._pop(result, notify=False)
            if not popped:
                return None
        self._adopt(target)
        self.notify_listeners()
        return target.on_result

    def reset(self) -> None:
        if not self._stack:
            return
        self.clear()
        self.notify_listeners()

    async def activate_route(self, route: RouteTarget, *, resolved: bool = False) -> None:
        target = await self._resolve(route, resolved)
        if target is None:
            return
        self.clear()
        self._adopt(target)
        self.notify_listeners()


class IndexedStackPath(StackPath):
    """Fixed list of routes with one active index."""

    path_key = "IndexedStackPath"

    def __init__(
        self,
        stack: Iterable[RouteTarget],
        *,
        label: Optional[str] = None,
        coordinator: Optional["Coordinator"] = None,
    ) -> None:
        routes = list(stack)
        if not routes:
            raise ValueError("IndexedStackPath requires at least one route")
        super().__init__(label=label, coordinator=coordinator)
        for route in routes:
            route._bind_path(self)
            route.complete_on_result(None)
            self._stack.append(route)
        self._active_index = 0

    @property
    def active_index(self) -> int:
        return self._active_index

    @property
    def active_route(self) -> RouteTarget:
        return self._stack[self._active_index]

    def _release(self, route: RouteTarget) -> None:
        raise ValueError(f"{route!r} belongs to indexed path {self.label!r} and cannot move")

    def clear(self) -> None:
        raise TypeError("IndexedStackPath has a fixed length; use reset()")

    async def go_to_indexed(self, index: int) -> Optional[bool]:
        """Activate ``index``.

        Returns ``False`` when the current route's guard rejects and ``None``
        when the destination redirects to nothing or outside this path.
        """
        if not 0 <= index < len(self._stack):
            raise IndexError(f"Index {index} out of range for {self.label or 'indexed path'}")
        if index == self._active_index:
            return True
        coordinator = self.coordinator
        if not await evaluate_guard(self._stack[self._active_index], coordinator):
            return False
        destination = self._stack[index]
        max_hops = getattr(coordinator, "max_redirect_hops", DEFAULT_MAX_HOPS)
        target = await resolve_redirect(destination, coordinator, max_hops=max_hops, discard=False)
        if target is None:
            return None
        new_index = self._index_of(target)
        if new_index is None:
            return None
        if new_index != self._active_index:
            self._active_index = new_index
            self.notify_listeners()
        return True

    async def activate_route(self, route: RouteTarget, *, resolved: bool = False) -> Optional[bool]:
        """Select the entry equal to ``route``; raises ``LookupError`` if absent.

        Entries are fixed, so ``resolved`` is accepted for interface parity only:
        the destination entry's own redirect runs inside :meth:`go_to_indexed`.
        """
        index = self._index_of(route)
        if index is None:
            route.discard()
            raise LookupError(f"{route!r} is not part of indexed path {self.label!r}")
        existing = self._stack[index]
        changed = False
        if existing is not route:
            changed = existing.on_update(route)
            route.discard()
        if index == self._active_index:
            if changed:
                self.notify_listeners()
            return True
        return await self.go_to_indexed(index)

    async def navigate(self, route: RouteTarget, *, resolved: bool = False) -> Optional[bool]:
        if self._index_of(route) is None:
            self.notify_listeners()
            return False
        return await self.activate_route(route)

    def reset(self) -> None:
        if self._active_index == 0:
            return
        self._active_index = 0
        self.notify_listeners()
