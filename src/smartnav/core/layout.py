"""Layouts and layout resolution (source of truth).

RouteLayout
-----------
A :class:`RouteLayout` is a route that owns a nested path (a shell, tab bar or
sidebar). Its own key is ``shell_key`` (class attribute or constructor
argument, default: class name); its ``layout_key`` names the shell it is
nested in, exactly like any other route. Layouts compare equal iff their
``shell_key`` matches, whatever their payload.

``resolve_path(coordinator)`` returns the owned path; by default it looks the
path up by ``path_label`` (default: ``shell_key``) among the coordinator's
registered paths. When a layout is popped its own path is reset.

LayoutResolver
--------------
Resolution and application are separate phases:

1. ``resolve_chain(route)`` walks ``layout_key`` upwards and returns
   ``[(outermost layout, its path), ..., (innermost layout, its path)]``.
   Each key resolves to the live instance when one is present (active chain
   first, innermost first, then every registered path) and only otherwise to
   a fresh instance from the coordinator registry. Unknown keys raise
   :class:`~smartnav.core.errors.UnregisteredLayoutError`.
2. ``apply(chain, strategy)`` places each layout into its enclosing path, outer
   to inner, so an inner shell is never touched before its owner is in place:
   ``OVERRIDE`` activates (``replace``, deep-link recovery), ``PUSH_TO_TOP``
   pushes or moves to top (``push``, ``navigate``). Indexed enclosing paths
   always activate.
3. ``target_path(chain)`` is the innermost layout path, or the root.
"""

from __future__ import annotations

import weakref
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterator, List, Optional, Tuple

from .paths import NavigationPath, StackPath
from .target import RouteTarget

if TYPE_CHECKING:  # pragma: no cover - import for typing only
    from .coordinator import Coordinator

__all__ = ["RouteLayout", "LayoutStrategy", "LayoutResolver"]

LayoutChain = List[Tuple["RouteLayout", StackPath]]


class RouteLayout(RouteTarget):
    """A route owning a nested path."""

    is_layout_parent = True
    shell_key: Any = None
    path_label: Optional[str] = None

    def __init__(self, shell_key: Any = None, *, path_label: Optional[str] = None, **kwargs: Any):
        identifier = kwargs.pop("identifier", None)
        super().__init__(identifier, **kwargs)
        if shell_key is not None:
            self.shell_key = shell_key
        if self.shell_key is None:
            self.shell_key = type(self).__name__
        if path_label is not None:
            self.path_label = path_label
        if self.identifier is None:
            self.identifier = self.shell_key

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RouteLayout):
            return NotImplemented
        return self.shell_key == other.shell_key

    def __hash__(self) -> int:
        return hash((RouteLayout, self.shell_key))

    def resolve_path(self, coordinator: "Coordinator") -> StackPath:
        return coordinator.path_by_label(self.path_label or str(self.shell_key))

    def on_did_pop(self, result: Any, coordinator: Any) -> None:
        if coordinator is not None:
            self.resolve_path(coordinator).reset()


class LayoutStrategy(str, Enum):
    OVERRIDE = "override"
    PUSH_TO_TOP = "push_to_top"


class LayoutResolver:
    """Resolve-then-apply layout chains for one coordinator."""

    __slots__ = ("_coordinator_ref",)

    def __init__(self, coordinator: "Coordinator") -> None:
        self._coordinator_ref = weakref.ref(coordinator)

    @property
    def coordinator(self) -> "Coordinator":
        coordinator = self._coordinator_ref()
        if coordinator is None:  # pragma: no cover - coordinator collected
            raise ReferenceError("LayoutResolver outlived its coordinator")
        return coordinator

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------
    def _iter_live_layouts(self) -> Iterator[RouteLayout]:
        coordinator = self.coordinator
        yield from reversed(coordinator.active_layouts)
        for path in coordinator.root_coordinator.paths:
            for route in path.stack:
                if route.is_layout_parent:
                    yield route

    def find_live(self, shell_key: Any) -> Optional[RouteLayout]:
        for layout in self._iter_live_layouts():
            if layout.shell_key == shell_key:
                return layout
        return None

    def resolve_parent(self, route: RouteTarget) -> Optional[RouteLayout]:
        key = route.layout_key
        if key is None:
            return None
        layout = self.find_live(key)
        if layout is not None:
            return layout
        return self.coordinator.create_layout(key)

    def resolve_chain(self, route: RouteTarget) -> LayoutChain:
        coordinator = self.coordinator
        chain: LayoutChain = []
        seen = set()
        layout = self.resolve_parent(route)
        while layout is not None:
            if layout.shell_key in seen:
                raise ValueError(f"Layout key {layout.shell_key!r} nests inside itself")
            seen.add(layout.shell_key)
            chain.append((layout, layout.resolve_path(coordinator)))
            layout = self.resolve_parent(layout)
        chain.reverse()
        return chain

    def target_path(self, chain: LayoutChain) -> StackPath:
        if chain:
            return chain[-1][1]
        return self.coordinator.root

    # ------------------------------------------------------------------
    # Application
    # ------------------------------------------------------------------
    async def apply(self, chain: LayoutChain, strategy: LayoutStrategy) -> None:
        enclosing: StackPath = self.coordinator.root
        for layout, path in chain:
            if strategy is LayoutStrategy.PUSH_TO_TOP and isinstance(enclosing, NavigationPath):
                await enclosing.push_or_move_to_top(layout, resolved=True)
            else:
                await enclosing.activate_route(layout, resolved=True)
            enclosing = path
