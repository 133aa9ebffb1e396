"""Navigation coordinator (source of truth).

A :class:`Coordinator` owns the root :class:`~smartnav.core.paths.NavigationPath`,
any extra paths declared by :meth:`Coordinator.define_paths`, the layout
constructor registry filled by :meth:`Coordinator.define_layouts`, and the
``navigation`` dispatcher through which every operation runs.

Constructor
-----------
Constructor signature::

    Coordinator(parent=None, *, root_label="root", max_redirect_hops=32,
                module_name=None, initial_location=None)

Options are merged with ``SmartOptions``.

- ``parent``: when given, this coordinator is a route module of ``parent``:
  its ``root`` is the parent's root (an alias, not a copy), its layout
  registry is the root coordinator's registry, paths it creates report the
  top-level root coordinator, and its ``navigation`` dispatcher is attached to
  the parent's under ``module_name`` (default: class name). The parent is held
  through a weak reference.
- ``max_redirect_hops``: bound for chained redirect rules (``0`` or ``None``
  = no bound).
- ``initial_location``: recovered by :meth:`Coordinator.start`.

Operations
----------
Every operation resolves redirects once, resolves the layout chain, selects
the innermost path and applies the stack operation:

============================  =======  ==========================================
operation                     guard    effect
============================  =======  ==========================================
``push``                      no       layouts push-to-top; append (activate on
                                       indexed paths); returns the result future
``push_or_move_to_top``       no       de-duplicating append
``replace``                   no       reset every path, layouts override,
                                       activate the route
``pop`` / ``try_pop``         yes      pop the innermost sequential active path
                                       holding two or more routes
``navigate``                  yes      pop back to an equal route or push
``push_replacement``          yes      swap the active route
``recover``                   depends  deep-link strategy dispatch
``sync_location``             yes      externally observed location changed
============================  =======  ==========================================

A redirect abort returns ``None`` and changes nothing. ``pop`` and
``sync_location`` fire the resync signal when a guard rejects; ``try_pop``
does not. ``pop``/``try_pop`` return ``None`` when no path can pop.

Listeners and resync
--------------------
The coordinator re-notifies its own listeners whenever one of its paths
notifies. Resync listeners receive ``current_location`` and are always fired
on the top-level root coordinator.

Restoration ids
---------------
``resolve_route_id(route)`` joins with ``_``: the root label, the labels of
the paths enclosing the route (outer to inner) and the route key
(``restoration_id`` or identifier, plus sorted props).
``restoration_ids()`` maps every live route and raises
:class:`~smartnav.core.errors.DuplicateRestorationIdError` on collisions.
"""

from __future__ import annotations

import asyncio
import weakref
from typing import Any, Callable, Dict, List, Optional

from smartseeds import SmartOptions

from ._invoke import invoke
from .configurable import Configurable
from .decorators import operation
from .deeplink import DeeplinkStrategy, dispatch_deeplink
from .dispatcher import Dispatcher
from .errors import DuplicateRestorationIdError, UnregisteredLayoutError
from .layout import LayoutResolver, LayoutStrategy, RouteLayout
from .paths import NavigationPath, StackPath
from .redirect import DEFAULT_MAX_HOPS, resolve_redirect
from .target import RouteTarget

__all__ = ["Coordinator"]

_DEFAULTS: Dict[str, Any] = {
    "root_label": "root",
    "max_redirect_hops": DEFAULT_MAX_HOPS,
    "module_name": None,
    "initial_location": None,
}


class Coordinator(Configurable):
    """Orchestrates paths, layouts, redirects, guards and deep links."""

    def __init__(self, parent: Optional["Coordinator"] = None, **options: Any) -> None:
        opts = SmartOptions(options, defaults=_DEFAULTS)
        hops = getattr(opts, "max_redirect_hops", DEFAULT_MAX_HOPS)
        self.max_redirect_hops: Optional[int] = hops or None
        self.initial_location: Optional[str] = getattr(opts, "initial_location", None)
        self._parent_ref: Optional[weakref.ref] = weakref.ref(parent) if parent is not None else None
        self._listeners: List[Callable[[], Any]] = []
        self._resync_listeners: List[Callable[[Optional[str]], Any]] = []
        self._subscribed: List[StackPath] = []
        self._own_paths: List[StackPath] = []
        if parent is None:
            self._layout_constructors: Dict[Any, Callable[[], RouteLayout]] = {}
            self.root = NavigationPath(label=getattr(opts, "root_label", "root"), coordinator=self)
        else:
            self._layout_constructors = parent.root_coordinator._layout_constructors
            self.root = parent.root
        self.layouts = LayoutResolver(self)
        self.navigation = Dispatcher(
            self,
            name="navigation",
            prefix="_op_",
            parent_dispatcher=parent.navigation if parent is not None else None,
            alias=getattr(opts, "module_name", None) or type(self).__name__,
        )
        self._setup_modules()
        self._own_paths = list(self.define_paths())
        for path in self.paths:
            path.add_listener(self._on_path_changed)
            self._subscribed.append(path)
        self.define_layouts()

    def __repr__(self) -> str:
        return f"<{type(self).__name__}>"

    # ------------------------------------------------------------------
    # Hooks for subclasses
    # ------------------------------------------------------------------
    def _setup_modules(self) -> None:
        """Create child modules before paths are collected (modular coordinators)."""

    def define_paths(self) -> List[StackPath]:
        """Return extra paths owned by this coordinator (besides ``root``)."""
        return []

    def define_layouts(self) -> None:
        """Register layout constructors with :meth:`define_layout`."""

    def parse_location(self, location: str) -> Any:
        """Turn an external location into a route (sync or async)."""
        raise NotImplementedError(f"{type(self).__name__} does not implement parse_location()")

    def location_of(self, route: Optional[RouteTarget]) -> Optional[str]:
        """Inverse of :meth:`parse_location` used for ``current_location``."""
        if route is None:
            return None
        return str(route.identifier)

    # ------------------------------------------------------------------
    # Hierarchy
    # ------------------------------------------------------------------
    @property
    def parent(self) -> Optional["Coordinator"]:
        return self._parent_ref() if self._parent_ref is not None else None

    @property
    def is_route_module(self) -> bool:
        return self._parent_ref is not None

    @property
    def root_coordinator(self) -> "Coordinator":
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    @property
    def paths(self) -> List[StackPath]:
        if self.is_route_module:
            return list(self._own_paths)
        return [self.root] + self._own_paths

    def path_by_label(self, label: str) -> StackPath:
        for path in self.root_coordinator.paths:
            if path.label == label:
                return path
        raise KeyError(f"No path labelled {label!r}")

    # ------------------------------------------------------------------
    # Layout registry
    # ------------------------------------------------------------------
    def define_layout(
        self, layout_key: Any, constructor: Callable[[], RouteLayout], *, replace: bool = False
    ) -> None:
        existing = self._layout_constructors.get(layout_key)
        if existing is not None and existing is not constructor and not replace:
            raise ValueError(f"Layout {layout_key!r} is already registered")
        self._layout_constructors[layout_key] = constructor

    def create_layout(self, layout_key: Any) -> RouteLayout:
        constructor = self._layout_constructors.get(layout_key)
        if constructor is None:
            raise UnregisteredLayoutError(layout_key)
        layout = constructor()
        if layout.shell_key != layout_key:
            raise ValueError(
                f"Constructor for {layout_key!r} built a layout keyed {layout.shell_key!r}"
            )
        return layout

    # ------------------------------------------------------------------
    # Active state
    # ------------------------------------------------------------------
    def _walk_active(self):
        path: StackPath = self.root
        seen = {id(path)}
        yield None, path
        route = path.active_route
        while route is not None and route.is_layout_parent:
            path = route.resolve_path(self)
            if id(path) in seen:
                break
            seen.add(id(path))
            yield route, path
            route = path.active_route

    @property
    def active_paths(self) -> List[StackPath]:
        return [path for _, path in self._walk_active()]

    @property
    def active_layouts(self) -> List[RouteLayout]:
        return [layout for layout, _ in self._walk_active() if layout is not None]

    @property
    def active_path(self) -> StackPath:
        return self.active_paths[-1]

    @property
    def active_layout(self) -> Optional[RouteLayout]:
        layouts = self.active_layouts
        return layouts[-1] if layouts else None

    @property
    def current_route(self) -> Optional[RouteTarget]:
        return self.active_path.active_route or self.active_layout

    @property
    def current_location(self) -> Optional[str]:
        return self.location_of(self.current_route)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------
    def add_listener(self, listener: Callable[[], Any]) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[], Any]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def notify_listeners(self) -> None:
        for listener in list(self._listeners):
            listener()

    def _on_path_changed(self) -> None:
        self.notify_listeners()

    def mark_need_rebuild(self) -> None:
        self.notify_listeners()

    def add_resync_listener(self, listener: Callable[[Optional[str]], Any]) -> None:
        self.root_coordinator._resync_listeners.append(listener)

    def remove_resync_listener(self, listener: Callable[[Optional[str]], Any]) -> None:
        listeners = self.root_coordinator._resync_listeners
        if listener in listeners:
            listeners.remove(listener)

    def request_resync(self) -> None:
        root = self.root_coordinator
        location = root.current_location
        for listener in list(root._resync_listeners):
            listener(location)

    def dispose(self) -> None:
        for path in self._subscribed:
            path.remove_listener(self._on_path_changed)
        self._subscribed.clear()
        self._listeners.clear()
        self._resync_listeners.clear()

    # ------------------------------------------------------------------
    # Plugins
    # ------------------------------------------------------------------
    def plug(self, plugin: str, **config: Any) -> "Coordinator":
        """Attach a plugin to the ``navigation`` dispatcher."""
        self.navigation.plug(plugin, **config)
        return self

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------
    async def push(self, route: RouteTarget) -> Optional[asyncio.Future]:
        return await self.navigation.call("push", route)

    async def push_or_move_to_top(self, route: RouteTarget) -> None:
        return await self.navigation.call("push_or_move_to_top", route)

    async def replace(self, route: RouteTarget) -> None:
        return await self.navigation.call("replace", route)

    async def pop(self, result: Any = None) -> Optional[bool]:
        return await self.navigation.call("pop", result)

    async def try_pop(self, result: Any = None) -> Optional[bool]:
        return await self.navigation.call("try_pop", result)

    async def navigate(self, route: RouteTarget) -> Optional[bool]:
        return await self.navigation.call("navigate", route)

    async def push_replacement(self, route: RouteTarget, result: Any = None) -> Optional[asyncio.Future]:
        return await self.navigation.call("push_replacement", route, result)

    async def recover(self, route: RouteTarget, location: Optional[str] = None) -> Optional[bool]:
        return await self.navigation.call("recover", route, location)

    async def sync_location(self, location: str) -> Optional[bool]:
        return await self.navigation.call("sync_location", location)

    async def recover_from_location(self, location: str) -> None:
        route = await invoke(self.parse_location, location)
        if route is None:
            raise LookupError(f"parse_location() returned no route for {location!r}")
        await self.recover(route, location)

    async def start(self) -> None:
        """Recover ``initial_location`` when one was configured."""
        if self.initial_location is not None:
            await self.recover_from_location(self.initial_location)

    # ------------------------------------------------------------------
    # Operation bodies
    # ------------------------------------------------------------------
    async def _resolve(self, route: RouteTarget) -> Optional[RouteTarget]:
        return await resolve_redirect(route, self.root_coordinator, max_hops=self.max_redirect_hops)

    async def _prepare(self, target: RouteTarget, strategy: LayoutStrategy) -> StackPath:
        chain = self.layouts.resolve_chain(target)
        await self.layouts.apply(chain, strategy)
        return self.layouts.target_path(chain)

    async def _push_target(self, target: RouteTarget) -> Optional[asyncio.Future]:
        path = await self._prepare(target, LayoutStrategy.PUSH_TO_TOP)
        if isinstance(path, NavigationPath):
            return await path.push(target, resolved=True)
        await path.activate_route(target, resolved=True)
        return None

    async def _replace_target(self, target: RouteTarget) -> None:
        for path in self.root_coordinator.paths:
            path.reset()
        path = await self._prepare(target, LayoutStrategy.OVERRIDE)
        await path.activate_route(target, resolved=True)

    async def _navigate_target(self, target: RouteTarget) -> Optional[bool]:
        path = await self._prepare(target, LayoutStrategy.PUSH_TO_TOP)
        return await path.navigate(target, resolved=True)

    async def _pop_innermost(self, result: Any) -> Optional[bool]:
        candidates = [path for path in self.active_paths if isinstance(path, NavigationPath)]
        for path in reversed(candidates):
            if len(path) >= 2:
                return await path.pop(result)
        return None

    @operation("navigation")
    async def _op_push(self, route: RouteTarget) -> Optional[asyncio.Future]:
        """Push ``route``; the returned future resolves when it is popped."""
        target = await self._resolve(route)
        if target is None:
            return None
        return await self._push_target(target)

    @operation("navigation")
    async def _op_push_or_move_to_top(self, route: RouteTarget) -> None:
        """Push ``route`` unless an equal route exists, which is moved to the top."""
        target = await self._resolve(route)
        if target is None:
            return None
        path = await self._prepare(target, LayoutStrategy.PUSH_TO_TOP)
        if isinstance(path, NavigationPath):
            await path.push_or_move_to_top(target, resolved=True)
        else:
            await path.activate_route(target, resolved=True)
        return None

    @operation("navigation")
    async def _op_replace(self, route: RouteTarget) -> None:
        """Reset every path and make ``route`` the only active destination."""
        target = await self._resolve(route)
        if target is None:
            return None
        await self._replace_target(target)
        return None

    @operation("navigation")
    async def _op_pop(self, result: Any = None) -> Optional[bool]:
        """Back navigation: guarded pop, resync on rejection."""
        outcome = await self._pop_innermost(result)
        if outcome is False:
            self.request_resync()
        return outcome

    @operation("navigation")
    async def _op_try_pop(self, result: Any = None) -> Optional[bool]:
        """Guarded pop without resync."""
        return await self._pop_innermost(result)

    @operation("navigation")
    async def _op_navigate(self, route: RouteTarget) -> Optional[bool]:
        """Pop back to an existing equal route, or push ``route``."""
        target = await self._resolve(route)
        if target is None:
            return None
        return await self._navigate_target(target)

    @operation("navigation")
    async def _op_push_replacement(
        self, route: RouteTarget, result: Any = None
    ) -> Optional[asyncio.Future]:
        """Replace the active route with ``route``, delivering ``result`` to it."""
        target = await self._resolve(route)
        if target is None:
            return None
        chain = self.layouts.resolve_chain(target)
        parent_path = self.layouts.target_path(chain)
        current_path = self.active_path
        current = current_path.active_route
        if (
            isinstance(current_path, NavigationPath)
            and current is not None
            and current_path is not parent_path
        ):
            if len(current_path) == 1:
                current.complete_on_result(result)
                current_path.reset()
            else:
                popped = await current_path.pop(result)
                if not popped:
                    return None
        await self.layouts.apply(chain, LayoutStrategy.PUSH_TO_TOP)
        if isinstance(parent_path, NavigationPath):
            return await parent_path.push_replacement(target, result, resolved=True)
        await parent_path.activate_route(target, resolved=True)
        return None

    @operation("navigation")
    async def _op_recover(
        self, route: RouteTarget, location: Optional[str] = None
    ) -> Optional[bool]:
        """Apply a deep-linked route with its deep-link strategy.

        Returns ``False`` when a guard (or the custom handler) rejects.
        """
        target = await self._resolve(route)
        if target is None:
            return None
        outcome = await dispatch_deeplink(
            self,
            target,
            location if location is not None else self.location_of(target),
            {
                DeeplinkStrategy.REPLACE: self._replace_target,
                DeeplinkStrategy.NAVIGATE: self._navigate_target,
                DeeplinkStrategy.PUSH: self._push_target,
            },
        )
        return outcome is not False

    @operation("navigation")
    async def _op_sync_location(self, location: str) -> Optional[bool]:
        """Follow an externally observed location change."""
        route = await invoke(self.parse_location, location)
        if route is None:
            self.request_resync()
            return None
        if route.is_deeplink_aware:
            outcome = await self.recover(route, location)
        else:
            outcome = await self.navigate(route)
        if outcome is False:
            self.request_resync()
        return outcome

    # ------------------------------------------------------------------
    # Restoration ids
    # ------------------------------------------------------------------
    @property
    def root_restoration_id(self) -> str:
        return self.root.label or "root"

    def _route_key(self, route: RouteTarget) -> str:
        key = route.restoration_id or str(route.identifier)
        if route.props:
            key += "?" + "&".join(f"{name}={route.props[name]}" for name in sorted(route.props))
        return key

    def _layout_owning(self, path: StackPath) -> Optional[RouteLayout]:
        for candidate in self.root_coordinator.paths:
            for route in candidate.stack:
                if route.is_layout_parent and route.resolve_path(self) is path:
                    return route
        return None

    def resolve_route_id(self, route: RouteTarget) -> str:
        labels: List[str] = []
        path = route.stack_path
        seen = set()
        while path is not None and path is not self.root and id(path) not in seen:
            seen.add(id(path))
            labels.append(path.label or path.path_key)
            owner = self._layout_owning(path)
            path = owner.stack_path if owner is not None else None
        labels.reverse()
        return "_".join([self.root_restoration_id, *labels, self._route_key(route)])

    def restoration_ids(self) -> Dict[str, RouteTarget]:
        ids: Dict[str, RouteTarget] = {}
        for path in self.root_coordinator.paths:
            for route in path.stack:
                route_id = self.resolve_route_id(route)
                existing = ids.get(route_id)
                if existing is not None and existing is not route:
                    raise DuplicateRestorationIdError(route_id, (existing, route))
                ids[route_id] = route
        return ids
