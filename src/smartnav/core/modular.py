"""Module aggregation (source of truth).

RouteModule
-----------
A unit contributing location parsing, paths and layouts to an aggregating
coordinator. It keeps a weak handle to that coordinator. Hooks:

- ``define_paths()``: paths owned by the module, collected once.
- ``define_layouts()``: register layout constructors (shared registry).
- ``parse_location(location)``: sync or async; ``None`` = not mine.

CoordinatorModular
------------------
``define_modules()`` returns an ordered list of modules: ``RouteModule``
instances or nested coordinators built with ``parent=self`` (including other
``CoordinatorModular``, to any depth).

- ``paths``: own paths followed by each module's paths, in module order.
- ``parse_location`` tries modules in order; the first non-``None`` route
  wins. When every module declines, a standalone aggregator returns
  ``not_found(location)``; a nested aggregator returns ``None`` so its parent
  keeps trying its remaining modules.
- A standalone aggregator must override ``not_found``; this is checked when
  the instance is built (:class:`~smartnav.core.errors.MissingFallbackError`).
"""

from __future__ import annotations

import weakref
from typing import Any, List, Optional, Type, TypeVar

from ._invoke import invoke
from .coordinator import Coordinator
from .errors import MissingFallbackError
from .paths import StackPath
from .target import RouteTarget

__all__ = ["RouteModule", "CoordinatorModular"]

M = TypeVar("M")


class RouteModule:
    """Location parsing and paths contributed to a modular coordinator."""

    def __init__(self, coordinator: "CoordinatorModular") -> None:
        self._coordinator_ref = weakref.ref(coordinator)
        self._paths: Optional[List[StackPath]] = None

    @property
    def coordinator(self) -> "CoordinatorModular":
        coordinator = self._coordinator_ref()
        if coordinator is None:  # pragma: no cover - coordinator collected
            raise ReferenceError("RouteModule outlived its coordinator")
        return coordinator

    @property
    def paths(self) -> List[StackPath]:
        if self._paths is None:
            self._paths = list(self.define_paths())
        return self._paths

    def define_paths(self) -> List[StackPath]:
        return []

    def define_layouts(self) -> None:
        pass

    def define_layout(self, layout_key: Any, constructor: Any) -> None:
        self.coordinator.define_layout(layout_key, constructor)

    def parse_location(self, location: str) -> Any:
        return None

    def __repr__(self) -> str:
        return f"<{type(self).__name__}>"


class CoordinatorModular(Coordinator):
    """Coordinator composed of ordered route modules."""

    def __init__(self, parent: Optional[Coordinator] = None, **options: Any) -> None:
        if parent is None and type(self).not_found is CoordinatorModular.not_found:
            raise MissingFallbackError(type(self))
        self._modules: List[Any] = []
        super().__init__(parent, **options)

    def define_modules(self) -> List[Any]:
        return []

    def _setup_modules(self) -> None:
        self._modules = list(self.define_modules())
        for module in self._modules:
            if isinstance(module, RouteModule):
                module.define_layouts()

    @property
    def modules(self) -> tuple:
        return tuple(self._modules)

    def get_module(self, module_type: Type[M]) -> M:
        for module in self._modules:
            if isinstance(module, module_type):
                return module
        raise LookupError(f"No module of type {module_type.__name__} in {type(self).__name__}")

    @property
    def paths(self) -> List[StackPath]:
        paths = super().paths
        for module in self._modules:
            paths.extend(module.paths)
        return paths

    async def parse_location(self, location: str) -> Optional[RouteTarget]:
        for module in self._modules:
            route = await invoke(module.parse_location, location)
            if route is not None:
                return route
        if self.is_route_module:
            return None
        return await invoke(self.not_found, location)

    def not_found(self, location: str) -> RouteTarget:
        """Fallback route for locations no module recognises."""
        raise NotImplementedError
