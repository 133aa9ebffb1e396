"""SmartNav public API surface (source of truth).

 - Public exports: routes (``RouteTarget``, ``RouteLayout``), paths
   (``NavigationPath``, ``IndexedStackPath``), coordinators (``Coordinator``,
   ``CoordinatorModular``, ``RouteModule``), redirect/deep-link helpers and
   the error hierarchy.
 - Plugin registration: import built-in plugins (``logging``, ``pydantic``) for
   their side effect of calling ``Dispatcher.register_plugin(<class>)``.
   Imports are done lazily via ``import_module`` to avoid cycles.

Constraints
-----------
- Import must stay lightweight: no coordinator instantiation or heavy work
  beyond plugin registration.
- Version string lives here as ``__version__`` and must remain available for
  packaging tools.
"""

from importlib import import_module

__version__ = "0.1.0"

from .core import (
    Continue,
    Coordinator,
    CoordinatorModular,
    DeeplinkStrategy,
    Dispatcher,
    DuplicateRestorationIdError,
    IndexedStackPath,
    LayoutStrategy,
    MissingFallbackError,
    NavigationPath,
    RedirectLoopError,
    RedirectRule,
    RedirectTo,
    RouteLayout,
    RouteModule,
    RouteTarget,
    SmartNavError,
    StackPath,
    Stop,
    UnregisteredLayoutError,
    operation,
)

# Import plugins to trigger auto-registration (lazy to avoid cycles)
for _plugin in ("logging", "pydantic"):
    import_module(f"{__name__}.plugins.{_plugin}")
del _plugin

__all__ = [
    "RouteTarget",
    "RouteLayout",
    "StackPath",
    "NavigationPath",
    "IndexedStackPath",
    "LayoutStrategy",
    "RedirectRule",
    "Stop",
    "Continue",
    "RedirectTo",
    "DeeplinkStrategy",
    "Coordinator",
    "CoordinatorModular",
    "RouteModule",
    "Dispatcher",
    "operation",
    "SmartNavError",
    "UnregisteredLayoutError",
    "MissingFallbackError",
    "DuplicateRestorationIdError",
    "RedirectLoopError",
]
