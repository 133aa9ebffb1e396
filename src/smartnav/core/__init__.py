"""Core runtime aggregator (source of truth).

Purpose: expose the navigation building blocks from a single module. No extra
logic beyond imports/exports.

Guarantees
----------
- Importing this module performs only imports; it does not register plugins or
  instantiate coordinators.
- Public API mirrors underlying modules 1:1:
  * ``target`` → ``RouteTarget``
  * ``paths`` → ``StackPath``, ``NavigationPath``, ``IndexedStackPath``
  * ``layout`` → ``RouteLayout``, ``LayoutStrategy``, ``LayoutResolver``
  * ``redirect`` → ``RedirectRule`` and its results
  * ``deeplink`` → ``DeeplinkStrategy``
  * ``coordinator`` / ``modular`` → ``Coordinator``, ``CoordinatorModular``,
    ``RouteModule``
  * ``base_dispatcher`` / ``dispatcher`` / ``decorators`` → operation table
"""

from .base_dispatcher import BaseDispatcher
from .coordinator import Coordinator
from .decorators import operation
from .deeplink import DeeplinkStrategy
from .dispatcher import Dispatcher
from .errors import (
    DuplicateRestorationIdError,
    MissingFallbackError,
    RedirectLoopError,
    SmartNavError,
    UnregisteredLayoutError,
)
from .layout import LayoutResolver, LayoutStrategy, RouteLayout
from .modular import CoordinatorModular, RouteModule
from .paths import IndexedStackPath, NavigationPath, StackPath
from .redirect import Continue, RedirectRule, RedirectTo, Stop
from .target import RouteTarget

__all__ = [
    "BaseDispatcher",
    "Dispatcher",
    "operation",
    "RouteTarget",
    "StackPath",
    "NavigationPath",
    "IndexedStackPath",
    "RouteLayout",
    "LayoutStrategy",
    "LayoutResolver",
    "RedirectRule",
    "Stop",
    "Continue",
    "RedirectTo",
    "DeeplinkStrategy",
    "Coordinator",
    "CoordinatorModular",
    "RouteModule",
    "SmartNavError",
    "UnregisteredLayoutError",
    "MissingFallbackError",
    "DuplicateRestorationIdError",
    "RedirectLoopError",
]
