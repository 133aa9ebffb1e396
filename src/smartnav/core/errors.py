"""SmartNav exception hierarchy.

Shared by paths, layouts, coordinators and modules so every component raises
and catches the same types. Each error also derives from the builtin that
matches its nature, so callers written against builtins keep working.

Guard rejection and redirect abort are not errors: they surface as return
values (``False`` / ``None``) and never raise.
"""

from __future__ import annotations

from typing import Any, Iterable

__all__ = [
    "SmartNavError",
    "UnregisteredLayoutError",
    "MissingFallbackError",
    "DuplicateRestorationIdError",
    "RedirectLoopError",
]


class SmartNavError(Exception):
    """Base for all smartnav-specific errors."""


class UnregisteredLayoutError(SmartNavError, LookupError):
    """A layout key was resolved with no constructor registered for it."""

    def __init__(self, layout_key: Any) -> None:
        self.layout_key = layout_key
        super().__init__(
            f"No layout registered for key {layout_key!r}. "
            "Call define_layout() inside define_layouts() first."
        )


class MissingFallbackError(SmartNavError, TypeError):
    """A standalone modular coordinator does not define ``not_found``."""

    def __init__(self, coordinator_cls: type) -> None:
        super().__init__(
            f"{coordinator_cls.__name__} must override not_found(location) "
            "to handle locations no module recognises"
        )


class DuplicateRestorationIdError(SmartNavError, AssertionError):
    """Two distinct live routes produced the same restoration id."""

    def __init__(self, restoration_id: str, routes: Iterable[Any]) -> None:
        self.restoration_id = restoration_id
        self.routes = tuple(routes)
        super().__init__(
            f"Restoration id {restoration_id!r} is shared by {list(self.routes)!r}"
        )


class RedirectLoopError(SmartNavError, RuntimeError):
    """A redirect chain exceeded the configured hop limit."""

    def __init__(self, route: Any, max_hops: int) -> None:
        self.route = route
        self.max_hops = max_hops
        super().__init__(f"Redirect chain starting at {route!r} exceeded {max_hops} hops")
