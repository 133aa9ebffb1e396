"""Navigation destinations (source of truth).

:class:`RouteTarget` is the value every path holds. It carries identity, an
optional payload, an optional capability set and two pieces of runtime state:
the owning path and the result slot.

Constructor and fields
----------------------
Constructor signature::

    RouteTarget(identifier=None, *, layout_key=None, props=None, params=None,
                guard=None, redirect=None, redirect_rules=None,
                deeplink_strategy=None, deeplink_handler=None,
                restoration_id=None)

- ``identifier``: opaque comparable key, usually a path-like string. Subclasses
  may declare it as a class attribute instead.
- ``layout_key``: key of the shell this route lives inside (``None`` = root).
- ``props``: discriminating payload; part of identity.
- ``params``: mutable query-like payload; NOT part of identity. Merged into the
  retained instance when an equal route is pushed again (:meth:`on_update`).

Every keyword left to ``None`` keeps the class-level value, so capabilities can
be declared either per instance or as methods on a subclass.

Capabilities
------------
Dispatch never inspects subclasses; it asks:

- :attr:`can_guard_pop`: ``guard(coordinator) -> bool`` (sync or async) is set.
- :attr:`can_redirect`: ``redirect(coordinator) -> RouteTarget | None`` or a
  non-empty ``redirect_rules`` list is set.
- :attr:`is_deeplink_aware`: ``deeplink_strategy`` is set.
- :attr:`is_layout_parent`: the route owns a nested path (``RouteLayout``).

Identity
--------
Two routes are equal iff they share class, ``identifier`` and ``props``.
:meth:`deep_equals` also compares ``params``. Hash uses class + identifier.

Ownership and result
--------------------
- ``stack_path`` is the path currently holding the route, ``None`` otherwise.
  Only paths write it (``_bind_path`` / ``_clear_path``).
- ``on_result`` lazily creates an ``asyncio.Future`` on the running loop; it
  resolves with the value delivered by ``complete_on_result``. Completion is
  first-wins: later calls are ignored and return ``False``.
- ``discard()`` completes with ``None`` and runs the ``on_discard`` hook.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

if TYPE_CHECKING:  # pragma: no cover - import for typing only
    from .paths import StackPath

__all__ = ["RouteTarget"]

_CAPABILITY_KEYS = (
    "layout_key",
    "guard",
    "redirect",
    "redirect_rules",
    "deeplink_strategy",
    "deeplink_handler",
    "restoration_id",
)


class RouteTarget:
    """A destination held by a stack path."""

    identifier: Any = None
    layout_key: Any = None
    guard: Optional[Callable] = None
    redirect: Optional[Callable] = None
    redirect_rules: Optional[List[Any]] = None
    deeplink_strategy: Any = None
    deeplink_handler: Optional[Callable] = None
    restoration_id: Optional[str] = None
    is_layout_parent: bool = False

    def __init__(
        self,
        identifier: Any = None,
        *,
        props: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        **capabilities: Any,
    ) -> None:
        unknown = set(capabilities) - set(_CAPABILITY_KEYS)
        if unknown:
            raise TypeError(f"Unknown route options: {', '.join(sorted(unknown))}")
        if identifier is not None:
            self.identifier = identifier
        for key, value in capabilities.items():
            if value is not None:
                setattr(self, key, value)
        self.props: Dict[str, Any] = dict(props or {})
        self.params: Dict[str, Any] = dict(params or {})
        self.is_pop_by_path = False
        self._path: Optional["StackPath"] = None
        self._future: Optional[asyncio.Future] = None
        self._completed = False
        self._result: Any = None

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------
    @property
    def can_guard_pop(self) -> bool:
        return self.guard is not None

    @property
    def can_redirect(self) -> bool:
        return self.redirect is not None or bool(self.redirect_rules)

    @property
    def is_deeplink_aware(self) -> bool:
        return self.deeplink_strategy is not None

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RouteTarget) or type(other) is not type(self):
            return NotImplemented
        return self.identifier == other.identifier and self.props == other.props

    def __hash__(self) -> int:
        return hash((type(self), self.identifier))

    def deep_equals(self, other: "RouteTarget") -> bool:
        """Equality including the mutable ``params`` payload."""
        return self == other and self.params == other.params

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.identifier!r})"

    # ------------------------------------------------------------------
    # Ownership
    # ------------------------------------------------------------------
    @property
    def stack_path(self) -> Optional["StackPath"]:
        return self._path

    def _bind_path(self, path: "StackPath") -> None:
        previous = self._path
        if previous is not None and previous is not path:
            previous._release(self)
        if self._completed and previous is None:
            # re-admitted after leaving a path: start a fresh result slot
            self._future = None
            self._completed = False
            self._result = None
        self._path = path
        self.is_pop_by_path = False

    def _clear_path(self) -> None:
        self._path = None

    # ------------------------------------------------------------------
    # Result slot
    # ------------------------------------------------------------------
    @property
    def on_result(self) -> asyncio.Future:
        """Future resolved with the result delivered when the route leaves."""
        if self._future is None:
            self._future = asyncio.get_running_loop().create_future()
            if self._completed:
                self._future.set_result(self._result)
        return self._future

    @property
    def is_completed(self) -> bool:
        return self._completed

    @property
    def result_value(self) -> Any:
        return self._result

    def complete_on_result(self, result: Any = None) -> bool:
        """Deliver ``result`` once; returns ``False`` if already completed."""
        if self._completed:
            return False
        self._completed = True
        self._result = result
        if self._future is not None and not self._future.done():
            self._future.set_result(result)
        return True

    def discard(self) -> None:
        self.complete_on_result(None)
        self.on_discard()

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------
    def on_update(self, incoming: "RouteTarget") -> bool:
        """Merge ``params`` from an equal incoming route. Returns True if changed."""
        if incoming is self or not incoming.params:
            return False
        merged = dict(self.params)
        merged.update(incoming.params)
        if merged == self.params:
            return False
        self.params = merged
        return True

    def on_discard(self) -> None:
        """Called when the route is dropped without being popped."""

    def on_did_pop(self, result: Any, coordinator: Any) -> None:
        """Called after a guarded pop removed the route."""
