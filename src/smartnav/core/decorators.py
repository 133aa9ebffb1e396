"""Marker decorator for coordinator operations (source of truth).

``operation(dispatcher, *, name=None, **kwargs)``

- Returns a decorator storing a marker on the function under
  ``TARGET_ATTR_NAME`` as a list of dicts. Each payload starts with
  ``{"name": dispatcher}``.
- ``name`` sets ``entry_name``; otherwise the operation name is the function
  name after prefix stripping by the dispatcher (``_op_push`` → ``push``).
- Extra ``**kwargs`` are copied verbatim into the payload; ``<plugin>_<key>``
  entries become per-operation plugin config (``logging_after=False``).
- The function is returned unchanged aside from the marker; nothing is
  registered at decoration time.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from .base_dispatcher import TARGET_ATTR_NAME

__all__ = ["operation"]


def operation(dispatcher: str, *, name: Optional[str] = None, **kwargs: Any) -> Callable:
    """Mark a coroutine method for inclusion in the given dispatcher.

    Args:
        dispatcher: Dispatcher identifier (e.g. ``"navigation"``).
        name: Optional explicit operation name.
    """

    def decorator(func: Callable) -> Callable:
        markers = list(getattr(func, TARGET_ATTR_NAME, []))
        payload = {"name": dispatcher}
        if name is not None:
            payload["entry_name"] = name
        payload.update(kwargs)
        markers.append(payload)
        setattr(func, TARGET_ATTR_NAME, markers)
        return func

    return decorator
