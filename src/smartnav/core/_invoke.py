"""Call sync or async hooks uniformly.

Guards, redirects, redirect rules, deep-link handlers and module parsers can
all be plain functions or coroutine functions. Every call site awaits through
:func:`invoke` so the sync/async check lives in one place.
"""

from __future__ import annotations

import inspect
from typing import Any


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call ``handler`` and await the result when it is awaitable."""
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
