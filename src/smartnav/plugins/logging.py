"""Logging plugin (source of truth).

Responsibilities
----------------
- Wrap each navigation operation and emit configurable messages:
  * ``before`` (default True): ``"{entry.name} start"``
  * ``after`` (default True): ``"{entry.name} end (<ms> ms)"`` with elapsed time
    in milliseconds and ``{elapsed:.2f}`` formatting.
  * ``outcome`` (default False): append ``" -> {result!r}"`` to the end
    message, useful to trace guard rejections (``False``) and redirect aborts
    (``None``).
- Sinks:
  * when ``print`` is true → always ``print(message)``;
  * else when ``log`` is true → ``logger.info(message)`` if the logger reports
    handlers via ``hasHandlers()``, otherwise ``print(message)`` to avoid drops;
  * else → no output.
- ``enabled`` gates the plugin entirely (default True).
- Use a provided ``logging.Logger`` (default ``logging.getLogger("smartnav")``).

Configuration
-------------
- Accepted keys (dispatcher-level or per-operation): ``enabled``, ``before``,
  ``after``, ``outcome``, ``log``, ``print``. They can be provided as
  individual kwargs or as ``flags`` (``"before:off,outcome"``).
- ``coordinator.configure("navigation:logging/pop", after=False)`` targets
  single operations.

Behaviour
---------
``wrap_handler`` returns a coroutine function. Exceptions propagate; the end
message is skipped when the operation raises.

Registration
------------
At module import the plugin registers itself as ``"logging"`` via
``Dispatcher.register_plugin(LoggingPlugin)``.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from smartnav.core.dispatcher import Dispatcher
from smartnav.plugins._base_plugin import BasePlugin, OperationEntry


class LoggingPlugin(BasePlugin):
    """Logs navigation operations with timing."""

    plugin_code = "logging"
    plugin_description = "Logs navigation operations with timing"

    __slots__ = ("_logger",)

    def __init__(self, dispatcher, *, logger: Optional[logging.Logger] = None, **cfg):
        self._logger = logger or logging.getLogger("smartnav")
        super().__init__(dispatcher, **cfg)

    def configure(
        self,
        enabled: bool = True,
        before: bool = True,
        after: bool = True,
        outcome: bool = False,
        log: bool = True,
        print: bool = False,  # noqa: A002 - shadowing builtin intentionally
    ):
        """Configure logging plugin options.

        The wrapper added by __init_subclass__ handles writing to store.
        """
        pass  # Storage is handled by the wrapper

    def _emit(self, message: str, *, cfg: Optional[dict] = None):
        if cfg is None:
            return
        if cfg.get("print"):
            print(message)
            return
        if cfg.get("log"):
            logger = self._logger
            has_handlers = getattr(logger, "hasHandlers", None)
            if callable(has_handlers) and has_handlers():
                logger.info(message)
            else:
                print(message)

    def wrap_handler(self, dispatcher, entry: OperationEntry, call_next: Callable):
        """Wrap the operation with start/end logging and timing."""

        async def logged(*args, **kwargs):
            cfg = self._effective_config(entry.name)
            if not cfg["enabled"] or not self._dispatcher.is_plugin_enabled(entry.name, self.name):
                return await call_next(*args, **kwargs)
            if cfg["before"]:
                self._emit(f"{entry.name} start", cfg=cfg)
            t0 = time.perf_counter()
            result = await call_next(*args, **kwargs)
            elapsed = (time.perf_counter() - t0) * 1000
            if cfg["after"]:
                message = f"{entry.name} end ({elapsed:.2f} ms)"
                if cfg["outcome"]:
                    message += f" -> {result!r}"
                self._emit(message, cfg=cfg)
            return result

        return logged

    def _effective_config(self, entry_name: str) -> dict:
        defaults = {
            "enabled": True,
            "before": True,
            "after": True,
            "outcome": False,
            "log": True,
            "print": False,
        }
        cfg = defaults | self.configuration(entry_name)
        flags = cfg.pop("flags", None)
        if isinstance(flags, str):
            cfg.update(self._parse_flags(flags))

        def to_bool(key: str) -> bool:
            val = cfg.get(key)
            return defaults[key] if val is None else bool(val)

        return {key: to_bool(key) for key in defaults}


Dispatcher.register_plugin(LoggingPlugin)
