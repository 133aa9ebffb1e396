"""Plugin contract used by the operation dispatcher.

Source of truth
---------------
If this module were wiped except for this docstring, the implementation must be
reconstructed exactly as described below.

Objects
~~~~~~~
``OperationEntry``
    Dataclass capturing an operation at registration time. Fields:

    - ``name`` – logical operation name (after prefix stripping, e.g. ``push``)
    - ``func`` – bound coroutine function invoked by the dispatcher
    - ``dispatcher`` – Dispatcher instance that owns the operation
    - ``plugins`` – list of plugin names applied to the operation (order matters)
    - ``metadata`` – mutable dict used by plugins to store annotations

``BasePlugin``
    Base class every plugin subclasses. Responsibilities:

    - offer config helpers that delegate to the owning dispatcher's
      ``_plugin_info`` store (no hidden per-plugin globals)
    - provide optional hooks ``on_decore(dispatcher, func, entry)`` and
      ``wrap_handler(dispatcher, entry, call_next)`` used by the pipeline

    Required class attributes: ``plugin_code`` (registration name) and
    ``plugin_description``.

    Constructor signature: ``BasePlugin(dispatcher, **config)``; ``config`` is
    passed to ``configure()``.

    ``configure(**config)``
        Subclasses declare accepted options through the method signature.
        ``__init_subclass__`` wraps it so that:
        - ``flags`` (e.g. ``"enabled,before:off"``) is parsed into booleans
        - ``_target`` selects where config is written: ``"--base--"`` (default,
          dispatcher level), ``"push"`` (one operation) or ``"push,pop"``
        - arguments are validated with pydantic ``validate_call``
        - validated config is written to the store

    ``configuration(operation=None)``
        merged configuration (dispatcher level + optional per-operation).

    ``wrap_handler``
        receives the dispatcher, the entry and the next callable and returns a
        callable with the same signature. Operations are coroutine functions,
        so wrappers must return awaitables.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from pydantic import validate_call

__all__ = ["BasePlugin", "OperationEntry"]


@dataclass
class OperationEntry:
    """Metadata for a registered coordinator operation."""

    name: str
    func: Callable
    dispatcher: Any
    plugins: List[str]
    metadata: Dict[str, Any] = field(default_factory=dict)


def _wrap_configure(original_configure: Callable) -> Callable:
    """Wrap a plugin's configure() to handle flags, _target, validation and storage."""
    validated = validate_call(original_configure)

    def wrapper(
        self: "BasePlugin", *, _target: str = "--base--", flags: Optional[str] = None, **kwargs: Any
    ) -> None:
        if flags:
            kwargs.update(self._parse_flags(flags))

        if "," in _target:
            for target in [t.strip() for t in _target.split(",") if t.strip()]:
                wrapper(self, _target=target, **kwargs)
            return

        validated(self, **kwargs)
        self._write_config(_target, kwargs)

    return wrapper


class BasePlugin:
    """Hook interface + configuration helpers for dispatcher plugins."""

    __slots__ = ("name", "_dispatcher")

    plugin_code: str = ""
    plugin_description: str = ""

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if "configure" in cls.__dict__:
            cls.configure = _wrap_configure(cls.__dict__["configure"])

    def __init__(self, dispatcher: Any, **config: Any):
        self.name = self.plugin_code
        self._dispatcher = dispatcher
        self._init_store()
        self.configure(**config)

    def _init_store(self) -> None:
        store = self._get_store()
        store.setdefault(self.name, {}).setdefault(
            "--base--", {"config": {"enabled": True}, "locals": {}}
        )

    def configure(self, *, _target: str = "--base--", flags: Optional[str] = None) -> None:
        """Accept only ``flags``; subclasses declare their own options."""
        if flags:
            self._write_config(_target, self._parse_flags(flags))

    def _write_config(self, target: str, config: Dict[str, Any]) -> None:
        if not config:
            return
        store = self._get_store()
        plugin_bucket = store.setdefault(self.name, {})
        bucket = plugin_bucket.setdefault(target, {"config": {}, "locals": {}})
        bucket["config"].update(config)

    def configuration(self, operation: Optional[str] = None) -> Dict[str, Any]:
        """Read merged configuration (base + optional per-operation override)."""
        plugin_bucket = self._get_store().get(self.name)
        if not plugin_bucket:
            return {}
        merged = dict(plugin_bucket.get("--base--", {}).get("config", {}))
        if operation:
            merged.update(plugin_bucket.get(operation, {}).get("config", {}))
        return merged

    def _parse_flags(self, flags: str) -> Dict[str, bool]:
        mapping: Dict[str, bool] = {}
        for chunk in flags.split(","):
            chunk = chunk.strip()
            if not chunk:
                continue
            if ":" in chunk:
                name, value = chunk.split(":", 1)
                mapping[name.strip()] = value.strip().lower() != "off"
            else:
                mapping[chunk] = True
        return mapping

    def on_decore(
        self, dispatcher: Any, func: Callable, entry: OperationEntry
    ) -> None:  # pragma: no cover - default no-op
        """Hook run when the operation is registered."""

    def wrap_handler(
        self,
        dispatcher: Any,
        entry: OperationEntry,
        call_next: Callable,
    ) -> Callable:
        """Wrap operation invocation; default passthrough."""
        return call_next

    def entry_metadata(self, dispatcher: Any, entry: OperationEntry) -> Dict[str, Any]:
        return {}

    def _get_store(self) -> Dict[str, Any]:
        return getattr(self._dispatcher, "_plugin_info")
