"""Dispatcher with plugin pipeline (source of truth).

``Dispatcher`` extends ``BaseDispatcher`` with a global plugin registry,
per-dispatcher plugin instances, middleware wrapping around navigation
operations and plugin state stored on the dispatcher instance.

Internal state
--------------
- ``_plugins``: plugins plugged on this dispatcher, in attachment order.
- ``_plugins_by_name``: name → plugin instance (own plugins and inherited ones).
- ``_inherited``: plugins adopted from the parent coordinator's dispatcher.
- ``_plugin_info``: per-plugin store with a ``"--base--"`` bucket for
  dispatcher-level config and one bucket per operation, each holding
  ``config`` and ``locals``.

Global registry
---------------
``Dispatcher.register_plugin(plugin_class)`` requires a ``BasePlugin``
subclass with ``plugin_code``. Registering another class under a code already
taken raises ``ValueError``.

Attaching plugins
-----------------
``plug(name, **config)`` instantiates a registered plugin, applies its
``on_decore`` to every operation and rebuilds the handler table. Attached
plugins are exposed as attributes (``coordinator.navigation.logging``).

Wrapping pipeline
-----------------
Plugins wrap in reverse order (first attached = outermost layer). Each layer
checks ``is_plugin_enabled`` at call time, so a plugin switched off for one
operation (``set_plugin_enabled``) is skipped for that operation only.

Inheritance
-----------
A module coordinator's dispatcher adopts every plugin of its parent it does
not define itself, including plugins plugged on the parent afterwards.
Inherited plugins wrap outside the module's own plugins and keep their
configuration on the parent dispatcher.
"""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable, Dict, List, Optional, Type

from smartnav.core.base_dispatcher import BaseDispatcher
from smartnav.plugins._base_plugin import BasePlugin, OperationEntry

__all__ = ["Dispatcher"]

_PLUGIN_REGISTRY: Dict[str, Type[BasePlugin]] = {}


def _empty_slot() -> Dict[str, Dict[str, Any]]:
    return {"config": {}, "locals": {}}


class Dispatcher(BaseDispatcher):
    """Navigation dispatcher with plugin registry and pipeline support."""

    __slots__ = BaseDispatcher.__slots__ + (
        "_plugins",
        "_plugins_by_name",
        "_inherited",
        "_plugin_info",
    )

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        self._plugins: List[BasePlugin] = []
        self._plugins_by_name: Dict[str, BasePlugin] = {}
        self._inherited: List[BasePlugin] = []
        self._plugin_info: Dict[str, Dict[str, Any]] = {}
        super().__init__(*args, **kwargs)

    # ------------------------------------------------------------------
    # Plugin registration
    # ------------------------------------------------------------------
    @classmethod
    def register_plugin(cls, plugin_class: Type[BasePlugin]) -> None:
        """Register a plugin class globally under its ``plugin_code``."""
        if not isinstance(plugin_class, type) or not issubclass(plugin_class, BasePlugin):
            raise TypeError("plugin_class must be a BasePlugin subclass")
        code = getattr(plugin_class, "plugin_code", None)
        if not code:
            raise ValueError(f"Plugin {plugin_class.__name__} is missing plugin_code")
        existing = _PLUGIN_REGISTRY.get(code)
        if existing is not None and existing is not plugin_class:
            raise ValueError(f"Plugin '{code}' already registered")
        _PLUGIN_REGISTRY[code] = plugin_class

    @classmethod
    def available_plugins(cls) -> Dict[str, Type[BasePlugin]]:
        return dict(_PLUGIN_REGISTRY)

    def plug(self, plugin: str, **config: Any) -> "Dispatcher":
        """Attach a globally registered plugin by name."""
        if not isinstance(plugin, str):
            raise TypeError(
                f"Plugin must be referenced by name string, got {type(plugin).__name__}"
            )
        plugin_class = _PLUGIN_REGISTRY.get(plugin)
        if plugin_class is None:
            available = ", ".join(sorted(_PLUGIN_REGISTRY)) or "none"
            raise ValueError(
                f"Unknown plugin '{plugin}'. Register it first. Available plugins: {available}"
            )
        instance = plugin_class(self, **config)
        self._plugins.append(instance)
        self._adopt_plugin(instance)
        return self

    def iter_plugins(self) -> List[BasePlugin]:  # type: ignore[override]
        return list(self._plugins)

    def get_config(self, plugin_name: str, operation: Optional[str] = None) -> Dict[str, Any]:
        return self._require_plugin(plugin_name).configuration(operation)

    def _require_plugin(self, plugin_name: str) -> BasePlugin:
        plugin = self._plugins_by_name.get(plugin_name)
        if plugin is None:
            raise AttributeError(
                f"No plugin named '{plugin_name}' attached to dispatcher '{self.name}'"
            )
        return plugin

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__"):
            raise AttributeError(name)
        return self._require_plugin(name)

    def _get_plugin_bucket(self, plugin_name: str) -> Dict[str, Any]:
        bucket = self._plugin_info.get(plugin_name)
        if bucket is None:
            raise AttributeError(
                f"No plugin named '{plugin_name}' attached to dispatcher '{self.name}'"
            )
        bucket.setdefault("--base--", _empty_slot())
        return bucket

    # ------------------------------------------------------------------
    # Per-operation switches
    # ------------------------------------------------------------------
    def set_plugin_enabled(self, operation: str, plugin_name: str, enabled: bool = True) -> None:
        slot = self._get_plugin_bucket(plugin_name).setdefault(operation, _empty_slot())
        slot["locals"]["enabled"] = bool(enabled)

    def is_plugin_enabled(self, operation: str, plugin_name: str) -> bool:
        bucket = self._get_plugin_bucket(plugin_name)
        operation_locals = bucket.get(operation, {}).get("locals", {})
        if "enabled" in operation_locals:
            return bool(operation_locals["enabled"])
        return bool(bucket["--base--"]["locals"].get("enabled", True))

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------
    def _pipeline(self) -> List[BasePlugin]:
        """Inherited plugins first (parent order), then own plugins."""
        return self._inherited + self._plugins

    def _wrap_handler(self, entry: OperationEntry, call_next: Callable) -> Callable:  # type: ignore[override]
        wrapped = call_next
        for plugin in reversed(self._pipeline()):
            wrapped = self._layer(plugin, entry, plugin.wrap_handler(self, entry, wrapped), wrapped)
        return wrapped

    def _layer(
        self,
        plugin: BasePlugin,
        entry: OperationEntry,
        plugin_call: Callable,
        next_handler: Callable,
    ) -> Callable:
        # inherited plugins keep their state on the dispatcher that plugged them
        owner = plugin._dispatcher

        @wraps(next_handler)
        def layer(*args: Any, **kwargs: Any) -> Any:
            if not owner.is_plugin_enabled(entry.name, plugin.name):
                return next_handler(*args, **kwargs)
            return plugin_call(*args, **kwargs)

        return layer

    def _decorate(self, plugin: BasePlugin, entry: OperationEntry) -> None:
        if plugin.name not in entry.plugins:
            entry.plugins.append(plugin.name)
        plugin.on_decore(self, entry.func, entry)

    def _adopt_plugin(self, plugin: BasePlugin) -> None:
        self._plugins_by_name[plugin.name] = plugin
        for entry in self._entries.values():
            self._decorate(plugin, entry)
        self._rebuild_handlers()
        for child in self._children.values():
            child._inherit(plugin)

    def _inherit(self, plugin: BasePlugin) -> None:
        if plugin.name in self._plugins_by_name:
            return
        self._inherited.append(plugin)
        self._adopt_plugin(plugin)

    def _on_attached_to_parent(self, parent: "Dispatcher") -> None:  # type: ignore[override]
        for parent_plugin in parent._pipeline():
            self._inherit(parent_plugin)

    def _after_entry_registered(self, entry: OperationEntry) -> None:  # type: ignore[override]
        for pname, cfg in entry.metadata.get("plugin_config", {}).items():
            bucket = self._plugin_info.setdefault(pname, {"--base--": _empty_slot()})
            bucket.setdefault(entry.name, _empty_slot())["config"].update(cfg)
        for plugin in self._pipeline():
            self._decorate(plugin, entry)

    def _describe_entry_extra(  # type: ignore[override]
        self, entry: OperationEntry, base_description: Dict[str, Any]
    ) -> Dict[str, Any]:
        plugins_info: Dict[str, Dict[str, Any]] = {}
        for plugin in self._pipeline():
            plugin_data: Dict[str, Any] = {}
            config = plugin.configuration(entry.name)
            if config:
                plugin_data["config"] = config
            meta = plugin.entry_metadata(self, entry)
            if meta:
                plugin_data["metadata"] = meta
            if plugin_data:
                plugins_info[plugin.name] = plugin_data
        if plugins_info:
            return {"plugins": plugins_info}
        return {}
