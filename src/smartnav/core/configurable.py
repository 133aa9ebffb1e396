"""Plugin configuration entrypoint for dispatcher owners (source of truth).

``Configurable`` is mixed into :class:`~smartnav.core.coordinator.Coordinator`.
It keeps a per-instance registry of dispatchers (filled by the
``_register_dispatcher`` hook that every dispatcher calls on its owner) and
offers one string-based entrypoint to configure attached plugins.

Dispatcher lookup
-----------------
``get_dispatcher(name)`` accepts combined specs (``"navigation.shop"``)
and walks child dispatchers for each dotted segment. Unknown names raise
``AttributeError``; unknown children raise ``KeyError``.

``configure(target, **options)``
--------------------------------
- list/tuple: configure each element; shared ``options`` are rejected.
- dict: must carry a ``"target"`` key; the remaining items are options.
- ``"?"``: describe every dispatcher (no options allowed).
- ``"dispatcher:plugin/selector"``: the selector is a comma-separated list of
  fnmatch patterns over operation names (default ``"_all_"`` = dispatcher-level
  config). Returns ``{"target": target, "updated": [...]}``.

Errors: non-string/dict/list targets raise ``TypeError``; missing options,
missing ``:`` or empty names raise ``ValueError``; unknown dispatcher or
plugin raise ``AttributeError``; selectors matching nothing raise ``KeyError``.
"""

from __future__ import annotations

from fnmatch import fnmatchcase
from typing import TYPE_CHECKING, Any, Dict, Tuple

if TYPE_CHECKING:  # pragma: no cover - import for typing only
    from .dispatcher import Dispatcher

__all__ = ["Configurable", "DISPATCHER_REGISTRY_ATTR_NAME"]

DISPATCHER_REGISTRY_ATTR_NAME = "__smartnav_dispatchers__"


class Configurable:
    """Mixin exposing dispatcher lookup and plugin configuration."""

    def _register_dispatcher(self, dispatcher: "Dispatcher") -> None:
        registry = getattr(self, DISPATCHER_REGISTRY_ATTR_NAME, None)
        if registry is None:
            registry = {}
            setattr(self, DISPATCHER_REGISTRY_ATTR_NAME, registry)
        if dispatcher.name:
            registry[dispatcher.name] = dispatcher

    def _iter_dispatchers(self):
        registry = getattr(self, DISPATCHER_REGISTRY_ATTR_NAME, None) or {}
        yield from registry.items()

    def get_dispatcher(self, name: str) -> "Dispatcher":
        base_name, _, extra_path = name.partition(".")
        registry = getattr(self, DISPATCHER_REGISTRY_ATTR_NAME, None) or {}
        node = registry.get(base_name)
        if node is None:
            raise AttributeError(f"No dispatcher named '{base_name}' on {type(self).__name__}")
        for segment in filter(None, extra_path.split(".")):
            node = node._children[segment]
        return node

    # Helpers -------------------------------------------------
    def _parse_target(self, target: str) -> Tuple[str, str, str]:
        if ":" not in target:
            raise ValueError("Target must include dispatcher:plugin")
        dispatcher_part, rest = target.split(":", 1)
        dispatcher_part = dispatcher_part.strip()
        if not dispatcher_part:
            raise ValueError("Dispatcher name cannot be empty")
        if "/" in rest:
            plugin_part, selector = rest.split("/", 1)
        else:
            plugin_part, selector = rest, "_all_"
        plugin_part = plugin_part.strip()
        if not plugin_part:
            raise ValueError("Plugin name cannot be empty")
        return dispatcher_part, plugin_part, selector.strip() or "_all_"

    def _match_operations(self, dispatcher: Any, selector: str) -> set[str]:
        patterns = [token.strip() for token in selector.split(",") if token.strip()]
        return {
            name
            for pattern in patterns
            for name in dispatcher._entries
            if fnmatchcase(name, pattern)
        }

    def _describe_dispatcher(self, dispatcher: Any) -> Dict[str, Any]:
        return {
            "name": dispatcher.name,
            "plugins": [
                {
                    "name": plugin.name,
                    "description": plugin.plugin_description,
                    "config": plugin.configuration(),
                    "overrides": {
                        name: plugin.configuration(name) for name in dispatcher._entries
                    },
                }
                for plugin in dispatcher.iter_plugins()
            ],
            "operations": list(dispatcher._entries),
            "children": {
                child_name: self._describe_dispatcher(child)
                for child_name, child in dispatcher._children.items()
            },
        }

    def describe_plugins(self) -> Dict[str, Any]:
        return {name: self._describe_dispatcher(d) for name, d in self._iter_dispatchers()}

    def configure(self, target: Any, **options: Any) -> Any:
        if isinstance(target, (list, tuple)):
            if options:
                raise ValueError("Do not mix shared kwargs with list targets")
            return [self.configure(entry) for entry in target]
        if isinstance(target, dict):
            entry = dict(target)
            try:
                entry_target = entry.pop("target")
            except KeyError:
                raise ValueError("Dict targets must include 'target'") from None
            return self.configure(entry_target, **entry)
        if not isinstance(target, str):
            raise TypeError("Target must be a string, dict, or list")
        target = target.strip()
        if target == "?":
            if options:
                raise ValueError("Options are not allowed with '?'")
            return self.describe_plugins()
        dispatcher_spec, plugin_name, selector = self._parse_target(target)
        dispatcher = self.get_dispatcher(dispatcher_spec)
        plugin = getattr(dispatcher, plugin_name, None)
        if plugin is None:
            raise AttributeError(
                f"No plugin named '{plugin_name}' on dispatcher '{dispatcher_spec}'"
            )
        if not options:
            raise ValueError("No configuration options provided")
        if selector.lower() == "_all_":
            plugin.configure(_target="--base--", **options)
            return {"target": target, "updated": ["_all_"]}
        matches = self._match_operations(dispatcher, selector)
        if not matches:
            raise KeyError(f"No operations matching '{selector}' on dispatcher '{dispatcher_spec}'")
        for name in matches:
            plugin.configure(_target=name, **options)
        return {"target": target, "updated": sorted(matches)}
