"""Plugin-free operation dispatcher (source of truth).

The module exposes :class:`BaseDispatcher`, which binds the coroutine methods
of a coordinator as named navigation operations, resolves dotted selectors
across module dispatchers and exposes introspection. Plugin support lives in
:mod:`smartnav.core.dispatcher`.

Constructor and slots
---------------------
Constructor signature::

    BaseDispatcher(owner, name=None, prefix=None, *,
                   parent_dispatcher=None, alias=None)

- ``owner`` is required; ``None`` raises ``ValueError``.
- ``prefix`` is stripped from method names (``_op_push`` → ``push``).
- ``parent_dispatcher``: attach this dispatcher as a module dispatcher of
  another one under ``alias`` (default: ``name``); collisions raise
  ``ValueError``.
- On init: registers with the owner via its optional ``_register_dispatcher``
  hook, then discovers operations marked with ``@operation(name)``.

Discovery
---------
Discovery walks the reversed MRO of the owner class; the first occurrence of
a function wins and only markers whose ``name`` matches this dispatcher are
used. Marker options named ``<plugin>_<key>`` for a registered plugin are
stored as per-operation plugin config (``metadata["plugin_config"]``); the
rest stays in the operation metadata. Two operations resolving to the same
name raise ``ValueError``.

Lookup and execution
--------------------
``get(selector)`` resolves dotted selectors through module dispatchers
(missing module: ``KeyError``) and raises ``NotImplementedError`` for unknown
operations. ``call`` fetches then invokes; the caller awaits the returned
coroutine.

Introspection
-------------
``members()`` returns a nested dict with ``entries`` and ``dispatchers`` keys
when non-empty; an empty dispatcher returns ``{}``.
"""

from __future__ import annotations

import inspect
from typing import Any, Callable, Dict, Iterator, Optional, Tuple

from smartnav.plugins._base_plugin import OperationEntry

__all__ = ["BaseDispatcher", "TARGET_ATTR_NAME"]

TARGET_ATTR_NAME = "__smartnav_operations__"


class BaseDispatcher:
    """Plugin-free operation table bound to a coordinator."""

    __slots__ = (
        "instance",
        "name",
        "prefix",
        "_entries",
        "_handlers",
        "_children",
    )

    def __init__(
        self,
        owner: Any,
        name: Optional[str] = None,
        prefix: Optional[str] = None,
        *,
        parent_dispatcher: Optional["BaseDispatcher"] = None,
        alias: Optional[str] = None,
    ) -> None:
        if owner is None:
            raise ValueError("Dispatcher requires an owner instance")
        self.instance = owner
        self.name = name
        self.prefix = prefix or ""
        self._entries: Dict[str, OperationEntry] = {}
        self._handlers: Dict[str, Callable] = {}
        self._children: Dict[str, BaseDispatcher] = {}
        hook = getattr(owner, "_register_dispatcher", None)
        if callable(hook):
            hook(self)
        self._discover_operations()
        self._rebuild_handlers()

        if parent_dispatcher is not None:
            alias = alias or name
            if not alias:
                raise ValueError("Module dispatcher must have a name or alias")
            existing = parent_dispatcher._children.get(alias)
            if existing is not None and existing is not self:
                raise ValueError(f"Module dispatcher name collision: {alias!r}")
            parent_dispatcher._children[alias] = self
            self._on_attached_to_parent(parent_dispatcher)

    def _is_known_plugin(self, prefix: str) -> bool:
        from smartnav.core.dispatcher import Dispatcher

        return prefix in Dispatcher.available_plugins()

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------
    def _split_plugin_options(
        self, options: Dict[str, Any]
    ) -> Tuple[Dict[str, Any], Dict[str, Dict[str, Any]]]:
        core: Dict[str, Any] = {}
        plugin_options: Dict[str, Dict[str, Any]] = {}
        for key, value in options.items():
            plugin_name, _, plug_key = key.partition("_")
            if plug_key and self._is_known_plugin(plugin_name):
                plugin_options.setdefault(plugin_name, {})[plug_key] = value
            else:
                core[key] = value
        return core, plugin_options

    def _iter_marked_methods(self) -> Iterator[Tuple[Callable, Dict[str, Any]]]:
        seen: set[int] = set()
        for base in reversed(type(self.instance).__mro__):
            for value in vars(base).values():
                if not inspect.isfunction(value) or id(value) in seen:
                    continue
                seen.add(id(value))
                for marker in getattr(value, TARGET_ATTR_NAME, None) or ():
                    if marker.get("name") == self.name:
                        payload = dict(marker)
                        payload.pop("name")
                        yield value, payload

    def _discover_operations(self) -> None:
        for func, marker in self._iter_marked_methods():
            operation_name = marker.pop("entry_name", None) or self._strip_prefix(func.__name__)
            if operation_name in self._entries:
                raise ValueError(f"Operation name collision: {operation_name}")
            metadata, plugin_options = self._split_plugin_options(marker)
            if plugin_options:
                metadata["plugin_config"] = plugin_options
            entry = OperationEntry(
                name=operation_name,
                func=func.__get__(self.instance, type(self.instance)),
                dispatcher=self,
                plugins=[],
                metadata=metadata,
            )
            self._entries[operation_name] = entry
            self._after_entry_registered(entry)

    def _strip_prefix(self, func_name: str) -> str:
        if self.prefix and func_name.startswith(self.prefix):
            return func_name[len(self.prefix) :]
        return func_name

    def _wrap_handler(
        self, entry: OperationEntry, call_next: Callable
    ) -> Callable:  # pragma: no cover - overridden by plugin dispatchers
        return call_next

    def _rebuild_handlers(self) -> None:
        self._handlers = {
            operation_name: self._wrap_handler(entry, entry.func)
            for operation_name, entry in self._entries.items()
        }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def get(self, selector: str) -> Callable:
        """Return the (wrapped) operation for ``selector``."""
        node, operation_name = self._resolve_path(selector)
        handler = node._handlers.get(operation_name)
        if handler is None:
            raise NotImplementedError(
                f"Operation '{operation_name}' not found for selector '{selector}'"
            )
        return handler

    __getitem__ = get

    def call(self, selector: str, *args: Any, **kwargs: Any) -> Any:
        return self.get(selector)(*args, **kwargs)

    def entries(self) -> Tuple[str, ...]:
        return tuple(self._handlers)

    def _resolve_path(self, selector: str) -> Tuple["BaseDispatcher", str]:
        *modules, operation_name = selector.split(".")
        node: BaseDispatcher = self
        for segment in modules:
            node = node._children[segment]
        return node, operation_name

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    def members(self) -> Dict[str, Any]:
        """Return a tree of dispatchers, operations and plugin state."""
        entries = {entry.name: self._entry_member_info(entry) for entry in self._entries.values()}
        children = {
            child_name: child.members() for child_name, child in self._children.items()
        }
        children = {key: value for key, value in children.items() if value}
        if not entries and not children:
            return {}

        result: Dict[str, Any] = {
            "name": self.name,
            "dispatcher": self,
            "instance": self.instance,
            "plugin_info": self._get_plugin_info(),
        }
        if entries:
            result["entries"] = entries
        if children:
            result["dispatchers"] = children
        return result

    def _entry_member_info(self, entry: OperationEntry) -> Dict[str, Any]:
        info: Dict[str, Any] = {
            "name": entry.name,
            "callable": entry.func,
            "metadata": entry.metadata,
            "doc": inspect.getdoc(entry.func) or "",
        }
        info.update(self._describe_entry_extra(entry, info))
        return info

    def _get_plugin_info(self) -> Dict[str, Any]:
        info_source = getattr(self, "_plugin_info", None) or {}
        return {
            pname: {
                key: {
                    "config": dict(slot.get("config", {})),
                    "locals": dict(slot.get("locals", {})),
                }
                for key, slot in pdata.items()
            }
            for pname, pdata in info_source.items()
        }

    # ------------------------------------------------------------------
    # Hooks (no-op for BaseDispatcher)
    # ------------------------------------------------------------------
    def iter_plugins(self) -> list:  # pragma: no cover - base dispatcher has no plugins
        return []

    def _on_attached_to_parent(
        self, parent: "BaseDispatcher"
    ) -> None:  # pragma: no cover - hook for subclasses
        return None

    def _after_entry_registered(
        self, entry: OperationEntry
    ) -> None:  # pragma: no cover - hook for subclasses
        return None

    def _describe_entry_extra(
        self, entry: OperationEntry, base_description: Dict[str, Any]
    ) -> Dict[str, Any]:  # pragma: no cover - overridden when plugins present
        return {}
