"""Pydantic validation plugin (source of truth).

Responsibilities
----------------
- At registration time (``on_decore``), inspect operation type hints and build
  a Pydantic model capturing annotated parameters. Routes are arbitrary
  classes, so models allow arbitrary types (checked with ``isinstance``).
- At call time (``wrap_handler``), validate annotated args/kwargs before
  awaiting the real operation; non-annotated parameters bypass validation.
- Surface validation failures as Pydantic ``ValidationError`` with contextual
  title ``"Validation error in <entry.name>"``.

Behaviour and data
------------------
- ``on_decore(dispatcher, func, entry)``:
    * resolves type hints via ``get_type_hints(func)``; failures skip the model.
    * removes the ``return`` hint.
    * annotated parameters without default are required; others keep their
      default. A hint naming a parameter missing from the signature raises
      ``ValueError``.
    * stores ``{"model", "hints", "signature"}`` in
      ``entry.metadata["pydantic"]``.
- ``wrap_handler``: passthrough when no model exists; otherwise binds the
  call, validates annotated values and awaits ``call_next(**final_args)``.
- ``get_model(entry)``: ``("pydantic_model", model)`` unless config
  ``disabled`` is truthy or no model exists.

Registration
------------
Registers itself globally as ``"pydantic"`` during module import.
"""

from __future__ import annotations

import inspect
from typing import Any, Callable, Dict, Optional, Tuple, get_type_hints

from pydantic import ConfigDict, ValidationError, create_model

from smartnav.core.dispatcher import Dispatcher
from smartnav.plugins._base_plugin import BasePlugin, OperationEntry


class PydanticPlugin(BasePlugin):
    """Validate operation inputs with Pydantic using type hints."""

    plugin_code = "pydantic"
    plugin_description = "Validates operation inputs using Pydantic type hints"

    def __init__(self, dispatcher, **config: Any):
        super().__init__(dispatcher, **config)

    def configure(self, disabled: bool = False):
        """Configure pydantic plugin options.

        The wrapper added by __init_subclass__ handles writing to store.
        """
        pass  # Storage is handled by the wrapper

    def on_decore(self, dispatcher: Any, func: Callable, entry: OperationEntry) -> None:
        try:
            hints = get_type_hints(func)
        except Exception:
            # No hints resolvable, no model created
            return

        hints.pop("return", None)
        if not hints:
            return

        sig = inspect.signature(func)
        fields = {}
        for param_name, hint in hints.items():
            param = sig.parameters.get(param_name)
            if param is None:
                raise ValueError(
                    f"Operation '{func.__name__}' has type hint for '{param_name}' "
                    f"which is not in the function signature"
                )
            elif param.default is inspect.Parameter.empty:
                fields[param_name] = (hint, ...)
            else:
                fields[param_name] = (hint, param.default)

        validation_model = create_model(  # type: ignore[call-overload]
            f"{func.__name__}_Model",
            __config__=ConfigDict(arbitrary_types_allowed=True),
            **fields,
        )

        entry.metadata["pydantic"] = {
            "model": validation_model,
            "hints": hints,
            "signature": sig,
        }

    def wrap_handler(self, dispatcher: Any, entry: OperationEntry, call_next: Callable):
        """Validate annotated parameters with the cached model before awaiting."""
        meta = entry.metadata.get("pydantic", {})
        model = meta.get("model")
        if not model:
            return call_next

        sig = meta["signature"]
        hints = meta["hints"]

        async def wrapper(*args, **kwargs):
            cfg = self.configuration(entry.name)
            if cfg.get("disabled"):
                return await call_next(*args, **kwargs)

            bound = sig.bind(*args, **kwargs)
            bound.apply_defaults()
            args_to_validate = {k: v for k, v in bound.arguments.items() if k in hints}
            other_args = {k: v for k, v in bound.arguments.items() if k not in hints}
            try:
                validated = model(**args_to_validate)
            except ValidationError as exc:
                raise ValidationError.from_exception_data(
                    title=f"Validation error in {entry.name}",
                    line_errors=exc.errors(),
                ) from exc

            final_args = other_args.copy()
            for key, value in validated:
                final_args[key] = value
            return await call_next(**final_args)

        return wrapper

    def get_model(self, entry: OperationEntry) -> Optional[Tuple[str, Any]]:
        """Return the Pydantic model for this operation if not disabled."""
        cfg = self.configuration(entry.name)
        if cfg.get("disabled"):
            return None

        meta = entry.metadata.get("pydantic", {})
        model = meta.get("model")
        if not model:
            return None
        return ("pydantic_model", model)

    def entry_metadata(self, dispatcher: Any, entry: OperationEntry) -> Dict[str, Any]:
        """Return pydantic metadata for introspection."""
        meta = entry.metadata.get("pydantic", {})
        if not meta:
            return {}
        return {
            "model": meta.get("model"),
            "hints": meta.get("hints"),
        }


Dispatcher.register_plugin(PydanticPlugin)
