from __future__ import annotations

import importlib
import inspect
from typing import Any, Dict

from ..core.errors import ConfigError
from .base import Backend


def _import_object(spec: str) -> Any:
    """
    Import by "module:attr" spec.
    """
    if ":" not in spec:
        raise ConfigError(code="backend.spec_invalid", message="backend spec must be a built-in id or 'module:object'")
    mod_name, attr = spec.split(":", 1)
    if not mod_name or not attr:
        raise ConfigError(code="backend.spec_invalid", message="backend spec must be 'module:object'")
    try:
        mod = importlib.import_module(mod_name)
    except Exception as e:  # noqa: BLE001
        raise ConfigError(code="backend.not_found", message="Failed to import backend module", data={"module": mod_name}) from e
    if not hasattr(mod, attr):
        raise ConfigError(code="backend.not_found", message="Backend object not found in module", data={"module": mod_name, "attr": attr})
    return getattr(mod, attr)


def _build_with_compatible_kwargs(obj: Any, kwargs: Dict[str, Any]) -> Any:
    """
    Instantiate a class or call a factory with only accepted kwargs.
    """
    try:
        sig = inspect.signature(obj)
    except (TypeError, ValueError):
        return obj(**kwargs)

    accepted = {}
    for name, p in sig.parameters.items():
        if name == "self":
            continue
        if p.kind in (inspect.Parameter.VAR_KEYWORD,):
            accepted = dict(kwargs)
            break
        if name in kwargs:
            accepted[name] = kwargs[name]
    return obj(**accepted)


def load_backend(spec: str, **kwargs: Any) -> Backend:
    """
    Resolve a Backend:
    - built-in id "simulated"
    - external backends via "module:Class" or "module:factory"

    The returned object must have an async fetch(identifier) method.
    """
    if not isinstance(spec, str) or not spec:
        raise ConfigError(code="backend.spec_invalid", message="backend spec must be a non-empty string")

    if spec == "simulated":
        from .simulated import SimulatedBackend

        obj: Any = SimulatedBackend
    else:
        obj = _import_object(spec)

    try:
        if callable(obj):
            inst = _build_with_compatible_kwargs(obj, kwargs)
        else:
            inst = obj
    except TypeError as e:
        raise ConfigError(code="backend.spec_invalid", message="Backend could not be constructed with given arguments", data={"backend": spec}) from e

    fetch = getattr(inst, "fetch", None)
    if fetch is None or not callable(fetch):
        raise ConfigError(code="backend.spec_invalid", message="Backend must have a callable fetch() method", data={"backend": spec})

    return inst
