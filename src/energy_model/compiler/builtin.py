"""Registration of every handler shipped with the package."""

from __future__ import annotations

from energy_model.compiler.registry import TypeRegistry
from energy_model.model import (
    arrow,
    balance,
    boundary,
    capacity,
    commodity,
    conversion,
    cost,
    flow,
    loss,
    metadata,
    params,
    price,
    rhsterm,
    storage,
)
from energy_model.time import horizons, timevectors

_MODULES = (
    horizons,
    timevectors,
    params,
    commodity,
    conversion,
    price,
    loss,
    capacity,
    cost,
    rhsterm,
    balance,
    flow,
    arrow,
    storage,
    boundary,
    metadata,
)


def register_builtin_handlers(registry: TypeRegistry) -> TypeRegistry:
    for module in _MODULES:
        module.register(registry)
    return registry


def default_registry() -> TypeRegistry:
    """A fresh registry holding every built-in handler."""
    return register_builtin_handlers(TypeRegistry())
