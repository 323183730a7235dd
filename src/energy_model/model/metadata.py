"""Free-form hints attached to model objects for later reasoning."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import timedelta
from typing import Any

from energy_model.compiler.errors import StructuralError
from energy_model.compiler.registry import (
    Dependencies,
    InclusionResult,
    ObjectStore,
    TypeRegistry,
)
from energy_model.constants import (
    METADATA_CONCEPT,
    RESIDUAL_HINT_KEY,
    RHSTERM_CONCEPT,
    STORAGE_CONCEPT,
    STORAGE_HINT_KEY,
)
from energy_model.dataset.attributes import get_choice, get_str, get_timedelta
from energy_model.dataset.keys import ElementKey, Id


def assign_metadata(metadata: dict[str, Any], owner: Id, key: str, value: Any) -> None:
    if key in metadata:
        raise StructuralError(f"{owner} already has metadata {key}")
    metadata[key] = value


def include_storage_hint(
    toplevel: ObjectStore,
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
) -> InclusionResult:
    period = get_timedelta(value, "Period", elkey)
    if period <= timedelta(0):
        raise StructuralError(f"Period must be positive for {elkey}")
    deps = Dependencies()
    storage = deps.require(toplevel, Id(STORAGE_CONCEPT, get_str(value, STORAGE_CONCEPT, elkey)))
    if not deps.satisfied:
        return deps.deferred()
    storage.set_metadata(STORAGE_HINT_KEY, period)
    return deps.included()


def include_residual_hint(
    toplevel: ObjectStore,
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
) -> InclusionResult:
    residual = get_choice(value, RESIDUAL_HINT_KEY, ("True", "False"), elkey) == "True"
    deps = Dependencies()
    rhs_term = deps.require(lowlevel, Id(RHSTERM_CONCEPT, get_str(value, RHSTERM_CONCEPT, elkey)))
    if not deps.satisfied:
        return deps.deferred()
    rhs_term.set_metadata(RESIDUAL_HINT_KEY, residual)
    return deps.included()


def register(registry: TypeRegistry) -> None:
    registry.register(METADATA_CONCEPT, STORAGE_HINT_KEY, include_storage_hint)
    registry.register(METADATA_CONCEPT, RESIDUAL_HINT_KEY, include_residual_hint)
