from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from energy_model.compiler.errors import AttributeTypeError
from energy_model.compiler.registry import (
    Dependencies,
    InclusionResult,
    ObjectStore,
    TypeRegistry,
    ensure_free,
)
from energy_model.constants import COMMODITY_CONCEPT, HORIZON_CONCEPT
from energy_model.dataset.attributes import get_attr
from energy_model.dataset.keys import ElementKey, Id
from energy_model.time.horizons import Horizon, SequentialHorizon


@dataclass(frozen=True, slots=True)
class BaseCommodity:
    """A commodity carries the horizon shared by its balances."""

    id: Id
    horizon: Horizon


def include_base_commodity(
    toplevel: ObjectStore,
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
) -> InclusionResult:
    ensure_free(toplevel, lowlevel, elkey.object_id)
    deps = Dependencies()
    raw = get_attr(value, HORIZON_CONCEPT, elkey)
    if isinstance(raw, str):
        horizon = deps.require(lowlevel, Id(HORIZON_CONCEPT, raw))
    elif isinstance(raw, SequentialHorizon):
        horizon = raw
    else:
        raise AttributeTypeError(elkey, HORIZON_CONCEPT, "a Horizon name or a Horizon", raw)
    if not deps.satisfied:
        return deps.deferred()
    lowlevel[elkey.object_id] = BaseCommodity(elkey.object_id, horizon)
    return deps.included()


def register(registry: TypeRegistry) -> None:
    registry.register(COMMODITY_CONCEPT, "BaseCommodity", include_base_commodity)
