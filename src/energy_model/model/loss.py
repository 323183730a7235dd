from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
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
    LOSS_CONCEPT,
    LOSS_FACTOR_KEY,
    UTILIZATION_KEY,
    WHICH_CONCEPT,
    WHICH_INSTANCE,
)
from energy_model.dataset.attributes import get_float, get_str
from energy_model.dataset.keys import ElementKey, Id
from energy_model.time.probtime import ProbTime


@dataclass(frozen=True, slots=True)
class SimpleLoss:
    """A constant share of the flow lost on the way through."""

    factor: float
    utilization: float

    def is_constant(self) -> bool:
        return True

    def is_durational(self) -> bool:
        return False

    def is_stateful(self) -> bool:
        return False

    def is_zero(self) -> bool:
        return self.factor == 0

    def is_one(self) -> bool:
        return self.factor == 1

    def value(self, start: ProbTime, delta: timedelta) -> float:
        return self.factor


def _unit_interval(value: Mapping[str, Any], key: str, elkey: ElementKey) -> float:
    found = get_float(value, key, elkey)
    if not 0.0 <= found <= 1.0:
        raise StructuralError(f"{key} must be within [0, 1] for {elkey}, got {found}")
    return found


def include_simple_loss(
    toplevel: ObjectStore,
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
) -> InclusionResult:
    factor = _unit_interval(value, LOSS_FACTOR_KEY, elkey)
    utilization = _unit_interval(value, UTILIZATION_KEY, elkey)
    target_id = Id(get_str(value, WHICH_CONCEPT, elkey), get_str(value, WHICH_INSTANCE, elkey))

    deps = Dependencies()
    deps.add(target_id)
    target = lowlevel.get(target_id)
    if target is None:
        target = toplevel.get(target_id)
    if target is None:
        deps.missing = True
        return deps.deferred()

    set_loss = getattr(target, "set_loss", None)
    if set_loss is None:
        raise StructuralError(f"{target_id} referenced by {elkey} cannot have a loss")
    set_loss(SimpleLoss(factor, utilization))
    return deps.included()


def register(registry: TypeRegistry) -> None:
    registry.register(LOSS_CONCEPT, "SimpleLoss", include_simple_loss)
