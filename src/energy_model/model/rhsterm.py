from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, cast

from energy_model.compiler.errors import StructuralError
from energy_model.compiler.registry import (
    Dependencies,
    InclusionResult,
    ObjectStore,
    TypeRegistry,
    ensure_free,
)
from energy_model.constants import BALANCE_CONCEPT, RHSTERM_CONCEPT
from energy_model.dataset.attributes import get_is_ingoing, get_str
from energy_model.dataset.keys import ElementKey, Id
from energy_model.model.metadata import assign_metadata
from energy_model.model.params import ParamLike, resolve_param
from energy_model.time.probtime import ProbTime


@dataclass(slots=True)
class BaseRHSTerm:
    """Exogenous quantity entering (``In``) or leaving (``Out``) a balance."""

    id: Id
    param: ParamLike
    is_ingoing: bool
    metadata: dict[str, Any] = field(default_factory=dict)

    def is_constant(self) -> bool:
        return self.param.is_constant()

    def is_durational(self) -> bool:
        return self.param.is_durational()

    def is_stateful(self) -> bool:
        return self.param.is_stateful()

    def value(self, start: ProbTime, delta: timedelta) -> float:
        return self.param.value(start, delta)

    def set_metadata(self, key: str, value: Any) -> None:
        assign_metadata(self.metadata, self.id, key, value)


def include_base_rhs_term(
    toplevel: ObjectStore,
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
) -> InclusionResult:
    ensure_free(toplevel, lowlevel, elkey.object_id)
    is_ingoing = get_is_ingoing(value, elkey)
    deps = Dependencies()
    balance_id = Id(BALANCE_CONCEPT, get_str(value, BALANCE_CONCEPT, elkey))
    balance = deps.require(toplevel, balance_id)
    param = resolve_param(lowlevel, elkey, value, deps)
    if not deps.satisfied:
        return deps.deferred()
    param = cast(ParamLike, param)
    if not param.is_durational():
        raise StructuralError(f"Right-hand side parameter of {elkey} must be durational")
    if balance.is_exogen:
        raise StructuralError(f"{balance_id} referenced by {elkey} is exogenous and takes no terms")
    rhs_term = BaseRHSTerm(elkey.object_id, param, is_ingoing)
    balance.add_rhs_term(rhs_term)
    lowlevel[elkey.object_id] = rhs_term
    return deps.included()


def register(registry: TypeRegistry) -> None:
    registry.register(RHSTERM_CONCEPT, "BaseRHSTerm", include_base_rhs_term)
