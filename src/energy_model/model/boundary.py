from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from energy_model.compiler.errors import StructuralError
from energy_model.compiler.registry import (
    Dependencies,
    InclusionResult,
    ObjectStore,
    TypeRegistry,
    ensure_free,
)
from energy_model.constants import BOUNDARY_CONDITION_CONCEPT, WHICH_CONCEPT, WHICH_INSTANCE
from energy_model.dataset.attributes import get_str
from energy_model.dataset.keys import ElementKey, Id
from energy_model.time.probtime import ProbTime

if TYPE_CHECKING:
    from energy_model.problem.base import Problem


@dataclass(slots=True)
class StartEqualStop:
    """Forces every state variable of an object to end where it started."""

    id: Id
    target: Any

    @property
    def eq_id(self) -> Id:
        return Id(self.id.concept, f"Eq{self.id.instance}")

    def assemble(self) -> bool:
        return bool(self.target.assembled)

    def build(self, problem: Problem) -> None:
        problem.add_eq(self.eq_id, len(self.target.state_variables()))

    def set_constants(self, problem: Problem) -> None:
        for row, ((var_in, t_in), (var_out, t_out)) in enumerate(self.target.state_variables()):
            problem.set_con_coeff(self.eq_id, var_out, row, t_out, 1.0)
            problem.set_con_coeff(self.eq_id, var_in, row, t_in, -1.0)

    def update(self, problem: Problem, start: ProbTime) -> None:
        return None


def include_start_equal_stop(
    toplevel: ObjectStore,
    lowlevel: ObjectStore,
    elkey: ElementKey,
    value: Mapping[str, Any],
) -> InclusionResult:
    ensure_free(toplevel, lowlevel, elkey.object_id)
    deps = Dependencies()
    target_id = Id(get_str(value, WHICH_CONCEPT, elkey), get_str(value, WHICH_INSTANCE, elkey))
    target = deps.require(toplevel, target_id)
    if not deps.satisfied:
        return deps.deferred()
    if not hasattr(target, "state_variables"):
        raise StructuralError(f"{target_id} referenced by {elkey} has no state variables")
    toplevel[elkey.object_id] = StartEqualStop(elkey.object_id, target)
    return deps.included()


def register(registry: TypeRegistry) -> None:
    registry.register(BOUNDARY_CONDITION_CONCEPT, "StartEqualStop", include_start_equal_stop)
