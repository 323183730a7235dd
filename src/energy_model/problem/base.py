from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any

from energy_model.dataset.keys import Id
from energy_model.model.protocol import ProblemParticipant
from energy_model.time.probtime import ProbTime

logger = logging.getLogger(__name__)


class ProblemState(Enum):
    UNBUILT = "unbuilt"
    BUILT = "built"
    CONSTANTS_SET = "constants_set"
    READY = "ready"


class ProblemStateError(RuntimeError):
    pass


class Problem(ABC):
    """Numeric optimisation problem populated by model objects.

    Objects are built once, write their constant terms once, and refresh the
    remaining terms on every ``update``. Variables and constraints are blocks
    indexed by period, addressed by object ``Id``.
    """

    def __init__(self, objects: Mapping[Id, Any] | Iterable[Any]) -> None:
        if isinstance(objects, Mapping):
            ordered = [objects[object_id] for object_id in sorted(objects)]
        else:
            ordered = list(objects)
        for obj in ordered:
            if not isinstance(obj, ProblemParticipant):
                raise TypeError(f"{type(obj).__name__} cannot take part in a problem")
        self._objects: list[Any] = ordered
        self._state = ProblemState.UNBUILT

    @property
    def objects(self) -> list[Any]:
        return list(self._objects)

    @property
    def state(self) -> ProblemState:
        return self._state

    def build(self) -> None:
        self._require(ProblemState.UNBUILT, action="build")
        for obj in self._objects:
            obj.build(self)
        self._state = ProblemState.BUILT

    def set_constants(self) -> None:
        self._require(ProblemState.BUILT, action="set constants")
        for obj in self._objects:
            obj.set_constants(self)
        self._state = ProblemState.CONSTANTS_SET

    def initialize(self) -> None:
        self.build()
        self.set_constants()

    def update(self, start: ProbTime) -> None:
        self._require(ProblemState.CONSTANTS_SET, ProblemState.READY, action="update")
        update_start = time.perf_counter()
        for obj in self._objects:
            obj.update(self, start)
        self._state = ProblemState.READY
        logger.debug(
            "Updated %s objects for %s in %.3fs",
            len(self._objects),
            start,
            time.perf_counter() - update_start,
        )

    def _require(self, *states: ProblemState, action: str) -> None:
        if self._state not in states:
            raise ProblemStateError(f"Cannot {action} a problem in state {self._state.value}")

    @abstractmethod
    def add_var(self, var_id: Id, n: int) -> None: ...

    @abstractmethod
    def add_eq(self, con_id: Id, n: int) -> None: ...

    @abstractmethod
    def add_le(self, con_id: Id, n: int) -> None: ...

    @abstractmethod
    def add_ge(self, con_id: Id, n: int) -> None: ...

    @abstractmethod
    def set_con_coeff(self, con_id: Id, var_id: Id, con_t: int, var_t: int, value: float) -> None: ...

    @abstractmethod
    def get_con_coeff(self, con_id: Id, var_id: Id, con_t: int, var_t: int) -> float: ...

    @abstractmethod
    def set_ub(self, var_id: Id, t: int, value: float) -> None: ...

    @abstractmethod
    def get_ub(self, var_id: Id, t: int) -> float | None: ...

    @abstractmethod
    def set_lb(self, var_id: Id, t: int, value: float) -> None: ...

    @abstractmethod
    def get_lb(self, var_id: Id, t: int) -> float | None: ...

    @abstractmethod
    def set_obj_coeff(self, var_id: Id, t: int, value: float) -> None: ...

    @abstractmethod
    def get_obj_coeff(self, var_id: Id, t: int) -> float: ...

    @abstractmethod
    def set_rhs_term(self, con_id: Id, term_id: Id, t: int, value: float) -> None: ...

    @abstractmethod
    def get_rhs_term(self, con_id: Id, term_id: Id, t: int) -> float: ...

    @abstractmethod
    def has_rhs_term(self, con_id: Id, term_id: Id, t: int) -> bool: ...

    @abstractmethod
    def make_fixable(self, var_id: Id, t: int) -> None: ...

    @abstractmethod
    def fix(self, var_id: Id, t: int, value: float) -> None: ...

    @abstractmethod
    def unfix(self, var_id: Id, t: int) -> None: ...

    @abstractmethod
    def get_fix_var_dual(self, var_id: Id, t: int) -> float: ...

    @abstractmethod
    def solve(self) -> str: ...

    @abstractmethod
    def get_objective_value(self) -> float: ...

    @abstractmethod
    def get_var_value(self, var_id: Id, t: int) -> float: ...

    @abstractmethod
    def get_con_dual(self, con_id: Id, t: int) -> float: ...

    @abstractmethod
    def get_warmstart(self) -> bool: ...

    @abstractmethod
    def set_warmstart(self, enabled: bool) -> None: ...

    @abstractmethod
    def set_silent(self) -> None: ...

    @abstractmethod
    def unset_silent(self) -> None: ...
