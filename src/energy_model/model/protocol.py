"""Capabilities shared by compiled model objects."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from energy_model.problem.base import Problem
    from energy_model.time.probtime import ProbTime


@runtime_checkable
class Assemblable(Protocol):
    def assemble(self) -> bool: ...


@runtime_checkable
class ProblemParticipant(Protocol):
    def build(self, problem: Problem) -> None: ...

    def set_constants(self, problem: Problem) -> None: ...

    def update(self, problem: Problem, start: ProbTime) -> None: ...
