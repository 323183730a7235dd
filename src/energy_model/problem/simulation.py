from __future__ import annotations

import logging
import time
from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict

from energy_model.problem.base import Problem, ProblemState
from energy_model.time.probtime import ProbTime

logger = logging.getLogger(__name__)


class SimulationStepResult(BaseModel):
    step: int
    time: datetime
    status: str
    objective: float | None = None
    update_seconds: float
    solve_seconds: float

    model_config = ConfigDict(extra="forbid")


class RollingHorizonSimulator:
    """Re-solves a problem at successive start times.

    The problem is built and its constants set on first use; each step only
    refreshes the time-dependent terms before solving.
    """

    def __init__(self, problem: Problem, start: ProbTime, step: timedelta, steps: int) -> None:
        if steps < 1:
            raise ValueError("steps must be at least 1")
        if step <= timedelta(0):
            raise ValueError("step must be positive")
        self.problem = problem
        self.start = start
        self.step = step
        self.steps = steps

    def run(self) -> list[SimulationStepResult]:
        if self.problem.state is ProblemState.UNBUILT:
            self.problem.initialize()

        results: list[SimulationStepResult] = []
        current = self.start
        for step in range(self.steps):
            results.append(self._run_step(step, current))
            current = current + self.step
        return results

    def _run_step(self, step: int, start: ProbTime) -> SimulationStepResult:
        update_start = time.perf_counter()
        self.problem.update(start)
        update_seconds = time.perf_counter() - update_start

        solve_start = time.perf_counter()
        status = self.problem.solve()
        solve_seconds = time.perf_counter() - solve_start

        objective = self.problem.get_objective_value() if status == "Optimal" else None
        logger.info(
            "Step %s at %s: status=%s objective=%s update=%.3fs solve=%.3fs",
            step,
            start.scenariotime,
            status,
            objective,
            update_seconds,
            solve_seconds,
        )
        return SimulationStepResult(
            step=step,
            time=start.scenariotime,
            status=status,
            objective=objective,
            update_seconds=update_seconds,
            solve_seconds=solve_seconds,
        )
