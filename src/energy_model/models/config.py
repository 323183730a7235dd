from __future__ import annotations

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CompileConfig(BaseModel):
    # Pre-compilation check that every string reference names an element.
    validate_references: bool = True
    # Post-compilation check of the assembled object graph.
    validate_graph: bool = True

    model_config = ConfigDict(extra="forbid")


class SolverConfig(BaseModel):
    msg: bool = False
    time_limit_seconds: float | None = Field(default=None, gt=0)
    warmstart: bool = False

    model_config = ConfigDict(extra="forbid")


class SimulationConfig(BaseModel):
    start: datetime = datetime(2025, 1, 1)
    # Defaults to ``start``; set it to replay weather years against another data year.
    scenario_start: datetime | None = None
    step_hours: float = Field(default=24.0, gt=0)
    steps: int = Field(default=1, ge=1)

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _default_scenario_start(self) -> SimulationConfig:
        if self.scenario_start is None:
            self.scenario_start = self.start
        return self


class AppConfig(BaseModel):
    datasets: list[Path] = Field(default_factory=list)
    compile: CompileConfig = Field(default_factory=CompileConfig)
    solver: SolverConfig = Field(default_factory=SolverConfig)
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)

    model_config = ConfigDict(extra="forbid")
