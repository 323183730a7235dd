"""Problem times pairing a data time with a scenario time."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

CONSTANT_DATETIME = datetime(2022, 10, 7)


@dataclass(frozen=True, slots=True)
class ConstantTime:
    """Time used when evaluating terms that do not depend on time."""

    @property
    def datatime(self) -> datetime:
        return CONSTANT_DATETIME

    @property
    def scenariotime(self) -> datetime:
        return CONSTANT_DATETIME

    def __add__(self, delta: timedelta) -> ConstantTime:
        return self


@dataclass(frozen=True, slots=True)
class TwoTime:
    datatime: datetime
    scenariotime: datetime

    def __add__(self, delta: timedelta) -> TwoTime:
        return TwoTime(self.datatime + delta, self.scenariotime + delta)


@dataclass(frozen=True, slots=True)
class FixedDataTwoTime:
    """Advances the scenario time while the data time stays fixed."""

    datatime: datetime
    scenariotime: datetime

    def __add__(self, delta: timedelta) -> FixedDataTwoTime:
        return FixedDataTwoTime(self.datatime, self.scenariotime + delta)


ProbTime = ConstantTime | TwoTime | FixedDataTwoTime
