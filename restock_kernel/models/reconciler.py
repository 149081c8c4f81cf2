"""Reconciler configuration and per-pass report."""

from enum import Enum
from typing import List

from pydantic import BaseModel, Field


class TimeUnit(str, Enum):
    SECONDS = "seconds"
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"

    @property
    def millis(self) -> int:
        return _UNIT_MILLIS[self]


_UNIT_MILLIS = {
    TimeUnit.SECONDS: 1000,
    TimeUnit.MINUTES: 60 * 1000,
    TimeUnit.HOURS: 60 * 60 * 1000,
    TimeUnit.DAYS: 24 * 60 * 60 * 1000,
}


class RestockConfig(BaseModel):
    """Configuration for the reset engine."""

    reset_time_value: int = Field(gt=0, default=7)
    reset_time_unit: TimeUnit = TimeUnit.DAYS
    only_reset_when_empty: bool = True
    include_secondary_containers: bool = False
    pass_interval_seconds: float = Field(gt=0, default=1.0)
    ticks_per_pass: int = Field(gt=0, default=20)        # host runs 20 ticks/s
    instance_search_radius: int = Field(ge=0, default=2)
    data_file_name: str = "restock_data.json"

    @property
    def cooldown_ms(self) -> int:
        """Minimum idle time before a resource is eligible for reset."""
        return self.reset_time_value * self.reset_time_unit.millis


class PassReport(BaseModel):
    """What a single reconciliation pass did."""

    now: int
    skipped: bool = False                   # no session established
    scanned: int = 0
    resets: int = 0
    evicted: List[str] = []
    inactive: int = 0
    failures: int = 0
    persisted: bool = False
    save_failed: bool = False

    @property
    def changed(self) -> bool:
        return self.resets > 0 or bool(self.evicted)
