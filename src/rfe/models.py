from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal

PercentageChangeMode = Literal["random_walk", "derived"]
LoopState = Literal["RUNNING", "STOPPED"]

PRICE_MOVE_FRACTION = 0.02
PERCENTAGE_MOVE_POINTS = 1.0


@dataclass(frozen=True)
class RefreshConfig:
    price_move_fraction: float = PRICE_MOVE_FRACTION
    percentage_move_points: float = PERCENTAGE_MOVE_POINTS
    percentage_change_mode: PercentageChangeMode = "random_walk"

    def __post_init__(self) -> None:
        if self.price_move_fraction < 0:
            raise ValueError("price_move_fraction must be >= 0")
        if self.percentage_move_points < 0:
            raise ValueError("percentage_move_points must be >= 0")
        if self.percentage_change_mode not in ("random_walk", "derived"):
            raise ValueError(f"unsupported percentage_change_mode: {self.percentage_change_mode}")


@dataclass(frozen=True)
class FaultInjectionConfig:
    failure_probability: float = 0.0
    delay_seconds: float = 0.0

    def __post_init__(self) -> None:
        if not 0.0 <= self.failure_probability <= 1.0:
            raise ValueError("failure_probability must be between 0 and 1")
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds must be >= 0")

    @property
    def enabled(self) -> bool:
        return self.failure_probability > 0 or self.delay_seconds > 0


@dataclass(frozen=True)
class TickDeltas:
    capital_market: float
    futures: float
    percentage_change: float


@dataclass
class RefreshCycleResult:
    cycle_id: str
    started_at: datetime
    state: LoopState
    instrument_count: int
    error: str | None = None
