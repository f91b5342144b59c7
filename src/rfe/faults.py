from __future__ import annotations

import logging
import random
import time
from typing import Callable

from .errors import SimulatedFaultError
from .models import FaultInjectionConfig


class FaultInjector:
    """Models an unreliable upstream feed in front of a refresh cycle."""

    def __init__(
        self,
        config: FaultInjectionConfig,
        *,
        rng: random.Random | None = None,
        sleep_fn: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self._rng = rng or random.Random()
        self._sleep_fn = sleep_fn
        self._logger = logging.getLogger("watchdash.rfe.faults")

    def before_refresh(self) -> None:
        if not self.config.enabled:
            return
        if self.config.failure_probability > 0 and self._rng.random() < self.config.failure_probability:
            self._logger.warning(
                "Injecting simulated refresh fault: failure_probability=%s",
                self.config.failure_probability,
            )
            raise SimulatedFaultError()
        if self.config.delay_seconds > 0:
            self._sleep_fn(self.config.delay_seconds)
