from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Callable

from .models import LoopState, RefreshCycleResult
from .service import RefreshEngine


class AutoRefreshLoop:
    def __init__(
        self,
        *,
        engine: RefreshEngine,
        interval_seconds: float,
        now_fn: Callable[[], datetime] | None = None,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._engine = engine
        self.interval_seconds = interval_seconds
        self._now_fn = now_fn or (lambda: datetime.now(timezone.utc))
        self._logger = logging.getLogger("watchdash.rfe.auto_refresh")
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._cycle_seq = 0

        self.state: LoopState = "STOPPED"
        self.last_result: RefreshCycleResult | None = None

    def run_cycle(self) -> RefreshCycleResult:
        self._cycle_seq += 1
        started_at = self._now_fn()
        cycle_id = f"refresh-{started_at.strftime('%Y%m%d-%H%M%S')}-{self._cycle_seq:03d}"

        try:
            instruments = self._engine.refresh_all()
        except Exception as exc:
            self._logger.exception("Auto refresh cycle failed: cycle_id=%s", cycle_id)
            result = RefreshCycleResult(
                cycle_id=cycle_id,
                started_at=started_at,
                state=self.state,
                instrument_count=0,
                error=str(exc),
            )
        else:
            result = RefreshCycleResult(
                cycle_id=cycle_id,
                started_at=started_at,
                state=self.state,
                instrument_count=len(instruments),
            )
        self.last_result = result
        return result

    def run_forever(self, *, max_cycles: int | None = None) -> list[RefreshCycleResult]:
        self.state = "RUNNING"
        cycles: list[RefreshCycleResult] = []
        try:
            while not self._stop_event.is_set():
                if max_cycles is not None and len(cycles) >= max_cycles:
                    break
                cycles.append(self.run_cycle())
                if self._stop_event.wait(self.interval_seconds):
                    break
        finally:
            self.state = "STOPPED"
        return cycles

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self.state = "RUNNING"
        self._thread = threading.Thread(target=self.run_forever, name="watchdash-auto-refresh", daemon=True)
        self._thread.start()
        self._logger.info("Auto refresh loop started: interval_seconds=%s", self.interval_seconds)

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
        self._thread = None
        self.state = "STOPPED"
        self._logger.info("Auto refresh loop stopped")
