from __future__ import annotations

import logging
import random
import threading

from ism.models import Instrument
from ism.repository import InstrumentStore

from .models import RefreshConfig
from .rules import apply_tick, draw_tick_deltas


class RefreshEngine:
    """Applies one synthetic market tick to every instrument in the store.

    Concurrent callers are serialized. Each instrument's new prices and its new
    history sample are written under the store lock so readers never see one
    without the other. There is no atomicity across instruments: a failure
    partway through leaves the earlier instruments refreshed.
    """

    def __init__(
        self,
        store: InstrumentStore,
        *,
        rng: random.Random | None = None,
        config: RefreshConfig | None = None,
    ) -> None:
        self.store = store
        self.config = config or RefreshConfig()
        self._rng = rng or random.Random()
        self._refresh_lock = threading.Lock()
        self._logger = logging.getLogger("watchdash.rfe")
        self.cycles_total = 0

    def refresh_all(self) -> list[Instrument]:
        with self._refresh_lock:
            instruments = self.store.list_all()
            for instrument in instruments:
                self._refresh_one(instrument.id)
            self.cycles_total += 1
            self._logger.info(
                "Refresh cycle completed: cycle=%s instruments=%s",
                self.cycles_total,
                len(instruments),
            )
            return self.store.list_all()

    def _refresh_one(self, instrument_id: int) -> None:
        with self.store.locked():
            # re-read under the lock; the instrument may have been deleted since listing
            current = self.store.get(instrument_id)
            if current is None:
                return
            deltas = draw_tick_deltas(current, self._rng, self.config)
            updated = self.store.update(instrument_id, apply_tick(current, deltas, self.config))
            if updated is None:
                return
            self.store.append_history(instrument_id, updated.capital_market_price)
