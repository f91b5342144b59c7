from __future__ import annotations

import bisect
import itertools
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, ContextManager, Mapping
from uuid import uuid4

from .errors import InstrumentNotFoundError, InstrumentSymbolDuplicatedError
from .models import (
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_HISTORY_RETENTION,
    PRICE_FIELDS,
    Instrument,
    PriceHistorySample,
)
from .validators import normalize_instrument_fields, validate_instrument_fields


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _coerce_numbers(fields: Mapping[str, Any]) -> dict[str, Any]:
    coerced = dict(fields)
    for key in (*PRICE_FIELDS, "percentage_change"):
        if key in coerced:
            coerced[key] = float(coerced[key])
    return coerced


class InstrumentStore:
    """In-memory instruments and their price history series.

    Both collections sit behind a single re-entrant lock, so an instrument and
    its history are always removed together and callers can group several
    operations with ``locked()``.
    """

    def __init__(
        self,
        *,
        history_retention: int = DEFAULT_HISTORY_RETENTION,
        now_fn: Callable[[], datetime] | None = None,
    ) -> None:
        if history_retention < 1:
            raise ValueError("history_retention must be >= 1")
        self.history_retention = history_retention
        self._now_fn = now_fn or _utc_now
        self._instruments: dict[int, Instrument] = {}
        self._history: dict[int, list[PriceHistorySample]] = {}
        self._ids = itertools.count(1)
        self._lock = threading.RLock()

    def locked(self) -> ContextManager[Any]:
        return self._lock

    def list_all(self) -> list[Instrument]:
        with self._lock:
            return list(self._instruments.values())

    def get(self, instrument_id: int) -> Instrument | None:
        with self._lock:
            return self._instruments.get(instrument_id)

    def get_by_symbol(self, symbol: str) -> Instrument | None:
        with self._lock:
            return self._find_by_symbol(symbol)

    def create(self, fields: Mapping[str, Any]) -> Instrument:
        normalized = normalize_instrument_fields(fields)
        validate_instrument_fields(normalized)
        values = _coerce_numbers(normalized)

        with self._lock:
            symbol = values["trading_symbol"]
            if self._find_by_symbol(symbol) is not None:
                raise InstrumentSymbolDuplicatedError(field="trading_symbol", value=symbol)

            instrument = Instrument(
                id=next(self._ids),
                trading_symbol=symbol,
                capital_market_price=values["capital_market_price"],
                futures_price=values["futures_price"],
                percentage_change=values["percentage_change"],
                last_updated_timestamp=self._now_fn(),
            )
            self._instruments[instrument.id] = instrument
            self._history[instrument.id] = []
            return instrument

    def update(self, instrument_id: int, changes: Mapping[str, Any]) -> Instrument | None:
        normalized = normalize_instrument_fields(changes)
        validate_instrument_fields(normalized, partial=True)
        values = _coerce_numbers(normalized)

        with self._lock:
            existing = self._instruments.get(instrument_id)
            if existing is None:
                return None

            symbol = values.get("trading_symbol")
            if symbol is not None and symbol != existing.trading_symbol:
                if self._find_by_symbol(symbol) is not None:
                    raise InstrumentSymbolDuplicatedError(field="trading_symbol", value=symbol)

            updated = replace(existing, **values, last_updated_timestamp=self._now_fn())
            self._instruments[instrument_id] = updated
            return updated

    def delete(self, instrument_id: int) -> bool:
        with self._lock:
            existed = self._instruments.pop(instrument_id, None) is not None
            self._history.pop(instrument_id, None)
            return existed

    def get_history(self, instrument_id: int, limit: int = DEFAULT_HISTORY_LIMIT) -> list[PriceHistorySample]:
        if limit <= 0:
            return []
        with self._lock:
            series = self._history.get(instrument_id, [])
            return list(series[-limit:])

    def append_history(
        self,
        instrument_id: int,
        price: float,
        *,
        timestamp: datetime | None = None,
    ) -> PriceHistorySample:
        sample = PriceHistorySample(
            id=uuid4().hex,
            instrument_id=instrument_id,
            price=float(price),
            timestamp=timestamp or self._now_fn(),
        )

        with self._lock:
            if instrument_id not in self._instruments:
                raise InstrumentNotFoundError(instrument_id)

            series = self._history.setdefault(instrument_id, [])
            if not series or sample.timestamp >= series[-1].timestamp:
                series.append(sample)
            else:
                bisect.insort(series, sample, key=lambda item: item.timestamp)

            overflow = len(series) - self.history_retention
            if overflow > 0:
                del series[:overflow]
            return sample

    def _find_by_symbol(self, symbol: str) -> Instrument | None:
        for instrument in self._instruments.values():
            if instrument.trading_symbol == symbol:
                return instrument
        return None
