from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable

from ism.errors import (
    InstrumentNotFoundError,
    InstrumentSymbolDuplicatedError,
    IsmError,
    IsmValidationError,
    StorageUnavailableError,
)
from ism.models import DEFAULT_HISTORY_LIMIT, Instrument
from ism.repository import InstrumentStore
from ism.validators import parse_instrument_id
from rfe.auto_refresh import AutoRefreshLoop
from rfe.faults import FaultInjector
from rfe.service import RefreshEngine

from .errors import WdgQueryInvalidError
from .models import (
    DEFAULT_SORT_BY,
    DEFAULT_SORT_ORDER,
    DIFFERENCE_VIEWS,
    MAX_HISTORY_LIMIT,
    SORT_ORDERS,
    DifferenceView,
    to_store_fields,
)
from .views import to_instrument_payload, to_sample_payload

_SORT_KEYS: dict[str, Callable[[Instrument], Any]] = {
    "percentageChange": lambda item: item.percentage_change,
    "capitalMarketPrice": lambda item: item.capital_market_price,
    "futuresPrice": lambda item: item.futures_price,
    "tradingSymbol": lambda item: item.trading_symbol.lower(),
}


def filter_by_symbol(instruments: list[Instrument], search: str | None) -> list[Instrument]:
    query = (search or "").strip().lower()
    if not query:
        return list(instruments)
    return [item for item in instruments if query in item.trading_symbol.lower()]


def sort_instruments(
    instruments: list[Instrument],
    sort_by: str = DEFAULT_SORT_BY,
    sort_order: str = DEFAULT_SORT_ORDER,
) -> list[Instrument]:
    if sort_order not in SORT_ORDERS:
        raise WdgQueryInvalidError(field="sortOrder", value=sort_order)
    if sort_by not in _SORT_KEYS:
        raise WdgQueryInvalidError(field="sortBy", value=sort_by)
    return sorted(instruments, key=_SORT_KEYS[sort_by], reverse=sort_order == "desc")


class WdgService:
    def __init__(
        self,
        *,
        store: InstrumentStore,
        engine: RefreshEngine,
        fault_injector: FaultInjector | None = None,
        auto_refresh: AutoRefreshLoop | None = None,
        now_fn: Callable[[], datetime] | None = None,
    ) -> None:
        self._logger = logging.getLogger("watchdash.wdg")
        self.store = store
        self.engine = engine
        self.fault_injector = fault_injector
        self.auto_refresh = auto_refresh
        self._now_fn = now_fn or (lambda: datetime.now(timezone.utc))

    def list_instruments(
        self,
        *,
        search: str | None = None,
        sort_by: str = DEFAULT_SORT_BY,
        sort_order: str = DEFAULT_SORT_ORDER,
        view: str = "futures_minus_capital",
    ) -> list[dict[str, Any]]:
        difference_view = self._difference_view(view)
        with self.store.locked():
            instruments = sort_instruments(filter_by_symbol(self.store.list_all(), search), sort_by, sort_order)
            return [self._payload(instrument, difference_view) for instrument in instruments]

    def get_instrument(self, raw_id: object, *, view: str = "futures_minus_capital") -> dict[str, Any]:
        instrument_id = parse_instrument_id(raw_id)
        difference_view = self._difference_view(view)
        with self.store.locked():
            return self._payload(self._require(instrument_id), difference_view)

    def refresh(self, *, view: str = "futures_minus_capital") -> list[dict[str, Any]]:
        difference_view = self._difference_view(view)
        if self.fault_injector is not None:
            self.fault_injector.before_refresh()

        refreshed = self.engine.refresh_all()
        with self.store.locked():
            return [self._payload(instrument, difference_view) for instrument in refreshed]

    def create_instrument(self, payload: dict[str, Any]) -> dict[str, Any]:
        instrument = self.store.create(to_store_fields(payload))
        self._logger.info(
            "Instrument created: id=%s symbol=%s",
            instrument.id,
            instrument.trading_symbol,
        )
        with self.store.locked():
            return self._payload(instrument, "futures_minus_capital")

    def update_instrument(self, raw_id: object, payload: dict[str, Any]) -> dict[str, Any]:
        instrument_id = parse_instrument_id(raw_id)
        updated = self.store.update(instrument_id, to_store_fields(payload))
        if updated is None:
            raise InstrumentNotFoundError(instrument_id)
        self._logger.info("Instrument updated: id=%s fields=%s", instrument_id, sorted(payload))
        with self.store.locked():
            return self._payload(updated, "futures_minus_capital")

    def delete_instrument(self, raw_id: object) -> dict[str, Any]:
        instrument_id = parse_instrument_id(raw_id)
        if not self.store.delete(instrument_id):
            raise InstrumentNotFoundError(instrument_id)
        self._logger.info("Instrument deleted: id=%s", instrument_id)
        return {"deleted": True, "id": instrument_id}

    def get_history(self, raw_id: object, *, limit: int = DEFAULT_HISTORY_LIMIT) -> list[dict[str, Any]]:
        instrument_id = parse_instrument_id(raw_id)
        if not 1 <= limit <= MAX_HISTORY_LIMIT:
            raise WdgQueryInvalidError(field="limit", value=limit)
        with self.store.locked():
            self._require(instrument_id)
            return [to_sample_payload(sample) for sample in self.store.get_history(instrument_id, limit)]

    def health(self) -> dict[str, Any]:
        return {
            "status": "ok",
            "instrumentCount": len(self.store.list_all()),
            "refreshCycles": self.engine.cycles_total,
            "autoRefresh": self.auto_refresh.state if self.auto_refresh is not None else "DISABLED",
        }

    def _require(self, instrument_id: int) -> Instrument:
        instrument = self.store.get(instrument_id)
        if instrument is None:
            raise InstrumentNotFoundError(instrument_id)
        return instrument

    def _payload(self, instrument: Instrument, view: DifferenceView) -> dict[str, Any]:
        return to_instrument_payload(
            instrument,
            history=self.store.get_history(instrument.id, DEFAULT_HISTORY_LIMIT),
            now=self._now_fn(),
            view=view,
        )

    @staticmethod
    def _difference_view(view: str) -> DifferenceView:
        if view not in DIFFERENCE_VIEWS:
            raise WdgQueryInvalidError(field="view", value=view)
        return view  # type: ignore[return-value]


def map_validation_error(error: IsmValidationError) -> tuple[int, str]:
    if isinstance(error, InstrumentSymbolDuplicatedError):
        return 409, "Trading symbol already exists"
    if error.code == "ISM_INSTRUMENT_ID_INVALID":
        return 400, "Invalid instrument ID"
    return 400, "Request validation failed"


def map_runtime_error(error: IsmError) -> tuple[int, str, bool]:
    if isinstance(error, InstrumentNotFoundError):
        return 404, "Instrument not found", False
    if isinstance(error, StorageUnavailableError):
        return 503, "Instrument storage is unavailable", True
    return 500, "Request failed", False
