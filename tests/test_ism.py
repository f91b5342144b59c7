from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone
from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from ism.errors import (
    InstrumentFieldsInvalidError,
    InstrumentIdInvalidError,
    InstrumentNotFoundError,
    InstrumentSymbolDuplicatedError,
)
from ism.repository import InstrumentStore
from ism.seed import seed_sample_data
from ism.validators import collect_instrument_errors, parse_instrument_id, validate_instrument_fields


class _Clock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


def _store(clock: _Clock | None = None, **kwargs) -> InstrumentStore:
    clock = clock or _Clock(datetime(2026, 2, 17, 9, 0, tzinfo=timezone.utc))
    return InstrumentStore(now_fn=clock, **kwargs)


def _infy() -> dict[str, object]:
    return {
        "trading_symbol": "INFY",
        "capital_market_price": 1500,
        "futures_price": 1505,
        "percentage_change": 0,
    }


def test_create_then_get_returns_equal_record() -> None:
    clock = _Clock(datetime(2026, 2, 17, 9, 0, tzinfo=timezone.utc))
    store = _store(clock)

    created = store.create(_infy())

    assert store.get(created.id) == created
    assert created.trading_symbol == "INFY"
    assert created.capital_market_price == 1500.0
    assert created.futures_price == 1505.0
    assert created.percentage_change == 0.0
    assert created.last_updated_timestamp == clock.now
    assert store.get_history(created.id) == []


def test_unknown_id_is_absent_not_an_error() -> None:
    store = _store()

    assert store.get(999) is None
    assert store.get_history(999) == []
    assert store.update(999, {"futures_price": 1.0}) is None
    assert store.delete(999) is False


def test_create_delete_then_get_is_absent() -> None:
    store = _store()
    created = store.create(_infy())
    store.append_history(created.id, 1500.0)

    assert store.delete(created.id) is True
    assert store.get(created.id) is None
    assert store.get_history(created.id) == []
    assert store.get_by_symbol("INFY") is None
    assert store.delete(created.id) is False


def test_get_by_symbol_is_exact_and_case_sensitive() -> None:
    store = _store()
    created = store.create(_infy())

    assert store.get_by_symbol("INFY") == created
    assert store.get_by_symbol("infy") is None
    assert store.get_by_symbol("INF") is None


def test_create_rejects_duplicate_symbol() -> None:
    store = _store()
    store.create(_infy())

    with pytest.raises(InstrumentSymbolDuplicatedError):
        store.create({**_infy(), "trading_symbol": " INFY "})


def test_ids_are_unique_and_never_reused() -> None:
    store = _store()
    ids = [
        store.create({**_infy(), "trading_symbol": f"SYM{index}"}).id
        for index in range(50)
    ]
    assert len(set(ids)) == 50

    store.delete(ids[-1])
    replacement = store.create({**_infy(), "trading_symbol": "NEW"})
    assert replacement.id not in ids


def test_update_merges_fields_and_refreshes_timestamp() -> None:
    clock = _Clock(datetime(2026, 2, 17, 9, 0, tzinfo=timezone.utc))
    store = _store(clock)
    created = store.create(_infy())

    clock.advance(30)
    updated = store.update(created.id, {"futures_price": 1510.5})

    assert updated is not None
    assert updated.futures_price == 1510.5
    assert updated.capital_market_price == created.capital_market_price
    assert updated.trading_symbol == "INFY"
    assert updated.last_updated_timestamp == clock.now
    assert store.get(created.id) == updated

    clock.advance(30)
    touched = store.update(created.id, {})
    assert touched is not None
    assert touched.last_updated_timestamp == clock.now


def test_update_rejects_read_only_and_invalid_fields() -> None:
    store = _store()
    created = store.create(_infy())
    store.create({**_infy(), "trading_symbol": "TCS"})

    with pytest.raises(InstrumentFieldsInvalidError) as excinfo:
        store.update(created.id, {"id": 42, "capital_market_price": -1})
    fields = {error["field"] for error in excinfo.value.errors}
    assert fields == {"id", "capital_market_price"}

    with pytest.raises(InstrumentSymbolDuplicatedError):
        store.update(created.id, {"trading_symbol": "TCS"})

    assert store.get(created.id) == created


def test_collect_instrument_errors_returns_structured_list() -> None:
    errors = collect_instrument_errors(
        {
            "trading_symbol": "  ",
            "capital_market_price": -10,
            "futures_price": float("nan"),
            "color": "red",
        }
    )

    assert {"field": "color", "reason": "unknown field"} in errors
    assert {"field": "percentage_change", "reason": "required"} in errors
    assert {"field": "trading_symbol", "reason": "must be a non-empty string"} in errors
    assert {"field": "capital_market_price", "reason": "must be >= 0"} in errors
    assert {"field": "futures_price", "reason": "must be a finite number"} in errors

    assert collect_instrument_errors(_infy()) == []
    assert collect_instrument_errors({"futures_price": 1.0}, partial=True) == []
    assert collect_instrument_errors({"futures_price": None}, partial=True) == [
        {"field": "futures_price", "reason": "must not be null"}
    ]

    with pytest.raises(InstrumentFieldsInvalidError):
        validate_instrument_fields({"trading_symbol": "X", "capital_market_price": True})


def test_history_returns_most_recent_samples_oldest_first() -> None:
    clock = _Clock(datetime(2026, 2, 17, 9, 0, tzinfo=timezone.utc))
    store = _store(clock)
    created = store.create(_infy())

    for index in range(40):
        clock.advance(60)
        store.append_history(created.id, 1500.0 + index)

    history = store.get_history(created.id)
    assert len(history) == 30
    assert [sample.price for sample in history] == [1500.0 + index for index in range(10, 40)]
    timestamps = [sample.timestamp for sample in history]
    assert timestamps == sorted(timestamps)
    assert len({sample.id for sample in history}) == 30

    assert [sample.price for sample in store.get_history(created.id, limit=3)] == [1537.0, 1538.0, 1539.0]
    assert store.get_history(created.id, limit=0) == []


def test_history_keeps_timestamp_order_for_backfilled_samples() -> None:
    clock = _Clock(datetime(2026, 2, 17, 9, 0, tzinfo=timezone.utc))
    store = _store(clock)
    created = store.create(_infy())

    store.append_history(created.id, 3.0)
    store.append_history(created.id, 1.0, timestamp=clock.now - timedelta(minutes=10))
    store.append_history(created.id, 2.0, timestamp=clock.now - timedelta(minutes=5))

    assert [sample.price for sample in store.get_history(created.id)] == [1.0, 2.0, 3.0]


def test_history_retention_truncates_at_write_time() -> None:
    clock = _Clock(datetime(2026, 2, 17, 9, 0, tzinfo=timezone.utc))
    store = _store(clock, history_retention=5)
    created = store.create(_infy())

    for index in range(8):
        clock.advance(1)
        store.append_history(created.id, float(index))

    assert [sample.price for sample in store.get_history(created.id, limit=100)] == [3.0, 4.0, 5.0, 6.0, 7.0]


def test_append_history_requires_existing_instrument() -> None:
    store = _store()

    with pytest.raises(InstrumentNotFoundError):
        store.append_history(7, 100.0)
    assert store.get_history(7) == []


def test_list_all_is_idempotent_without_mutation() -> None:
    store = _store()
    store.create(_infy())
    store.create({**_infy(), "trading_symbol": "TCS"})

    assert store.list_all() == store.list_all()
    assert len(store.list_all()) == 2


def test_parse_instrument_id() -> None:
    assert parse_instrument_id("12") == 12
    assert parse_instrument_id(" 7 ") == 7
    assert parse_instrument_id(3) == 3

    for raw in ("abc", "1.5", "", "12abc", True):
        with pytest.raises(InstrumentIdInvalidError):
            parse_instrument_id(raw)


def test_seed_sample_data_backfills_thirty_points() -> None:
    now = datetime(2026, 2, 17, 9, 0, tzinfo=timezone.utc)
    store = _store(_Clock(now))

    seeded = seed_sample_data(store, rng=random.Random(7), now=now)

    assert [item.trading_symbol for item in seeded] == ["RELIANCE", "TCS"]
    reliance = store.get_by_symbol("RELIANCE")
    assert reliance is not None
    assert reliance.capital_market_price == 2915.45
    assert reliance.futures_price == 2921.10
    assert reliance.percentage_change == 0.84

    for instrument in seeded:
        history = store.get_history(instrument.id)
        assert len(history) == 30
        assert history[-1].timestamp == now
        assert history[0].timestamp == now - timedelta(minutes=5 * 29)
        assert all(abs(sample.price - instrument.capital_market_price) <= 10.0 for sample in history)
