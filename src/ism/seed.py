from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone

from .models import DEFAULT_HISTORY_LIMIT, Instrument
from .repository import InstrumentStore

SAMPLE_INSTRUMENTS: tuple[dict[str, object], ...] = (
    {
        "trading_symbol": "RELIANCE",
        "capital_market_price": 2915.45,
        "futures_price": 2921.10,
        "percentage_change": 0.84,
    },
    {
        "trading_symbol": "TCS",
        "capital_market_price": 3712.20,
        "futures_price": 3715.75,
        "percentage_change": -0.45,
    },
)

BACKFILL_INTERVAL = timedelta(minutes=5)
BACKFILL_PRICE_SPREAD = 10.0


def seed_sample_data(
    store: InstrumentStore,
    *,
    rng: random.Random | None = None,
    now: datetime | None = None,
    history_points: int = DEFAULT_HISTORY_LIMIT,
) -> list[Instrument]:
    rng = rng or random.Random()
    now = now or datetime.now(timezone.utc)

    seeded: list[Instrument] = []
    for fields in SAMPLE_INSTRUMENTS:
        instrument = store.create(fields)
        for index in range(history_points - 1, -1, -1):
            price = instrument.capital_market_price + rng.uniform(-BACKFILL_PRICE_SPREAD, BACKFILL_PRICE_SPREAD)
            store.append_history(
                instrument.id,
                max(0.0, price),
                timestamp=now - BACKFILL_INTERVAL * index,
            )
        seeded.append(instrument)
    return seeded
