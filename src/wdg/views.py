from __future__ import annotations

from datetime import datetime
from typing import Any

from ism.models import Instrument, PriceHistorySample

from .models import DifferenceView


def compute_price_difference(instrument: Instrument) -> float:
    return instrument.futures_price - instrument.capital_market_price


def compute_display_difference(instrument: Instrument, view: DifferenceView = "futures_minus_capital") -> float:
    if view == "capital_minus_futures":
        return instrument.capital_market_price - instrument.futures_price
    return compute_price_difference(instrument)


def format_relative_time(then: datetime, now: datetime) -> str:
    seconds = max(0, int((now - then).total_seconds()))
    if seconds < 60:
        return f"{seconds} sec ago"

    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes} min ago"

    hours = minutes // 60
    if hours < 24:
        return f"{hours} hour{'' if hours == 1 else 's'} ago"

    days = hours // 24
    return f"{days} day{'' if days == 1 else 's'} ago"


def to_sample_payload(sample: PriceHistorySample) -> dict[str, Any]:
    return {
        "id": sample.id,
        "instrumentId": sample.instrument_id,
        "price": sample.price,
        "timestamp": sample.timestamp.isoformat(),
    }


def to_instrument_payload(
    instrument: Instrument,
    *,
    history: list[PriceHistorySample],
    now: datetime,
    view: DifferenceView = "futures_minus_capital",
) -> dict[str, Any]:
    return {
        "id": instrument.id,
        "tradingSymbol": instrument.trading_symbol,
        "capitalMarketPrice": instrument.capital_market_price,
        "futuresPrice": instrument.futures_price,
        "percentageChange": instrument.percentage_change,
        "lastUpdatedTimestamp": instrument.last_updated_timestamp.isoformat(),
        "lastUpdatedText": format_relative_time(instrument.last_updated_timestamp, now),
        "priceDifference": compute_price_difference(instrument),
        "displayDifference": compute_display_difference(instrument, view),
        "priceHistory": [to_sample_payload(sample) for sample in history],
    }
