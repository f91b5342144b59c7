from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TypedDict

DEFAULT_HISTORY_LIMIT = 30
DEFAULT_HISTORY_RETENTION = 500


@dataclass(frozen=True)
class Instrument:
    id: int
    trading_symbol: str
    capital_market_price: float
    futures_price: float
    percentage_change: float
    last_updated_timestamp: datetime


@dataclass(frozen=True)
class PriceHistorySample:
    id: str
    instrument_id: int
    price: float
    timestamp: datetime


class FieldError(TypedDict):
    field: str
    reason: str


CREATE_FIELDS = ("trading_symbol", "capital_market_price", "futures_price", "percentage_change")
PRICE_FIELDS = ("capital_market_price", "futures_price")
READ_ONLY_FIELDS = ("id", "last_updated_timestamp")
