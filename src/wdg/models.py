from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

DifferenceView = Literal["futures_minus_capital", "capital_minus_futures"]

SORT_ORDERS: tuple[str, ...] = ("asc", "desc")
DEFAULT_SORT_BY = "percentageChange"
DEFAULT_SORT_ORDER = "desc"
DIFFERENCE_VIEWS: tuple[str, ...] = ("futures_minus_capital", "capital_minus_futures")

MAX_HISTORY_LIMIT = 500

WIRE_TO_FIELD = {
    "id": "id",
    "tradingSymbol": "trading_symbol",
    "capitalMarketPrice": "capital_market_price",
    "futuresPrice": "futures_price",
    "percentageChange": "percentage_change",
    "lastUpdatedTimestamp": "last_updated_timestamp",
}
FIELD_TO_WIRE = {value: key for key, value in WIRE_TO_FIELD.items()}


class InstrumentCreateRequest(BaseModel):
    # extra keys reach the store validator, which reports read-only and unknown fields
    model_config = ConfigDict(extra="allow")

    tradingSymbol: str
    capitalMarketPrice: float
    futuresPrice: float
    percentageChange: float = 0.0


class InstrumentUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    tradingSymbol: str | None = None
    capitalMarketPrice: float | None = None
    futuresPrice: float | None = None
    percentageChange: float | None = None


def to_store_fields(payload: dict[str, Any]) -> dict[str, Any]:
    return {WIRE_TO_FIELD.get(key, key): value for key, value in payload.items()}


def to_wire_details(details: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [{**detail, "field": FIELD_TO_WIRE.get(str(detail.get("field")), detail.get("field"))} for detail in details]


def build_error_envelope(
    *,
    request_id: str,
    code: str,
    message: str,
    details: list[dict[str, Any]] | None = None,
    retryable: bool = False,
) -> dict[str, Any]:
    return {
        "success": False,
        "requestId": request_id,
        "error": {
            "code": code,
            "message": message,
            "retryable": retryable,
            "source": "WDG",
            "details": details or [],
        },
        "meta": {"timestamp": datetime.now().astimezone().isoformat()},
    }
