from __future__ import annotations

import math
import re
from typing import Any, Mapping

from .errors import InstrumentFieldsInvalidError, InstrumentIdInvalidError
from .models import CREATE_FIELDS, PRICE_FIELDS, READ_ONLY_FIELDS, FieldError

INSTRUMENT_ID_PATTERN = re.compile(r"^[+-]?[0-9]+$")
MAX_SYMBOL_LENGTH = 32


def parse_instrument_id(raw: object) -> int:
    if isinstance(raw, bool):
        raise InstrumentIdInvalidError(field="id", value=raw)
    if isinstance(raw, int):
        return raw
    text = str(raw).strip()
    if not INSTRUMENT_ID_PATTERN.match(text):
        raise InstrumentIdInvalidError(field="id", value=raw)
    return int(text)


def normalize_instrument_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    normalized = dict(fields)
    symbol = normalized.get("trading_symbol")
    if isinstance(symbol, str):
        normalized["trading_symbol"] = symbol.strip()
    return normalized


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def collect_instrument_errors(fields: Mapping[str, Any], *, partial: bool = False) -> list[FieldError]:
    errors: list[FieldError] = []

    for key in fields:
        if key in READ_ONLY_FIELDS:
            errors.append({"field": key, "reason": "read-only"})
        elif key not in CREATE_FIELDS:
            errors.append({"field": key, "reason": "unknown field"})

    for key in CREATE_FIELDS:
        if partial and key in fields and fields[key] is None:
            errors.append({"field": key, "reason": "must not be null"})
        elif not partial and fields.get(key) is None:
            errors.append({"field": key, "reason": "required"})

    if fields.get("trading_symbol") is not None:
        symbol = fields["trading_symbol"]
        if not isinstance(symbol, str) or not symbol.strip():
            errors.append({"field": "trading_symbol", "reason": "must be a non-empty string"})
        elif len(symbol.strip()) > MAX_SYMBOL_LENGTH:
            errors.append({"field": "trading_symbol", "reason": f"must be at most {MAX_SYMBOL_LENGTH} characters"})

    for key in PRICE_FIELDS:
        if fields.get(key) is None:
            continue
        value = fields[key]
        if not _is_number(value) or not math.isfinite(value):
            errors.append({"field": key, "reason": "must be a finite number"})
        elif value < 0:
            errors.append({"field": key, "reason": "must be >= 0"})

    if fields.get("percentage_change") is not None:
        value = fields["percentage_change"]
        if not _is_number(value) or not math.isfinite(value):
            errors.append({"field": "percentage_change", "reason": "must be a finite number"})

    return errors


def validate_instrument_fields(fields: Mapping[str, Any], *, partial: bool = False) -> None:
    errors = collect_instrument_errors(fields, partial=partial)
    if errors:
        raise InstrumentFieldsInvalidError(errors)
