from .errors import (
    InstrumentFieldsInvalidError,
    InstrumentIdInvalidError,
    InstrumentNotFoundError,
    InstrumentSymbolDuplicatedError,
    IsmError,
    IsmValidationError,
    StorageUnavailableError,
)
from .models import DEFAULT_HISTORY_LIMIT, FieldError, Instrument, PriceHistorySample
from .repository import InstrumentStore
from .seed import seed_sample_data
from .validators import collect_instrument_errors, parse_instrument_id, validate_instrument_fields

__all__ = [
    "DEFAULT_HISTORY_LIMIT",
    "FieldError",
    "Instrument",
    "InstrumentStore",
    "PriceHistorySample",
    "seed_sample_data",
    "collect_instrument_errors",
    "parse_instrument_id",
    "validate_instrument_fields",
    "IsmError",
    "IsmValidationError",
    "InstrumentFieldsInvalidError",
    "InstrumentIdInvalidError",
    "InstrumentNotFoundError",
    "InstrumentSymbolDuplicatedError",
    "StorageUnavailableError",
]
