from __future__ import annotations

from .models import FieldError


class IsmValidationError(ValueError):
    def __init__(self, code: str, field: str, value: object) -> None:
        super().__init__(f"{code}: field={field}, value={value}")
        self.code = code
        self.field = field
        self.value = value

    @property
    def details(self) -> list[FieldError]:
        return [{"field": self.field, "reason": str(self.value)}]


class InstrumentIdInvalidError(IsmValidationError):
    def __init__(self, field: str, value: object) -> None:
        super().__init__("ISM_INSTRUMENT_ID_INVALID", field, value)


class InstrumentFieldsInvalidError(IsmValidationError):
    def __init__(self, errors: list[FieldError]) -> None:
        super().__init__("ISM_INSTRUMENT_FIELDS_INVALID", ",".join(error["field"] for error in errors), errors)
        self.errors = errors

    @property
    def details(self) -> list[FieldError]:
        return list(self.errors)


class InstrumentSymbolDuplicatedError(IsmValidationError):
    def __init__(self, field: str, value: object) -> None:
        super().__init__("ISM_SYMBOL_DUPLICATED", field, value)


class IsmError(RuntimeError):
    def __init__(self, code: str, message: str) -> None:
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message


class InstrumentNotFoundError(IsmError):
    def __init__(self, instrument_id: int) -> None:
        super().__init__("ISM_INSTRUMENT_NOT_FOUND", f"instrument {instrument_id} does not exist")
        self.instrument_id = instrument_id


class StorageUnavailableError(IsmError):
    """Raised by persistent backends when the underlying storage cannot be reached."""

    def __init__(self, message: str = "instrument storage is unavailable") -> None:
        super().__init__("ISM_STORAGE_UNAVAILABLE", message)
