from __future__ import annotations

from ism.errors import IsmValidationError


class WdgQueryInvalidError(IsmValidationError):
    def __init__(self, field: str, value: object) -> None:
        super().__init__("WDG_QUERY_INVALID", field, value)
