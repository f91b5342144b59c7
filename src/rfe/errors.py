from __future__ import annotations


class RfeError(RuntimeError):
    def __init__(self, code: str, message: str) -> None:
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message


class SimulatedFaultError(RfeError):
    def __init__(self, message: str = "Simulated network error") -> None:
        super().__init__("RFE_SIMULATED_FAULT", message)
