from .auto_refresh import AutoRefreshLoop
from .errors import RfeError, SimulatedFaultError
from .faults import FaultInjector
from .models import FaultInjectionConfig, RefreshConfig, RefreshCycleResult, TickDeltas
from .rules import apply_tick, draw_tick_deltas
from .service import RefreshEngine

__all__ = [
    "AutoRefreshLoop",
    "FaultInjectionConfig",
    "FaultInjector",
    "RefreshConfig",
    "RefreshCycleResult",
    "RefreshEngine",
    "RfeError",
    "SimulatedFaultError",
    "TickDeltas",
    "apply_tick",
    "draw_tick_deltas",
]
