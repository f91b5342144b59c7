from __future__ import annotations

import logging
import os
import random
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from rfe.models import FaultInjectionConfig, RefreshConfig
from wdg.bootstrap import create_app


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _log_path() -> Path:
    log_dir = os.getenv("WATCHDASH_LOG_DIR", "").strip()
    return (Path(log_dir) if log_dir else Path("runtime") / "logs") / "watchdash.log"


def _daily_file_handler(log_path: Path) -> TimedRotatingFileHandler:
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(filename=log_path, when="midnight", backupCount=30, encoding="utf-8")
    handler.suffix = "%Y-%m-%d"
    return handler


def _configure_logging() -> None:
    level = getattr(logging, os.getenv("WATCHDASH_LOG_LEVEL", "INFO").upper(), logging.INFO)
    log_path = _log_path()
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    missing: list[logging.Handler] = []
    if not any(type(handler) is logging.StreamHandler for handler in root_logger.handlers):
        missing.append(logging.StreamHandler())
    if not any(getattr(handler, "baseFilename", "") == str(log_path.resolve()) for handler in root_logger.handlers):
        missing.append(_daily_file_handler(log_path))

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in missing:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)


def _env_float(name: str, default: float | None) -> float | None:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    return float(raw)


def _build_app():
    seed = os.getenv("WATCHDASH_RANDOM_SEED", "").strip()
    rng = random.Random(int(seed)) if seed else random.Random()
    fault_rng = random.Random(int(seed) + 1) if seed else random.Random()

    return create_app(
        fault_injection=FaultInjectionConfig(
            failure_probability=_env_float("WATCHDASH_REFRESH_FAILURE_RATE", 0.1),
            delay_seconds=_env_float("WATCHDASH_REFRESH_DELAY_SECONDS", 1.0),
        ),
        refresh_config=RefreshConfig(percentage_change_mode=os.getenv("WATCHDASH_PERCENTAGE_MODE", "random_walk")),
        rng=rng,
        fault_rng=fault_rng,
        auto_refresh_interval_seconds=_env_float("WATCHDASH_AUTO_REFRESH_SECONDS", None),
    )


_configure_logging()

app = _build_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app:app",
        host=os.getenv("WATCHDASH_HOST", "127.0.0.1"),
        port=int(os.getenv("WATCHDASH_PORT", "8000")),
        reload=False,
    )
