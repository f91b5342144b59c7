from __future__ import annotations

import logging
import random
import time
from datetime import datetime
from typing import Callable
from uuid import uuid4

from fastapi import FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ism.errors import InstrumentNotFoundError, IsmError, IsmValidationError
from ism.models import DEFAULT_HISTORY_LIMIT, DEFAULT_HISTORY_RETENTION
from ism.repository import InstrumentStore
from ism.seed import seed_sample_data as seed_store
from rfe.auto_refresh import AutoRefreshLoop
from rfe.errors import SimulatedFaultError
from rfe.faults import FaultInjector
from rfe.models import FaultInjectionConfig, RefreshConfig
from rfe.service import RefreshEngine

from .models import (
    DEFAULT_SORT_BY,
    DEFAULT_SORT_ORDER,
    InstrumentCreateRequest,
    InstrumentUpdateRequest,
    build_error_envelope,
    to_wire_details,
)
from .service import WdgService, map_runtime_error, map_validation_error

REFRESH_FAILED_CODE = "WDG_REFRESH_FAILED"
REFRESH_FAILED_MESSAGE = "Failed to refresh instrument data"


def _request_id(request: Request, header_value: str | None) -> str:
    if header_value:
        return header_value
    prior = getattr(request.state, "request_id", None)
    if prior:
        return prior
    header = request.headers.get("X-Request-Id")
    request.state.request_id = header or f"req-{uuid4().hex[:12]}"
    return request.state.request_id


def create_app(
    *,
    store: InstrumentStore | None = None,
    fault_injection: FaultInjectionConfig | None = None,
    refresh_config: RefreshConfig | None = None,
    rng: random.Random | None = None,
    fault_rng: random.Random | None = None,
    seed_sample_data: bool = True,
    history_retention: int = DEFAULT_HISTORY_RETENTION,
    auto_refresh_interval_seconds: float | None = None,
    now_fn: Callable[[], datetime] | None = None,
    sleep_fn: Callable[[float], None] = time.sleep,
) -> FastAPI:
    logger = logging.getLogger("watchdash.wdg")
    app = FastAPI(title="Watchdash", version="0.1.0")

    rng = rng or random.Random()
    if store is None:
        store = InstrumentStore(history_retention=history_retention, now_fn=now_fn)
        if seed_sample_data:
            seed_store(store, rng=rng, now=now_fn() if now_fn else None)

    engine = RefreshEngine(store, rng=rng, config=refresh_config)
    fault_injector = FaultInjector(fault_injection or FaultInjectionConfig(), rng=fault_rng, sleep_fn=sleep_fn)
    auto_refresh = None
    if auto_refresh_interval_seconds:
        auto_refresh = AutoRefreshLoop(engine=engine, interval_seconds=auto_refresh_interval_seconds, now_fn=now_fn)
    service = WdgService(
        store=store,
        engine=engine,
        fault_injector=fault_injector,
        auto_refresh=auto_refresh,
        now_fn=now_fn,
    )
    app.state.wdg_service = service

    @app.exception_handler(IsmValidationError)
    async def _handle_validation(request: Request, exc: IsmValidationError) -> JSONResponse:
        request_id = _request_id(request, None)
        status_code, message = map_validation_error(exc)
        payload = build_error_envelope(
            request_id=request_id,
            code=exc.code,
            message=message,
            details=to_wire_details(exc.details),
        )
        return JSONResponse(status_code=status_code, content=payload)

    @app.exception_handler(IsmError)
    async def _handle_ism_error(request: Request, exc: IsmError) -> JSONResponse:
        request_id = _request_id(request, None)
        status_code, message, retryable = map_runtime_error(exc)
        if isinstance(exc, InstrumentNotFoundError):
            logger.info("Instrument not found: id=%s request_id=%s", exc.instrument_id, request_id)
        else:
            logger.error("Store failure: code=%s request_id=%s detail=%s", exc.code, request_id, exc.message)
        payload = build_error_envelope(
            request_id=request_id,
            code=exc.code,
            message=message,
            retryable=retryable,
        )
        return JSONResponse(status_code=status_code, content=payload)

    @app.exception_handler(RequestValidationError)
    async def _handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        request_id = _request_id(request, None)
        details = [
            {"field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"), "reason": error.get("msg", "")}
            for error in exc.errors()
        ]
        payload = build_error_envelope(
            request_id=request_id,
            code="WDG_REQUEST_INVALID",
            message="Request validation failed",
            details=details,
        )
        return JSONResponse(status_code=400, content=payload)

    @app.on_event("startup")
    async def _on_startup() -> None:
        if auto_refresh is not None:
            auto_refresh.start()

    @app.on_event("shutdown")
    async def _on_shutdown() -> None:
        if auto_refresh is not None:
            auto_refresh.stop()

    @app.get("/api/health")
    async def health() -> dict:
        return service.health()

    @app.get("/api/instruments")
    async def list_instruments(
        search: str | None = None,
        sort_by: str = Query(default=DEFAULT_SORT_BY, alias="sortBy"),
        sort_order: str = Query(default=DEFAULT_SORT_ORDER, alias="sortOrder"),
        view: str = "futures_minus_capital",
    ) -> list[dict]:
        return service.list_instruments(search=search, sort_by=sort_by, sort_order=sort_order, view=view)

    # sync handler: runs in the threadpool so the injected delay does not block the event loop
    @app.post("/api/instruments/refresh")
    def refresh_instruments(
        request: Request,
        view: str = "futures_minus_capital",
        x_request_id: str | None = Header(default=None, alias="X-Request-Id"),
    ):
        request_id = _request_id(request, x_request_id)
        try:
            return service.refresh(view=view)
        except (IsmValidationError, IsmError):
            raise
        except SimulatedFaultError as exc:
            logger.warning("Refresh failed by fault injection: request_id=%s detail=%s", request_id, exc.message)
        except Exception:
            logger.exception("Refresh failed: request_id=%s", request_id)
        payload = build_error_envelope(
            request_id=request_id,
            code=REFRESH_FAILED_CODE,
            message=REFRESH_FAILED_MESSAGE,
            retryable=True,
        )
        return JSONResponse(status_code=500, content=payload)

    @app.post("/api/instruments", status_code=201)
    async def create_instrument(body: InstrumentCreateRequest) -> dict:
        return service.create_instrument(body.model_dump())

    @app.get("/api/instruments/{instrument_id}")
    async def get_instrument(instrument_id: str, view: str = "futures_minus_capital") -> dict:
        return service.get_instrument(instrument_id, view=view)

    @app.patch("/api/instruments/{instrument_id}")
    async def update_instrument(instrument_id: str, body: InstrumentUpdateRequest) -> dict:
        return service.update_instrument(instrument_id, body.model_dump(exclude_unset=True))

    @app.delete("/api/instruments/{instrument_id}")
    async def delete_instrument(instrument_id: str) -> dict:
        return service.delete_instrument(instrument_id)

    @app.get("/api/instruments/{instrument_id}/history")
    async def instrument_history(instrument_id: str, limit: int = DEFAULT_HISTORY_LIMIT) -> list[dict]:
        return service.get_history(instrument_id, limit=limit)

    return app
