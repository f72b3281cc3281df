"""
FastAPI listener for the arbitrage engine.

Exposes on-demand cycles and engine status over HTTP:

    POST /cycles         run one cycle and return its report
    GET  /cycles/latest  most recently completed report
    GET  /status         lifecycle, counters and metrics
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import orjson
from fastapi import FastAPI, HTTPException, Request, Response

from dexarb import __version__
from dexarb.config.settings import Settings, get_settings
from dexarb.core.engine import ArbitrageEngine
from dexarb.core.errors import ArbitrageError
from dexarb.core.event_bus import Event, EventType
from dexarb.core.types import CycleReport, LifecycleState


logger = logging.getLogger(__name__)


def _json(data: Any, status_code: int = 200) -> Response:
    return Response(
        content=orjson.dumps(data),
        status_code=status_code,
        media_type="application/json",
    )


def _engine(request: Request) -> ArbitrageEngine:
    return request.app.state.engine


async def trigger_cycle(request: Request) -> Response:
    engine = _engine(request)
    try:
        report = await engine.run_cycle()
    except ArbitrageError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    return _json(report.to_dict())


async def get_latest_cycle(request: Request) -> Response:
    report: CycleReport | None = request.app.state.latest_report
    if report is None:
        raise HTTPException(status_code=404, detail="No cycle has completed yet")
    return _json(report.to_dict())


async def get_status(request: Request) -> Response:
    status = _engine(request).status()
    status["version"] = __version__
    return _json(status)


def create_app(engine: ArbitrageEngine | None = None, settings: Settings | None = None) -> FastAPI:
    """
    Build the listener app.

    Args:
        engine: Engine to drive; built from settings when omitted.
        settings: Settings used when no engine is given.

    Returns:
        FastAPI application whose lifespan starts and stops the engine.
    """
    if engine is None:
        engine = ArbitrageEngine(settings or get_settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        def remember_report(event: Event[CycleReport]) -> None:
            app.state.latest_report = event.payload

        engine.event_bus.subscribe_sync(EventType.CYCLE_COMPLETE, remember_report)
        if engine.lifecycle is LifecycleState.NOT_STARTED:
            await engine.start()
        logger.info("Listener ready")
        try:
            yield
        finally:
            engine.event_bus.unsubscribe(EventType.CYCLE_COMPLETE, remember_report)
            await engine.shutdown()

    app = FastAPI(title="DEX Arbitrage Engine", version=__version__, lifespan=lifespan)
    app.state.engine = engine
    app.state.latest_report = None

    app.post("/cycles")(trigger_cycle)
    app.get("/cycles/latest")(get_latest_cycle)
    app.get("/status")(get_status)
    return app


def main(settings: Settings | None = None) -> None:
    """Run the listener with uvicorn."""
    import uvicorn

    settings = settings or get_settings()

    print(
        f"""
╔═══════════════════════════════════════════════════════════════╗
║              DEX ARBITRAGE ENGINE - LISTENER                  ║
╚═══════════════════════════════════════════════════════════════╝

Listening on http://{settings.server_host}:{settings.server_port}
  POST /cycles  |  GET /cycles/latest  |  GET /status
Press Ctrl+C to stop.
    """
    )
    uvicorn.run(
        create_app(settings=settings),
        host=settings.server_host,
        port=settings.server_port,
        log_level="warning",
    )


if __name__ == "__main__":
    main()
