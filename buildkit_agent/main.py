"""FastAPI application exposing BuildKit metrics for Prometheus."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response

from .config import AgentConfig, load_config
from .control_client import ControlClient, build_control_client
from .metrics import BuildkitMetrics
from .scraper import Scraper


def build_app(
    config: AgentConfig | None = None,
    client: ControlClient | None = None,
    metrics: BuildkitMetrics | None = None,
) -> FastAPI:
    """Create the app with one metrics registry shared by the scraper and handlers."""
    config = config or load_config()
    metrics = metrics or BuildkitMetrics()
    scraper = Scraper(
        client=client or build_control_client(config.buildkit_addr, timeout=config.request_timeout),
        metrics=metrics,
        interval=config.scrape_interval,
        initial_delay=config.initial_delay,
    )

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        await scraper.startup()
        try:
            yield
        finally:
            await scraper.shutdown()

    app = FastAPI(title="BuildKit Metrics Agent", version="0.1.0", lifespan=lifespan)
    app.state.config = config
    app.state.metrics = metrics
    app.state.scraper = scraper

    @app.get("/metrics")
    async def metrics_endpoint(request: Request) -> Response:
        exported: BuildkitMetrics = request.app.state.metrics
        return Response(content=exported.render(), media_type=exported.content_type)

    @app.get("/health")
    async def health(request: Request) -> dict:
        return {"status": "ok", "scraper": request.app.state.scraper.status()}

    return app
