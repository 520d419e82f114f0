"""
Latency Service - HTTP surface.

Endpoints:
- GET /              simulated work; optional ?hops=N chains N calls downstream
- GET /metrics       Prometheus exposition of the request/success/latency metrics
- GET /health        liveness
- GET /admin/config  the (read-only) configuration in effect
"""
import asyncio
import contextlib
import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional, Sequence

from fastapi import FastAPI, Request
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from starlette.responses import Response

from latency_service.config import ServiceConfig, load_config
from latency_service.errors import ConfigurationError
from latency_service.handler import RequestHandler
from latency_service.hops import HOPS_PARAM, HopChainClient
from latency_service.metrics import MetricsRecorder
from latency_service.telemetry import setup_logging, setup_tracing

logger = logging.getLogger(__name__)

DISCONNECT_POLL_SECONDS = 0.1
# nginx convention for "client closed request"; the caller never sees it
CLIENT_CLOSED_REQUEST = 499


async def wait_for_disconnect(request: Request):
    while not await request.is_disconnected():
        await asyncio.sleep(DISCONNECT_POLL_SECONDS)


async def cancel_and_wait(task: asyncio.Future):
    """Cancel a task and wait until it has actually unwound."""
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task


def create_app(
    config: ServiceConfig,
    hop_client: Optional[HopChainClient] = None,
    metrics: Optional[MetricsRecorder] = None
) -> FastAPI:
    """Build the service around one RequestHandler wired from config."""
    handler = RequestHandler.from_config(config, hop_client=hop_client, metrics=metrics)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"{config.service_name} starting up on port {config.port}")
        logger.info(f"Gamma alpha={config.alpha} beta={config.beta} speed={config.speed}")
        logger.info(f"Estimated P95 latency: {handler.sampler.estimate_percentile(0.95):.4f}s")
        logger.info(f"Error probability: {config.error_probability}")
        if config.chaining_enabled:
            logger.info(f"Downstream URL: {config.downstream_url} (timeout {config.downstream_timeout}s)")
        else:
            logger.info("Hop chaining disabled")
        yield
        await handler.aclose()
        logger.info(f"{config.service_name} shutting down")

    app = FastAPI(title=config.service_name, lifespan=lifespan)
    app.state.config = config
    app.state.handler = handler
    FastAPIInstrumentor.instrument_app(app)

    @app.get("/")
    async def hello(request: Request):
        """Simulated work. Stops early if the caller goes away."""
        work = asyncio.ensure_future(handler.handle(request.query_params.get(HOPS_PARAM)))
        watcher = asyncio.ensure_future(wait_for_disconnect(request))
        try:
            done, _ = await asyncio.wait({work, watcher}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            await cancel_and_wait(work)
            raise
        finally:
            watcher.cancel()

        if work not in done:
            await cancel_and_wait(work)
            logger.info("Client disconnected, request abandoned")
            return Response(status_code=CLIENT_CLOSED_REQUEST)

        result = work.result()
        return Response(content=result.body, status_code=result.status_code, media_type="text/plain")

    @app.get("/metrics")
    async def metrics_endpoint():
        content, content_type = handler.metrics.exposition()
        return Response(content=content, media_type=content_type)

    @app.get("/health")
    async def health():
        return {"status": "ok", "service": config.service_name}

    @app.get("/admin/config")
    async def get_config():
        return config.model_dump()

    return app


def run(argv: Optional[Sequence[str]] = None):
    """Process entry point: flags/env -> config -> uvicorn."""
    import uvicorn

    try:
        config = load_config(argv)
    except ConfigurationError as e:
        logging.basicConfig(level=logging.ERROR)
        logger.error(f"Invalid configuration: {e}")
        sys.exit(2)

    setup_logging(config.log_level)
    setup_tracing(config.service_name, config.otel_endpoint)

    app = create_app(config)
    uvicorn.run(app, host="0.0.0.0", port=config.port, log_config=None)


if __name__ == "__main__":
    run()
