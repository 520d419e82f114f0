"""
Request pipeline.

    RECEIVED -> ERROR_CHECK -> {FAILED | SAMPLING} -> {CHAINING | DIRECT}
             -> RESPONDING -> DONE

The received counter is bumped on entry, before anything can fail. Only
DONE records success and the sampled latency; every failure kind ends the
request with a 500 and no partial metrics, however much latency was
already spent.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from opentelemetry import trace

from latency_service.config import ServiceConfig
from latency_service.errors import InjectedFailure, ServiceError
from latency_service.hops import HopChainClient, parse_hops
from latency_service.metrics import MetricsRecorder
from latency_service.randomness import independent_sources
from latency_service.sampling import ErrorInjector, LatencySampler

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

DIRECT_BODY = b"hello"


@dataclass(frozen=True)
class HandlerResult:
    status_code: int
    body: bytes
    outcome: str


class RequestHandler:
    """Single configurable handler; behaviour depends only on ServiceConfig."""

    def __init__(
        self,
        config: ServiceConfig,
        sampler: LatencySampler,
        injector: ErrorInjector,
        hop_client: HopChainClient,
        metrics: MetricsRecorder
    ):
        self.config = config
        self.sampler = sampler
        self.injector = injector
        self.hop_client = hop_client
        self.metrics = metrics

    @classmethod
    def from_config(
        cls,
        config: ServiceConfig,
        hop_client: Optional[HopChainClient] = None,
        metrics: Optional[MetricsRecorder] = None
    ) -> "RequestHandler":
        """Wire a handler with independent latency and error streams."""
        latency_source, error_source = independent_sources(config.seed, 2)
        return cls(
            config=config,
            sampler=LatencySampler(config.alpha, config.beta, config.speed, latency_source),
            injector=ErrorInjector(config.error_probability, error_source),
            hop_client=hop_client if hop_client is not None else HopChainClient(),
            metrics=metrics if metrics is not None else MetricsRecorder()
        )

    async def handle(self, raw_hops: Optional[str] = None) -> HandlerResult:
        """Run one request through the pipeline. raw_hops is the query value as received."""
        self.metrics.record_received()

        with tracer.start_as_current_span("handle_request") as span:
            if raw_hops is not None:
                span.set_attribute("hops.requested", raw_hops)
            try:
                latency, body = await self._process(raw_hops, span)
            except ServiceError as e:
                span.set_attribute("request.outcome", e.kind)
                logger.warning(f"Request failed kind={e.kind} error={e}")
                return HandlerResult(e.status_code, str(e).encode(), e.kind)

            self.metrics.record_success(latency)
            span.set_attribute("request.outcome", "success")
            logger.debug(f"Request done latency={latency:.4f}s hops={raw_hops}")
            return HandlerResult(200, body, "success")

    async def _process(self, raw_hops: Optional[str], span) -> Tuple[float, bytes]:
        if self.injector.should_fail():
            raise InjectedFailure()

        latency = self.sampler.sample()
        span.set_attribute("latency.sampled_seconds", latency)
        await asyncio.sleep(latency)

        hops = parse_hops(raw_hops)
        if hops is None:
            return latency, DIRECT_BODY

        downstream_body = await self.hop_client.chain(
            hops,
            self.config.downstream_url,
            self.config.downstream_timeout
        )
        return latency, f"hello after {hops} hops\n".encode() + downstream_body

    async def aclose(self):
        await self.hop_client.aclose()
