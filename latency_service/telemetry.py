"""
Structured logging and OpenTelemetry tracing setup.
"""
import logging
from typing import Optional

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from pythonjsonlogger import jsonlogger


def setup_logging(level: str = "INFO"):
    """Send all records to stderr as JSON lines."""
    logger = logging.getLogger()
    handler = logging.StreamHandler()
    formatter = jsonlogger.JsonFormatter(
        fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
        rename_fields={"asctime": "timestamp", "levelname": "level"}
    )
    handler.setFormatter(formatter)
    logger.handlers = [handler]
    logger.setLevel(level)


def setup_tracing(service_name: str, endpoint: str) -> Optional[TracerProvider]:
    """
    Export spans over OTLP/gRPC and propagate trace context on outbound
    httpx calls, so a hop chain shows up as one trace.

    Does nothing when no endpoint is configured.
    """
    if not endpoint:
        return None

    resource = Resource.create({"service.name": service_name})
    provider = TracerProvider(resource=resource)
    processor = BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint, insecure=True))
    provider.add_span_processor(processor)
    trace.set_tracer_provider(provider)

    # Instrument httpx for trace propagation
    HTTPXClientInstrumentor().instrument()
    return provider
