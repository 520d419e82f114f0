"""
Service configuration.

Built once at startup from command-line flags whose defaults come from
environment variables, then frozen. Out-of-range values are rejected here
and never reach the request path.
"""
import argparse
import os
from typing import Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from latency_service.errors import ConfigurationError

# Reference shape/rate pair; Gamma(2.5, rate=34.6) has mean ~72ms and P95 ~160ms
DEFAULT_ALPHA = 2.5
DEFAULT_BETA = 34.6
DEFAULT_DOWNSTREAM_TIMEOUT = 30.0
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class ServiceConfig(BaseModel):
    """Immutable service configuration."""
    model_config = ConfigDict(frozen=True)

    port: int = Field(8080, ge=1, le=65535)
    error_probability: float = Field(0.0, ge=0.0, le=1.0, allow_inf_nan=False)
    alpha: float = Field(DEFAULT_ALPHA, gt=0.0, allow_inf_nan=False)
    beta: float = Field(DEFAULT_BETA, gt=0.0, allow_inf_nan=False)
    speed: float = Field(1.0, gt=0.0, allow_inf_nan=False)
    downstream_url: str = ""
    downstream_timeout: float = Field(DEFAULT_DOWNSTREAM_TIMEOUT, gt=0.0, allow_inf_nan=False)
    seed: Optional[int] = None
    service_name: str = "latency-service"
    otel_endpoint: str = ""
    log_level: str = "INFO"

    @field_validator("downstream_url")
    @classmethod
    def check_downstream_url(cls, value: str) -> str:
        value = value.strip()
        if value and not value.startswith(("http://", "https://")):
            raise ValueError(f"downstream URL must be http(s), got {value!r}")
        return value

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in LOG_LEVELS:
            raise ValueError(f"unknown log level {value!r}")
        return value

    @property
    def chaining_enabled(self) -> bool:
        return bool(self.downstream_url)


def build_parser(environ: Mapping[str, str]) -> argparse.ArgumentParser:
    """Command-line flags; every default can be overridden from the environment."""
    parser = argparse.ArgumentParser(
        prog="latency-service",
        description="Synthetic backend with Gamma-distributed latency and error injection",
    )
    parser.add_argument("--port", type=int, default=environ.get("PORT", "8080"),
                        help="port to bind on")
    parser.add_argument("--errors", type=float, default=environ.get("ERROR_RATE", "0.0"),
                        help="error rate for service responses")
    parser.add_argument("--alpha", type=float, default=environ.get("GAMMA_ALPHA", str(DEFAULT_ALPHA)),
                        help="alpha (shape) parameter in gamma distribution")
    parser.add_argument("--beta", type=float, default=environ.get("GAMMA_BETA", str(DEFAULT_BETA)),
                        help="beta (rate) parameter in gamma distribution")
    parser.add_argument("--speed", type=float, default=environ.get("SPEED", "1.0"),
                        help="how fast is that microservice")
    parser.add_argument("--next-hop", default=environ.get("DOWNSTREAM_URL", ""),
                        help="url to the next service that will be called as dependency")
    parser.add_argument("--next-hop-timeout", type=float,
                        default=environ.get("DOWNSTREAM_TIMEOUT", str(DEFAULT_DOWNSTREAM_TIMEOUT)),
                        help="deadline in seconds for the call to the next hop")
    parser.add_argument("--seed", type=int, default=environ.get("RANDOM_SEED"),
                        help="seed for the random streams (default: OS entropy)")
    parser.add_argument("--service-name", default=environ.get("OTEL_SERVICE_NAME", "latency-service"))
    parser.add_argument("--otel-endpoint", default=environ.get("OTEL_EXPORTER_OTLP_ENDPOINT", ""),
                        help="OTLP gRPC endpoint for spans (empty disables export)")
    parser.add_argument("--log-level", default=environ.get("LOG_LEVEL", "INFO"))
    return parser


def load_config(
    argv: Optional[Sequence[str]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ServiceConfig:
    """Parse flags (falling back to env vars) into a validated ServiceConfig."""
    if environ is None:
        environ = os.environ
    args = build_parser(environ).parse_args(argv)

    try:
        return ServiceConfig(
            port=args.port,
            error_probability=args.errors,
            alpha=args.alpha,
            beta=args.beta,
            speed=args.speed,
            downstream_url=args.next_hop,
            downstream_timeout=args.next_hop_timeout,
            seed=args.seed,
            service_name=args.service_name,
            otel_endpoint=args.otel_endpoint,
            log_level=args.log_level,
        )
    except ValidationError as e:
        raise ConfigurationError(str(e)) from e
