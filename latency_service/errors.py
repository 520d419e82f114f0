"""
Error types raised while handling a request.

Every request error is terminal for that request and is surfaced to the
caller as a 500 with a plain-text message. Nothing is retried.
"""


class ServiceError(Exception):
    """Base class for request failures."""
    status_code = 500
    kind = "error"


class InjectedFailure(ServiceError):
    """Probability-driven simulated failure."""
    kind = "injected"

    def __init__(self, message: str = "Upppss, something gone wrong!"):
        super().__init__(message)


class InvalidParameter(ServiceError):
    """Caller supplied a malformed hops value."""
    kind = "invalid_parameter"

    def __init__(self, name: str, value: str):
        self.name = name
        self.value = value
        super().__init__(f"{name} parameter needs to be a non-negative int, got {value!r}")


class DownstreamFailure(ServiceError):
    """The next hop was unreachable, timed out, or answered with an error."""
    kind = "downstream"

    def __init__(self, cause):
        self.cause = cause
        super().__init__(f"Error while calling next hop: {cause}")


class ConfigurationError(Exception):
    """Invalid configuration detected at startup."""
