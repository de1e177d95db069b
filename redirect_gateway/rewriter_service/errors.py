"""Exceptions raised by the gateway and the hook that reports them."""

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from redirect_gateway.shared.logging import get_logger

logger = get_logger(__name__)


class GatewayError(Exception):
    """Base class for every error raised by the gateway."""


class ForwardingError(GatewayError):
    """A request could not be proxied; the client gets an error response."""

    status_code = 502
    public_message = "Bad gateway"


class ResolverTransportError(ForwardingError):
    """The resolver could not be reached or its response could not be read."""


class ResolverTimeoutError(ResolverTransportError):
    """The resolver did not answer in time."""

    status_code = 504
    public_message = "Gateway timeout"


class InvalidLocationError(ForwardingError):
    """The resolver redirected to a Location that is not a usable URL."""


class NoMatchFoundError(ForwardingError):
    """The internal name pattern does not occur in the redirect hostname."""

    def __init__(self, host: str, pattern: str):
        super().__init__(f"No match found for pattern [{pattern}] in host [{host}]")
        self.host = host
        self.pattern = pattern


class ResourceUpdateError(GatewayError):
    """Publishing device metadata to the resource store failed."""


class ConveyHeaderError(ResourceUpdateError):
    """The X-WebPA-Convey header is not base64 encoded JSON."""


class ResolverUnreachableError(GatewayError):
    """The resolver did not respond to a health probe."""


def report_exception(exc: BaseException, message: str | None = None) -> None:
    """
    Record an error on the active span and log it with its traceback.

    Args:
        exc: The exception to report
        message: Log message, defaults to the exception text
    """
    span = trace.get_current_span()
    span.record_exception(exc)
    span.set_status(Status(StatusCode.ERROR, str(exc)))

    logger.error(message or str(exc), exc_info=exc)
