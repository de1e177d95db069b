"""Prometheus request metrics."""

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, Histogram, generate_latest
from starlette.requests import Request
from starlette.responses import Response

LABEL_NAMES = ["code", "method", "host", "url"]
DURATION_BUCKETS = (0.1, 0.5, 1, 1.5, 2, 2.5, 3)


class RequestMetrics:
    """Request count and duration, labelled by status, method, host and path."""

    def __init__(
        self,
        namespace: str = "xmidt",
        subsystem: str = "redirect_gateway",
        registry: CollectorRegistry | None = None,
    ):
        """
        Initialize metrics collectors.

        Args:
            namespace: Metric namespace
            subsystem: Metric subsystem
            registry: Prometheus registry, a private one when None
        """
        self.registry = registry if registry is not None else CollectorRegistry()

        self.total_requests = Counter(
            "server_request_count",
            "total incoming HTTP requests",
            LABEL_NAMES,
            namespace=namespace,
            subsystem=subsystem,
            registry=self.registry,
        )

        self.request_duration = Histogram(
            "server_request_duration_seconds",
            "tracks incoming request durations in seconds",
            LABEL_NAMES,
            namespace=namespace,
            subsystem=subsystem,
            buckets=DURATION_BUCKETS,
            registry=self.registry,
        )

    def observe(self, code: int, method: str, host: str, url: str, elapsed: float) -> None:
        labels = (str(code), method, host, url)
        self.total_requests.labels(*labels).inc()
        self.request_duration.labels(*labels).observe(elapsed)

    def render(self) -> bytes:
        return generate_latest(self.registry)


async def metrics_endpoint(request: Request) -> Response:
    """Serve the metrics of the application in Prometheus text format."""
    metrics: RequestMetrics = request.app.state.metrics
    return Response(content=metrics.render(), media_type=CONTENT_TYPE_LATEST)
