"""Middleware for request tracing and metrics."""

import time

from opentelemetry import propagate, trace
from opentelemetry.trace import SpanKind
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.types import ASGIApp

from redirect_gateway.rewriter_service.metrics import RequestMetrics
from redirect_gateway.shared.logging import get_logger

logger = get_logger(__name__)
tracer = trace.get_tracer(__name__)

SPAN_ID_HEADER = "X-B3-SpanId"
TRACE_ID_HEADER = "X-B3-TraceId"


class TraceContextMiddleware(BaseHTTPMiddleware):
    """Runs each request in a server span continuing the caller's trace.

    When the gateway starts the trace itself, its ids are returned to the
    caller in the X-B3 headers.
    """

    async def dispatch(self, request: Request, call_next):
        parent = propagate.extract(request.headers)
        has_remote_parent = trace.get_current_span(parent).get_span_context().is_valid

        with tracer.start_as_current_span(
            f"{request.method} {request.url.path}",
            context=parent,
            kind=SpanKind.SERVER,
        ) as span:
            span.set_attribute("http.method", request.method)
            span.set_attribute("http.target", request.url.path)
            span.set_attribute("device.name", request.headers.get("x-webpa-device-name", ""))
            span.set_attribute("tenant.id", request.headers.get("x-tenant-id", ""))

            response = await call_next(request)
            span.set_attribute("http.status_code", response.status_code)

            span_context = span.get_span_context()
            if span_context.is_valid and not has_remote_parent:
                response.headers[SPAN_ID_HEADER] = trace.format_span_id(span_context.span_id)
                response.headers[TRACE_ID_HEADER] = trace.format_trace_id(span_context.trace_id)

        return response


class RequestMetricsMiddleware(BaseHTTPMiddleware):
    """Counts requests and records their duration."""

    def __init__(self, app: ASGIApp, metrics: RequestMetrics):
        super().__init__(app)
        self.__metrics = metrics

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start_time

        host = request.headers.get("host", "")
        self.__metrics.observe(response.status_code, request.method, host, request.url.path, elapsed)
        logger.debug(f"{request.method} {request.url.path} -> {response.status_code} in {elapsed:.3f}s")

        return response
