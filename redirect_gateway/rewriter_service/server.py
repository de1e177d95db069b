"""Redirect gateway entry point."""

import sys
from contextlib import asynccontextmanager

import httpx
import uvicorn
from pydantic import ValidationError
from starlette.applications import Starlette
from starlette.routing import Route

from redirect_gateway.rewriter_service.errors import ResolverUnreachableError
from redirect_gateway.rewriter_service.handlers import RedirectForwardHandler, forward_request_handler
from redirect_gateway.rewriter_service.health import wait_for_resolver
from redirect_gateway.rewriter_service.metrics import RequestMetrics, metrics_endpoint
from redirect_gateway.rewriter_service.middleware import RequestMetricsMiddleware, TraceContextMiddleware
from redirect_gateway.rewriter_service.resolver.http.client import cleanup_http_client, setup_http_client
from redirect_gateway.rewriter_service.resolver.http.transport import HTTPXResolverTransport
from redirect_gateway.rewriter_service.resources import ResourceUpdatePublisher
from redirect_gateway.rewriter_service.tracing import configure_tracer_provider
from redirect_gateway.shared.config import Settings, get_settings
from redirect_gateway.shared.logging import get_logger, setup_logging

logger = get_logger(__name__)


def create_app(
    settings: Settings | None = None,
    http_transport: httpx.AsyncBaseTransport | None = None,
) -> Starlette:
    """
    Create and configure the gateway application.

    Args:
        settings: Settings to use instead of the environment
        http_transport: Transport for the outbound HTTP client, used by tests
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: Starlette):
        """Manage application lifecycle (startup/shutdown)."""
        logger.info("Starting redirect gateway")
        logger.info(f"Resolver: {settings.resolver_endpoint}")
        logger.info(
            f"Rewriting [{settings.internal_pattern}] -> [{settings.external_replacement}] "
            f"under domain {settings.domain}"
        )

        client = await setup_http_client(settings.resolver_timeout, transport=http_transport)
        app.state.resolver_transport = HTTPXResolverTransport(client)
        if settings.resource_update_enabled:
            app.state.resource_publisher = ResourceUpdatePublisher(client, settings.resource_url)

        yield

        await cleanup_http_client(client)
        logger.info("Redirect gateway stopped")

    routes = []
    if settings.metrics_enabled:
        routes.append(Route("/metrics", metrics_endpoint, methods=["GET"]))
    routes.append(Route("/{path:path}", forward_request_handler, methods=["GET"]))

    app = Starlette(debug=False, routes=routes, lifespan=lifespan)
    app.state.forward_handler = RedirectForwardHandler(settings)
    app.state.resource_publisher = None

    if settings.metrics_enabled:
        app.state.metrics = RequestMetrics(settings.metrics_namespace, settings.metrics_subsystem)
        app.add_middleware(RequestMetricsMiddleware, metrics=app.state.metrics)

    # Added last so it wraps the metrics middleware and the handler.
    app.add_middleware(TraceContextMiddleware)

    return app


def log_config(settings: Settings) -> None:
    """Log the effective configuration."""
    logger.info("Config:")
    for key, value in settings.model_dump().items():
        logger.info(f"  {key}: {value}")


def main() -> None:
    """Entry point: probe the resolver, then serve."""
    try:
        settings = get_settings()
    except ValidationError as exc:
        setup_logging()
        logger.error(f"Invalid configuration: {exc}")
        sys.exit(1)

    setup_logging(settings.log_level)
    log_config(settings)
    configure_tracer_provider(settings)

    try:
        wait_for_resolver(
            settings.resolver_endpoint,
            attempts=settings.health_check_attempts,
            delay=settings.health_check_delay,
            timeout=settings.resolver_timeout,
        )
    except ResolverUnreachableError as exc:
        logger.critical(f"Could not reach resolver, shutting down: {exc}")
        sys.exit(1)

    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        loop="uvloop",
    )


if __name__ == "__main__":
    main()
