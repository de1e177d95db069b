from urllib.parse import urlsplit

from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from redirect_gateway.rewriter_service.errors import ForwardingError, ResourceUpdateError, report_exception
from redirect_gateway.rewriter_service.resolver.base_transport import ResolverTransport
from redirect_gateway.rewriter_service.resources import ResourceUpdatePublisher
from redirect_gateway.rewriter_service.rewrite import (
    capture_scheme,
    normalize_scheme,
    rewrite_first_quoted,
    rewrite_location,
)
from redirect_gateway.shared.config import RewriteRule, Settings, get_settings
from redirect_gateway.shared.logging import get_logger
from redirect_gateway.shared.models import ResolverRequest, ResolverResponse

logger = get_logger(__name__)

TEMPORARY_REDIRECT = 307
DEVICE_NAME_HEADER = "X-Webpa-Device-Name"
TRACE_PROPAGATION_HEADERS = {"traceparent", "tracestate"}

HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
}


class RedirectForwardHandler:
    """
    Forwards discovery requests to the resolver and rewrites the redirects
    it answers with so that they name public nodes.
    """

    def __init__(self, settings: Settings | None = None):
        self.__settings: Settings = settings or get_settings()
        self.__rule: RewriteRule = self.__settings.rewrite_rule()
        self.__resolver_url = urlsplit(self.__settings.resolver_endpoint)

    def _get_transport(self, request: Request) -> ResolverTransport:
        """Get the resolver transport from the application state."""
        transport = getattr(request.app.state, "resolver_transport", None)
        if transport is None:
            raise RuntimeError("Resolver transport is not initialized")
        return transport

    def _get_publisher(self, request: Request) -> ResourceUpdatePublisher | None:
        return getattr(request.app.state, "resource_publisher", None)

    async def handle(self, request: Request) -> Response:
        """Public entry point used by Starlette router."""
        device_name = request.headers.get(DEVICE_NAME_HEADER, "")

        if self.__settings.auth_header_check_enabled and not request.headers.get("authorization"):
            logger.error("authorization header not provided")
            return JSONResponse({"message": "authorization header not provided"}, status_code=400)

        scheme = self._original_scheme(request)

        await self._update_resource(request)

        try:
            resolver_req = await self._build_resolver_request(request)
            resolver_resp = await self._get_transport(request).send_request(resolver_req)
            return self._build_http_response(resolver_resp, scheme, device_name)

        except ForwardingError as exc:
            report_exception(exc, f"Forwarding request for device [{device_name}] failed: {exc}")
            return Response(content=exc.public_message, status_code=exc.status_code)

        except Exception as exc:
            report_exception(exc, f"Request for device [{device_name}] failed due to unexpected error: {exc}")
            return Response(content="Gateway error", status_code=502)

    def _original_scheme(self, request: Request) -> str:
        """
        Scheme the client spoke, with websocket schemes mapped onto http(s).

        Origin-form request targets carry no scheme, in which case the
        X-Forwarded-Proto header set by the edge proxy is used.
        """
        raw_target = (request.scope.get("raw_path") or b"").decode("latin-1")
        original = capture_scheme(urlsplit(raw_target).scheme, request.headers.get("x-forwarded-proto", ""))
        logger.debug(f"originalScheme [{original}]")

        normalized = normalize_scheme(original)
        if normalized != original:
            logger.debug(f"Replacing original scheme [{original}] with [{normalized}] in output")
        return normalized

    async def _update_resource(self, request: Request) -> None:
        """Publish device metadata; failures are logged and never fail the request."""
        if not self.__settings.resource_update_enabled:
            return

        publisher = self._get_publisher(request)
        if publisher is None:
            logger.warning("Resource update is enabled but no publisher is configured")
            return

        logger.info("updating resource's IP address and certificate information")
        try:
            await publisher.publish(request.headers)
        except ResourceUpdateError as exc:
            logger.error(str(exc))
        except Exception as exc:
            report_exception(exc, f"Resource update failed due to unexpected error: {exc}")

    async def _build_resolver_request(self, request: Request) -> ResolverRequest:
        """Point the inbound request at the resolver, keeping only its path."""
        body = await request.body()
        url = f"{self.__resolver_url.scheme}://{self.__resolver_url.netloc}{request.url.path}"

        headers = {
            name: value
            for name, value in request.headers.items()
            if name not in HOP_BY_HOP_HEADERS and name != "host"
        }

        logger.debug(f"Forwarding {request.method} {request.url.path} to resolver at {url}")
        logger.debug(f"Forwarded headers: {headers}")

        return ResolverRequest(method=request.method, url=url, headers=headers, body=body)

    def _build_http_response(self, resolver_resp: ResolverResponse, scheme: str, device_name: str) -> Response:
        """
        Translate ResolverResponse → Starlette Response.

        Anything but a temporary redirect is relayed untouched. A redirect
        gets its Location and the quoted URL of its body rewritten.
        """
        logger.debug(f"Resolver answered {resolver_resp.status_code} with headers {resolver_resp.headers}")

        headers = self._relay_headers(resolver_resp)
        body = resolver_resp.body

        if resolver_resp.status_code == TEMPORARY_REDIRECT:
            location = headers.get("location", "")
            logger.debug(f"Location [{location}]")

            new_location = rewrite_location(location, self.__rule, scheme)
            logger.info(
                f"redirecting from Location [{location}] to Location [{new_location}] "
                f"for device name [{device_name}]"
            )

            headers["location"] = new_location
            body = rewrite_first_quoted(body, new_location)

        headers["content-length"] = str(len(body))

        return Response(
            content=body,
            status_code=resolver_resp.status_code,
            headers=headers,
        )

    def _relay_headers(self, resolver_resp: ResolverResponse) -> dict[str, str]:
        """Resolver headers minus trace context; repeated headers are comma joined."""
        headers: dict[str, str] = {}
        for name, _ in resolver_resp.headers:
            name = name.lower()
            if name in TRACE_PROPAGATION_HEADERS or name in HOP_BY_HOP_HEADERS or name in headers:
                continue
            headers[name] = resolver_resp.header(name)
        return headers


async def forward_request_handler(request: Request) -> Response:
    """Catch-all endpoint delegating to the handler stored on the application."""
    handler: RedirectForwardHandler = request.app.state.forward_handler
    return await handler.handle(request)
