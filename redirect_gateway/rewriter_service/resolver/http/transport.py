"""httpx transport implementation for the resolver."""

import httpx
from opentelemetry import propagate

from redirect_gateway.rewriter_service.errors import ResolverTimeoutError, ResolverTransportError
from redirect_gateway.rewriter_service.resolver.base_transport import ResolverTransport
from redirect_gateway.shared.logging import get_logger
from redirect_gateway.shared.models import ResolverRequest, ResolverResponse

logger = get_logger(__name__)


class HTTPXResolverTransport(ResolverTransport):
    """httpx-based implementation of the resolver transport."""

    def __init__(self, client: httpx.AsyncClient):
        """
        Initialize httpx transport.

        Args:
            client: Client configured not to follow redirects
        """
        self._client = client

    async def send_request(self, request: ResolverRequest) -> ResolverResponse:
        """Send request to the resolver and read the whole response.

        Args:
            request: Request to forward

        Returns:
            Response from the resolver

        Raises:
            ResolverTimeoutError: If the request times out
            ResolverTransportError: For transport errors

        """
        headers = dict(request.headers)
        # The body is relayed and rewritten as-is, so it must arrive unencoded.
        headers["accept-encoding"] = "identity"
        propagate.inject(headers)

        logger.debug("Sending request to resolver", extra={"url": request.url})

        try:
            outbound = self._client.build_request(request.method, request.url, headers=headers, content=request.body)
            response = await self._client.send(outbound, stream=True, follow_redirects=False)
            try:
                # Raw bytes, so a body the resolver encoded anyway still matches its Content-Encoding.
                body = b"".join([chunk async for chunk in response.aiter_raw()])
            finally:
                await response.aclose()
        except httpx.TimeoutException as exc:
            raise ResolverTimeoutError(f"Resolver request to {request.url} timed out: {exc}") from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise ResolverTransportError(f"Resolver request to {request.url} failed: {exc}") from exc

        logger.debug("Received response from resolver", extra={"status_code": response.status_code})

        return ResolverResponse(
            status_code=response.status_code,
            headers=response.headers.multi_items(),
            body=body,
        )
