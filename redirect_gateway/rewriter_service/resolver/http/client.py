"""HTTP client shared by the resolver transport and the resource publisher."""

import httpx

from redirect_gateway.shared.logging import get_logger

logger = get_logger(__name__)


async def setup_http_client(
    timeout: float,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create the client; redirects are left for the gateway to rewrite."""
    client = httpx.AsyncClient(
        timeout=httpx.Timeout(timeout),
        follow_redirects=False,
        transport=transport,
    )
    logger.info(f"HTTP client ready (timeout {timeout}s)")

    return client


async def cleanup_http_client(client: httpx.AsyncClient | None):
    """Close the client and its connection pool."""
    if client:
        await client.aclose()
        logger.info("HTTP client closed")
