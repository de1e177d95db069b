"""Startup reachability check of the resolver."""

import time

import httpx

from redirect_gateway.rewriter_service.errors import ResolverUnreachableError, report_exception
from redirect_gateway.shared.logging import get_logger

logger = get_logger(__name__)

# The resolver refuses to answer requests without a device name.
PROBE_DEVICE_NAME = "mac:223344556677"


def check_resolver(
    url: str,
    timeout: float = 10.0,
    transport: httpx.BaseTransport | None = None,
) -> None:
    """
    Probe the resolver once. Any HTTP answer, redirects included, counts as healthy.

    Raises:
        ResolverUnreachableError: If the request fails at the transport level
    """
    with httpx.Client(timeout=timeout, follow_redirects=False, transport=transport) as client:
        try:
            client.get(url, headers={"X-Webpa-Device-Name": PROBE_DEVICE_NAME})
        except httpx.HTTPError as exc:
            raise ResolverUnreachableError(f"Resolver at {url} is unreachable: {exc}") from exc


def wait_for_resolver(
    url: str,
    attempts: int = 10,
    delay: float = 1.0,
    timeout: float = 10.0,
    transport: httpx.BaseTransport | None = None,
) -> None:
    """
    Block until the resolver answers, probing at a fixed interval.

    Raises:
        ResolverUnreachableError: After ``attempts`` failed probes
    """
    logger.info("Checking if resolver is reachable")

    for attempt in range(1, attempts + 1):
        logger.debug(f"Trying to reach resolver: [attempt: {attempt}]")
        try:
            check_resolver(url, timeout=timeout, transport=transport)
        except ResolverUnreachableError as exc:
            report_exception(exc, f"Resolver probe {attempt}/{attempts} failed: {exc}")
            if attempt < attempts:
                time.sleep(delay)
            continue

        logger.info(f"Resolver reachable after {attempt} attempt(s)")
        return

    raise ResolverUnreachableError(f"Could not reach resolver at {url} after {attempts} attempts")
