"""Shared fixtures for the redirect gateway tests."""

from collections.abc import Callable

import httpx
import pytest

from redirect_gateway.shared.config import Settings

RESOLVER_URL = "http://resolver.test:6400"
RESOURCE_URL = "http://resources.test/v1/resource"

REDIRECT_BODY = b'<a href="http://internal-node-1:6200/api/v2/device">Temporary Redirect</a>.\n'


def make_settings(**overrides) -> Settings:
    """Settings with a complete rewrite rule; keyword arguments override fields."""
    values = {
        "resolver_endpoint": RESOLVER_URL,
        "internal_pattern": "internal-node-",
        "external_replacement": "ext",
        "domain": "example.com",
        "trace_provider": "noop",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeBackends:
    """Records outbound requests and answers them per host.

    Answers reach the client as unread streams, as they would off the network.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.resolver: Callable[[httpx.Request], httpx.Response] = lambda request: redirect_response()
        self.resources: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(200)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "resources.test":
            response = self.resources(request)
        else:
            response = self.resolver(request)

        # Responses built with content= are read on construction.
        if response.is_stream_consumed:
            return httpx.Response(
                response.status_code,
                headers=response.headers,
                stream=httpx.ByteStream(response.content),
            )
        return response

    def sent_to(self, host: str) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.host == host]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def redirect_response(
    location: str = "http://internal-node-1:6200/api/v2/device",
    body: bytes = REDIRECT_BODY,
    extra_headers: dict[str, str] | None = None,
) -> httpx.Response:
    headers = {
        "Content-Type": "text/html; charset=utf-8",
        "Location": location,
        "X-Petasos-Build": "Test",
    }
    headers.update(extra_headers or {})
    return httpx.Response(307, headers=headers, content=body)


@pytest.fixture
def backends() -> FakeBackends:
    return FakeBackends()


@pytest.fixture
def settings() -> Settings:
    return make_settings()
