"""Abstract base classes for resolver communication."""

from abc import ABC, abstractmethod

from redirect_gateway.shared.models import ResolverRequest, ResolverResponse


class ResolverTransport(ABC):
    """Abstract interface for talking to the redirect resolver."""

    @abstractmethod
    async def send_request(self, request: ResolverRequest) -> ResolverResponse:
        """
        Send a request to the resolver and wait for its response.

        Redirects are never followed: a 307 from the resolver is returned as is.

        Args:
            request: Request to forward

        Returns:
            Response from the resolver

        Raises:
            ResolverTimeoutError: If the request times out
            ResolverTransportError: For any other transport error
        """
        pass
