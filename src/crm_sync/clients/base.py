"""Base protocol for API transports."""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Transport(Protocol):
    """Protocol defining the interface the sync engine talks to.

    Implementations turn a (method, path, params/body) tuple into the
    decoded JSON response, or raise a ``TransportError`` carrying a
    displayable message. Retries, headers and auth are the transport's
    business; the engine only sees success or failure.
    """

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """Fetch a resource or listing.

        Args:
            path: Path relative to the API base URL
            params: Query parameters

        Returns:
            Decoded JSON body
        """
        ...

    async def post(self, path: str, body: dict[str, Any] | None = None) -> Any:
        """Create a resource and return the server's record."""
        ...

    async def put(self, path: str, body: dict[str, Any] | None = None) -> Any:
        """Replace a resource and return the server's record."""
        ...

    async def patch(self, path: str, body: dict[str, Any] | None = None) -> Any:
        """Partially update a resource."""
        ...

    async def delete(self, path: str) -> Any:
        """Delete a resource."""
        ...

    async def download(self, path: str, params: dict[str, Any] | None = None) -> bytes:
        """Fetch a binary payload (CSV export).

        Args:
            path: Path relative to the API base URL
            params: Query parameters

        Returns:
            Raw response bytes
        """
        ...
