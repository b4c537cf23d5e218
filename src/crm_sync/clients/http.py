"""
CRM API HTTP transport

requests-based implementation of the Transport protocol. Blocking calls
run in a worker thread so engines stay on the asyncio event loop.
"""

import asyncio
import logging
from datetime import date
from pathlib import Path
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from crm_sync.clients.base import Transport
from crm_sync.errors import NetworkFailure, ServerRejection
from crm_sync.settings import DEFAULT_BASE_URL, SyncSettings

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Request failed"


def error_message(response: requests.Response, fallback: str = GENERIC_ERROR) -> str:
    """Extract the server-supplied ``message`` field from an error response."""
    try:
        data = response.json()
    except ValueError:
        return fallback
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return fallback


class HTTPTransport:
    """
    Transport for the CRM REST API.

    Example:
        >>> transport = HTTPTransport("https://crm.example.com/api")
        >>> page = asyncio.run(transport.get("clients", {"page": 1, "limit": 20}))
        >>> print(page["totalPages"])
    """

    USER_AGENT = "crm-sync/0.1.0"

    def __init__(
        self,
        base_url: str | None = None,
        timeout: int = 30,
        token: str | None = None,
        session: requests.Session | None = None,
        pool_connections: int = 10,
        pool_maxsize: int = 10,
    ):
        """
        Initialize the transport.

        Args:
            base_url: API root URL
            timeout: Request timeout in seconds
            token: Bearer token sent with every request
            session: Optional requests session (creates one if not provided)
            pool_connections: Number of connection pools
            pool_maxsize: Max connections per pool
        """
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.timeout = timeout
        self.session = session or self._create_session(pool_connections, pool_maxsize)
        self._owns_session = session is None

        self.session.headers.update({
            "User-Agent": self.USER_AGENT,
            "Accept": "application/json",
        })
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    @classmethod
    def from_settings(cls, settings: SyncSettings) -> "HTTPTransport":
        return cls(settings.base_url, timeout=settings.timeout, token=settings.token)

    @staticmethod
    def _create_session(pool_connections: int, pool_maxsize: int) -> requests.Session:
        """Create a session with connection pooling and no automatic retries."""
        session = requests.Session()
        adapter = HTTPAdapter(
            pool_connections=pool_connections,
            pool_maxsize=pool_maxsize,
            max_retries=Retry(total=0),  # retry is user-initiated
        )
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        return session

    def close(self):
        """Close the session if we own it."""
        if self._owns_session and self.session:
            self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> requests.Response:
        """Send a request and map failures to transport errors."""
        url = f"{self.base_url}/{path.lstrip('/')}"
        logger.debug(f"{method} {url} params={params}")
        try:
            response = self.session.request(
                method, url, params=params, json=body, timeout=self.timeout
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise NetworkFailure(f"Could not reach {self.base_url}: {e}") from e
        except requests.RequestException as e:
            raise NetworkFailure(f"Request to {self.base_url} failed: {e}") from e

        if not response.ok:
            message = error_message(response)
            logger.warning(f"{method} {path} failed with {response.status_code}: {message}")
            raise ServerRejection(message, status_code=response.status_code)
        return response

    def request_json(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        """Blocking request returning the decoded JSON body (None when empty)."""
        response = self._request(method, path, params=params, body=body)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ServerRejection("Invalid JSON in response", response.status_code) from e

    # -------------------------------------------------------------------------
    # Transport protocol
    # -------------------------------------------------------------------------

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await asyncio.to_thread(self.request_json, "GET", path, params)

    async def post(self, path: str, body: dict[str, Any] | None = None) -> Any:
        return await asyncio.to_thread(self.request_json, "POST", path, None, body)

    async def put(self, path: str, body: dict[str, Any] | None = None) -> Any:
        return await asyncio.to_thread(self.request_json, "PUT", path, None, body)

    async def patch(self, path: str, body: dict[str, Any] | None = None) -> Any:
        return await asyncio.to_thread(self.request_json, "PATCH", path, None, body)

    async def delete(self, path: str) -> Any:
        return await asyncio.to_thread(self.request_json, "DELETE", path)

    async def download(self, path: str, params: dict[str, Any] | None = None) -> bytes:
        response = await asyncio.to_thread(self._request, "GET", path, params)
        return response.content


def export_filename(prefix: str, on: date | None = None) -> str:
    """Build the download name used for CSV exports."""
    on = on or date.today()
    return f"{prefix}_export_{on.isoformat()}.csv"


async def export_collection(
    transport: Transport,
    path: str,
    params: dict[str, Any],
    output_dir: str | Path,
    prefix: str,
) -> Path:
    """
    Download a collection's CSV export.

    Args:
        transport: Transport to fetch with
        path: Export endpoint path
        params: Filter parameters (no page/limit)
        output_dir: Directory to save the file
        prefix: File name prefix (e.g. "inquiries")

    Returns:
        Path to the written file
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    content = await transport.download(path, params)
    filepath = output_dir / export_filename(prefix)
    with open(filepath, "wb") as f:
        f.write(content)

    logger.info(f"Exported {len(content)} bytes to {filepath}")
    return filepath
