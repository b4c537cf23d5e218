"""Tests for the requests-based transport (no network)."""

import asyncio
import json
from datetime import date
from unittest.mock import Mock

import pytest
import requests

from crm_sync.clients import HTTPTransport, Transport, export_filename
from crm_sync.errors import NetworkFailure, ServerRejection
from crm_sync.settings import SyncSettings


def make_response(status_code=200, body=None, raw=None):
    response = requests.Response()
    response.status_code = status_code
    if raw is not None:
        response._content = raw
    elif body is not None:
        response._content = json.dumps(body).encode()
    else:
        response._content = b""
    return response


@pytest.fixture
def session():
    session = requests.Session()
    session.request = Mock()
    return session


@pytest.fixture
def transport(session):
    return HTTPTransport("http://crm.test/api/", timeout=5, token="secret", session=session)


class TestHTTPTransport:
    """Tests for request building and response handling."""

    def test_implements_protocol(self, transport):
        """Test that the transport satisfies the Transport protocol."""
        assert isinstance(transport, Transport)

    def test_get(self, transport, session):
        """Test a listing request."""
        session.request.return_value = make_response(body={"clients": [], "total": 0})

        payload = asyncio.run(transport.get("clients", {"page": 1, "limit": 20}))

        assert payload == {"clients": [], "total": 0}
        session.request.assert_called_once_with(
            "GET",
            "http://crm.test/api/clients",
            params={"page": 1, "limit": 20},
            json=None,
            timeout=5,
        )

    def test_headers(self, transport, session):
        """Test auth and user agent headers."""
        assert session.headers["Authorization"] == "Bearer secret"
        assert session.headers["User-Agent"].startswith("crm-sync/")

    def test_post_body(self, transport, session):
        """Test that bodies are sent as JSON."""
        session.request.return_value = make_response(201, body={"_id": "c1"})

        asyncio.run(transport.post("clients", {"name": "Acme"}))

        args, kwargs = session.request.call_args
        assert args == ("POST", "http://crm.test/api/clients")
        assert kwargs["json"] == {"name": "Acme"}

    def test_server_message_preferred(self, transport, session):
        """Test that the server's message becomes the error."""
        session.request.return_value = make_response(404, body={"message": "Client not found"})

        with pytest.raises(ServerRejection) as exc_info:
            asyncio.run(transport.get("clients/zz"))

        assert exc_info.value.message == "Client not found"
        assert exc_info.value.status_code == 404

    def test_generic_message_fallback(self, transport, session):
        """Test errors without a JSON message."""
        session.request.return_value = make_response(502, raw=b"<html>Bad Gateway</html>")

        with pytest.raises(ServerRejection) as exc_info:
            asyncio.run(transport.delete("clients/c1"))

        assert exc_info.value.message == "Request failed"
        assert exc_info.value.status_code == 502

    def test_connection_error(self, transport, session):
        """Test unreachable API."""
        session.request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(NetworkFailure):
            asyncio.run(transport.get("clients"))

    def test_timeout(self, transport, session):
        """Test request timeout."""
        session.request.side_effect = requests.Timeout("slow")

        with pytest.raises(NetworkFailure) as exc_info:
            asyncio.run(transport.get("clients"))

        assert exc_info.value.kind == "network"

    @pytest.mark.parametrize(
        "error",
        [
            requests.exceptions.ChunkedEncodingError("connection broken"),
            requests.TooManyRedirects("loop"),
            requests.exceptions.InvalidURL("bad host"),
            requests.exceptions.ContentDecodingError("bad gzip"),
        ],
    )
    def test_other_request_errors(self, transport, session, error):
        """Test that every requests failure surfaces as a NetworkFailure."""
        session.request.side_effect = error

        with pytest.raises(NetworkFailure, match="failed") as exc_info:
            asyncio.run(transport.get("clients"))

        assert exc_info.value.__cause__ is error

    def test_empty_body(self, transport, session):
        """Test responses with no content."""
        session.request.return_value = make_response(204)
        assert asyncio.run(transport.patch("notifications/read-all")) is None

    def test_invalid_json(self, transport, session):
        """Test a success status with an unparseable body."""
        session.request.return_value = make_response(200, raw=b"not json")

        with pytest.raises(ServerRejection, match="Invalid JSON"):
            asyncio.run(transport.get("clients"))

    def test_download(self, transport, session):
        """Test raw byte downloads."""
        session.request.return_value = make_response(200, raw=b"Name,Phone\nAcme,123\n")

        content = asyncio.run(transport.download("clients/export", {"search": "acme"}))

        assert content == b"Name,Phone\nAcme,123\n"

    def test_external_session_not_closed(self, session):
        """Test that a caller-supplied session is left open."""
        session.close = Mock()
        with HTTPTransport(session=session):
            pass
        session.close.assert_not_called()

    def test_from_settings(self):
        """Test building from settings."""
        transport = HTTPTransport.from_settings(
            SyncSettings(base_url="https://crm.example.com/api", timeout=10)
        )
        assert transport.base_url == "https://crm.example.com/api"
        assert transport.timeout == 10
        assert "Authorization" not in transport.session.headers
        transport.close()


class TestExportFilename:
    """Tests for export file naming."""

    def test_name(self):
        """Test the dated file name."""
        assert export_filename("inquiries", date(2024, 3, 1)) == "inquiries_export_2024-03-01.csv"
