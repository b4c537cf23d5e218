"""Error types raised by transports and surfaced in collection state."""


class SyncError(Exception):
    """Base class for all crm-sync errors."""

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TransportError(SyncError):
    """A request did not produce a successful response."""

    kind = "transport"


class NetworkFailure(TransportError):
    """The API could not be reached (connection refused, DNS, timeout)."""

    kind = "network"


class ServerRejection(TransportError):
    """The API answered with a 4xx/5xx status."""

    kind = "server"

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ValidationFailure(SyncError):
    """A payload was rejected before it was sent."""

    kind = "validation"
