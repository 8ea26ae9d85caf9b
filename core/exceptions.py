"""Custom exception hierarchy for the meter relay."""


class RelayError(Exception):
    """Base exception for all relay errors."""


class ConfigurationError(RelayError):
    """Raised when configuration is missing or invalid."""


class InvalidEnvelope(RelayError):
    """Forward envelope is malformed or targets a disallowed URL."""


class DownstreamError(RelayError):
    """Raised when the downstream endpoint could not be reached.

    Attributes:
        message: Error message
        code: Failure class ('ENOTFOUND', 'ECONNREFUSED', 'timeout',
            'certificate' or 'connection_error')
        status_code: HTTP status the relay answers with
    """

    status_code = 502

    def __init__(self, message: str, code: str = "connection_error") -> None:
        super().__init__(message)
        self.code = code


class DownstreamTimeoutError(DownstreamError):
    """Raised when the downstream call exceeds the configured timeout."""

    status_code = 504

    def __init__(self, message: str) -> None:
        super().__init__(message, code="timeout")


class DownstreamConnectionError(DownstreamError):
    """Raised when unable to connect to the downstream endpoint."""


class RequestTooLarge(RelayError):
    """Request body exceeds size limit."""


class InvalidJSON(RelayError):
    """Request body is not valid JSON."""


class ClientDisconnected(RelayError):
    """Inbound client went away before the downstream answered."""
