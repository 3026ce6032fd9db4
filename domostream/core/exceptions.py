"""Exception classes for the Domo stream upload client."""


class DomoStreamError(Exception):
    """Base error for the stream upload client."""


class SerializationError(DomoStreamError):
    """Raised when rows cannot be serialized into a data part."""


class TransportError(DomoStreamError):
    """Raised when a request to the Domo API cannot be completed."""


class DomoHTTPError(TransportError):
    """Raised when the Domo API answers with a non-success status."""

    def __init__(self, status_code: int, detail: str | None = None):
        """Initialize DomoHTTPError with the response status and detail.

        Args:
            status_code: HTTP status code returned by the API.
            detail: Error detail extracted from the response body.
        """
        message = f"HTTP {status_code}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class NoActiveExecutionError(DomoStreamError):
    """Raised when an execution operation needs an active execution."""


class AuthenticationError(DomoStreamError):
    """Raised when an access token cannot be obtained."""


class ConfigError(DomoStreamError):
    """Raised when the upload configuration is missing or invalid."""
