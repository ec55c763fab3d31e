"""Structured exceptions for storage API errors."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from storage_client_core.errors.models import ErrorDetails


class StorageError(Exception):
    """Base exception for everything raised by this library."""

    pass


class UnimplementedError(StorageError):
    """Raised when a transport does not support the requested operation."""

    def __init__(self, method: str, transport: str | None = None):
        message = f"{method} is not implemented by this transport"
        if transport:
            message = f"{method} is not implemented by the {transport} transport"
        super().__init__(message)
        self.method = method
        self.transport = transport


class APIError(StorageError):
    """Base exception for errors surfaced by the remote service."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response: "httpx.Response | None" = None,
        details: "ErrorDetails | None" = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response
        self.details = details

    @property
    def reason(self) -> str | None:
        """First machine-readable reason reported by the service, if any."""
        if self.details is None:
            return None
        return self.details.reason


class ClientError(APIError):
    """4xx client errors."""

    pass


class BadRequestError(ClientError):
    """400 Bad Request."""

    pass


class UnauthorizedError(ClientError):
    """401 Unauthorized."""

    pass


class ForbiddenError(ClientError):
    """403 Forbidden."""

    pass


class NotFoundError(ClientError):
    """404 Not Found."""

    pass


class ConflictError(ClientError):
    """409 Conflict."""

    pass


class PreconditionFailedError(ClientError):
    """412 Precondition Failed (a generation or metageneration condition did not hold)."""

    pass


class RateLimitError(ClientError):
    """429 Too Many Requests."""

    def __init__(self, message: str, retry_after: int | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class ServerError(APIError):
    """5xx server errors."""

    pass


class NetworkError(APIError):
    """The request never produced a response (DNS, connect, read failures)."""

    pass


class DeadlineExceededError(APIError):
    """The call deadline elapsed before the service answered."""

    pass


class RewriteCompleteError(StorageError):
    """Raised when advancing a rewrite that has already finished."""

    pass
