"""Error normalization for storage transports."""

import httpx

from storage_client_core.errors.exceptions import (
    APIError,
    BadRequestError,
    ClientError,
    ConflictError,
    DeadlineExceededError,
    ForbiddenError,
    NetworkError,
    NotFoundError,
    PreconditionFailedError,
    RateLimitError,
    ServerError,
    StorageError,
    UnauthorizedError,
)
from storage_client_core.errors.models import ErrorDetails

_EXCEPTION_MAP: dict[int, type[APIError]] = {
    400: BadRequestError,
    401: UnauthorizedError,
    403: ForbiddenError,
    404: NotFoundError,
    409: ConflictError,
    412: PreconditionFailedError,
    429: RateLimitError,
}


def error_from_response(response: httpx.Response) -> APIError:
    """Build the APIError subclass matching an HTTP error response.

    The response body must already be read.

    Args:
        response: HTTP response object

    Returns:
        APIError subclass instance based on status code
    """
    status_code = response.status_code

    if status_code in _EXCEPTION_MAP:
        exc_class = _EXCEPTION_MAP[status_code]
    elif 400 <= status_code < 500:
        exc_class = ClientError
    elif 500 <= status_code < 600:
        exc_class = ServerError
    else:
        exc_class = APIError

    details = ErrorDetails.from_response(response)
    if details:
        message = details.to_exception_message()
    else:
        response_text = response.text[:200]
        message = f"HTTP {status_code}: {response_text}" if response_text else f"HTTP {status_code}"

    if exc_class is RateLimitError:
        retry_after = None
        if "retry-after" in response.headers:
            try:
                retry_after = int(response.headers["retry-after"])
            except (ValueError, TypeError):
                retry_after = None
        return RateLimitError(
            message=message,
            retry_after=retry_after,
            status_code=status_code,
            response=response,
            details=details,
        )

    return exc_class(
        message=message,
        status_code=status_code,
        response=response,
        details=details,
    )


def raise_for_status(response: httpx.Response) -> None:
    """Raise the appropriate APIError for HTTP error responses.

    Args:
        response: HTTP response object

    Raises:
        APIError subclass based on status code
    """
    if response.is_success:
        return
    raise error_from_response(response)


def wrap_error(exc: Exception) -> StorageError:
    """Normalize any failure of a remote call into the library's error types.

    Errors that already belong to the library are returned unchanged, so
    wrapping is safe to apply more than once.

    Args:
        exc: The exception raised while performing the call

    Returns:
        A StorageError suitable for raising to the caller
    """
    if isinstance(exc, StorageError):
        return exc
    if isinstance(exc, httpx.HTTPStatusError):
        return error_from_response(exc.response)
    if isinstance(exc, (httpx.TimeoutException, TimeoutError)):
        return DeadlineExceededError(str(exc) or "deadline exceeded")
    if isinstance(exc, httpx.TransportError):
        return NetworkError(str(exc) or type(exc).__name__)
    return APIError(str(exc) or type(exc).__name__)
