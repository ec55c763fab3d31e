"""Error taxonomy and normalization for storage transports."""

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
    RewriteCompleteError,
    ServerError,
    StorageError,
    UnauthorizedError,
    UnimplementedError,
)
from storage_client_core.errors.handler import error_from_response, raise_for_status, wrap_error
from storage_client_core.errors.models import ErrorDetails, ErrorItem

__all__ = [
    "APIError",
    "BadRequestError",
    "ClientError",
    "ConflictError",
    "DeadlineExceededError",
    "ErrorDetails",
    "ErrorItem",
    "ForbiddenError",
    "NetworkError",
    "NotFoundError",
    "PreconditionFailedError",
    "RateLimitError",
    "RewriteCompleteError",
    "ServerError",
    "StorageError",
    "UnauthorizedError",
    "UnimplementedError",
    "error_from_response",
    "raise_for_status",
    "wrap_error",
]
