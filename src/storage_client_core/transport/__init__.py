"""Concrete storage transports and the pieces they share.

Modules:
    http: StorageClient implementation for the JSON API over httpx
    retry: Retry configuration and the retry loop run inside transports
    client_options: Options applied while constructing a transport

Example:
    ```python
    from storage_client_core.options import with_client_options, with_retry_config
    from storage_client_core.transport import HTTPStorageClient, RetryConfig, with_endpoint

    client = HTTPStorageClient(
        "billing-project",
        with_retry_config(RetryConfig(max_attempts=5)),
        with_client_options(with_endpoint("http://localhost:4443/storage/v1/")),
    )
    ```
"""

from storage_client_core.transport.client_options import (
    ClientConfig,
    ClientOption,
    with_endpoint,
    with_event_hook,
    with_headers,
    with_http_client,
    with_timeout,
    with_transport,
)
from storage_client_core.transport.http import HTTPStorageClient, new_http_storage_client
from storage_client_core.transport.retry import Backoff, RetryConfig, RetryPolicy, is_retryable, run_with_retry

__all__ = [
    "Backoff",
    "ClientConfig",
    "ClientOption",
    "HTTPStorageClient",
    "RetryConfig",
    "RetryPolicy",
    "is_retryable",
    "new_http_storage_client",
    "run_with_retry",
    "with_endpoint",
    "with_event_hook",
    "with_headers",
    "with_http_client",
    "with_timeout",
    "with_transport",
]
