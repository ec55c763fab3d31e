"""Storage Client Core - transport abstraction for a cloud storage client library.

This library separates what a storage call means from how it travels:
- A transport interface (`StorageClient`) implemented once per wire protocol
- Per-call options resolved onto copies of the client's default settings
- Retry policy and idempotency carried down to the transport's retry loop
- A uniform error taxonomy whatever transport raised it

Example:
    ```python
    from storage_client_core.options import idempotent, with_client_options, with_retry_config
    from storage_client_core.transport import HTTPStorageClient, RetryConfig, with_endpoint

    client = HTTPStorageClient(
        "billing-project",
        with_client_options(with_endpoint("https://storage.googleapis.com/storage/v1/")),
    )

    # Call-scoped options never touch client.settings
    attrs = await client.get_object(
        "bucket",
        "object",
        with_retry_config(RetryConfig(max_attempts=3)),
        idempotent(True),
    )
    ```
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
