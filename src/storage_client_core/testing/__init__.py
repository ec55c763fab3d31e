"""Testing utilities for code built on storage transports.

Example:
    ```python
    from storage_client_core.models import BucketAttrs
    from storage_client_core.options import idempotent
    from storage_client_core.testing import InMemoryStorageClient


    async def test_reads_bucket():
        client = InMemoryStorageClient("billing-project")
        await client.create_bucket("project", BucketAttrs(name="b"))
        await client.get_bucket("b", idempotent(True))
        method, settings = client.calls[-1]
        assert settings.idempotent
    ```
"""

from storage_client_core.testing.memory import InMemoryStorageClient, MemoryObjectReader, MemoryObjectWriter

__all__ = [
    "InMemoryStorageClient",
    "MemoryObjectReader",
    "MemoryObjectWriter",
]
