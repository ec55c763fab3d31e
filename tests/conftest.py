"""Pytest configuration and shared fixtures for storage-client-core tests."""

import pytest

from storage_client_core.config import ConfigResolver
from storage_client_core.models import BucketAttrs
from storage_client_core.testing import InMemoryStorageClient


@pytest.fixture(autouse=True)
def clear_env(monkeypatch):
    """Auto-cleanup: Clear storage-related environment variables before each test.

    This keeps a developer's STORAGE_EMULATOR_HOST from leaking into endpoint tests.
    """
    import os

    test_prefixes = ("TEST_", "STORAGE_")

    for key in list(os.environ.keys()):
        if any(key.startswith(prefix) for prefix in test_prefixes):
            monkeypatch.delenv(key, raising=False)

    yield


@pytest.fixture
def resolver():
    """Resolver that ignores any .env file on the machine running the tests."""
    return ConfigResolver(load_dotenv=False)


@pytest.fixture
async def memory_client():
    """In-memory transport with one empty bucket named "bucket"."""
    client = InMemoryStorageClient("billing-project")
    await client.create_bucket("project", BucketAttrs(name="bucket"))
    client.calls.clear()
    yield client
    await client.close()

