"""Test basic package functionality."""

import storage_client_core


def test_version():
    """Test that package version is defined."""
    assert hasattr(storage_client_core, "__version__")
    assert storage_client_core.__version__ == "0.1.0"
