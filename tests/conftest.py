"""
Pytest configuration and fixtures for testing.

This module provides shared fixtures for the registry, mock handles and
the FastAPI application.
"""

import os

import pytest

# Set environment variables before importing connhub modules
os.environ.setdefault("LOG_FILE_PATH", os.devnull)
os.environ.setdefault("ENVIRONMENT", "test")

from fastapi.testclient import TestClient  # noqa: E402

from connhub import application  # noqa: E402
from connhub.registry import ConnectionRegistry  # noqa: E402
from tests.mocks.connection_mocks import create_mock_handle  # noqa: E402


@pytest.fixture
def registry():
    """
    Provides an empty registry that clears entries on disconnect_all.

    Returns:
        ConnectionRegistry: Fresh registry instance
    """
    return ConnectionRegistry()


@pytest.fixture
def make_handle():
    """
    Provides the mock handle factory.

    Returns:
        Callable: create_mock_handle
    """
    return create_mock_handle


@pytest.fixture
def client():
    """
    Create a test client with the application lifespan running.

    Yields:
        TestClient: FastAPI test client instance.
    """
    with TestClient(application()) as test_client:
        yield test_client
