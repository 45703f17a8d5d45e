"""Shared pytest fixtures for projectmonitor tests."""

import pytest

from projectmonitor.engines.baseline import MemoryBaselineStore


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture
def memory_store():
    return MemoryBaselineStore()
