"""Test fixtures shared by all glbc tests."""

import pytest

from glbc.manifest import Scope
from glbc.metrics import InMemoryMetricsSink
from glbc.store import InMemoryObjectStore


@pytest.fixture(name="workspace_store")
def workspace_store_fixture() -> InMemoryObjectStore:
    """Create an in-memory workspace store."""
    return InMemoryObjectStore(Scope.WORKSPACE)


@pytest.fixture(name="control_store")
def control_store_fixture() -> InMemoryObjectStore:
    """Create an in-memory control-plane store."""
    return InMemoryObjectStore(Scope.CONTROL_PLANE)


@pytest.fixture(name="metrics")
def metrics_fixture() -> InMemoryMetricsSink:
    """Create a metrics sink recording values in memory."""
    return InMemoryMetricsSink()
