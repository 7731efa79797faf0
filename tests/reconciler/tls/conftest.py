"""Test fixtures for the TLS controller."""

from datetime import timedelta

import pytest

from glbc.informer import Informer
from glbc.manifest import Scope, Secret
from glbc.metrics import InMemoryMetricsSink
from glbc.reconciler.tls import TLSController
from glbc.store import InMemoryObjectStore

from tests import CERTIFICATE_NAMESPACE, StepClock

# Time between consecutive workspace object creations
CLOCK_STEP = timedelta(seconds=30)


@pytest.fixture(name="workspace_store")
def workspace_store_fixture() -> InMemoryObjectStore:
    """Create a workspace store whose clock advances on every creation."""
    return InMemoryObjectStore(Scope.WORKSPACE, clock=StepClock(step=CLOCK_STEP))


@pytest.fixture(name="secret_informer")
def secret_informer_fixture(control_store: InMemoryObjectStore) -> Informer[Secret]:
    """Create an informer over control-plane secrets."""
    return Informer(control_store, Secret, namespace=CERTIFICATE_NAMESPACE)


@pytest.fixture(name="controller")
def controller_fixture(
    secret_informer: Informer[Secret],
    workspace_store: InMemoryObjectStore,
    metrics: InMemoryMetricsSink,
) -> TLSController:
    """Create a TLSController over the in-memory stores."""
    return TLSController(secret_informer, workspace_store, metrics)
