"""Test fixtures for the ingress controller."""

import pytest

from glbc.dns import StaticHostResolver
from glbc.informer import Informer
from glbc.manifest import DNSRecord, Ingress
from glbc.metrics import InMemoryMetricsSink
from glbc.reconciler.ingress import IngressController
from glbc.store import InMemoryObjectStore
from glbc.tls import CertManagerConfig, CertManagerProvider

from tests import DOMAIN

HOST_ID = "abc"
LB_HOSTNAME = "lb.example.com"
LB_ADDRESSES = ["10.0.0.2", "10.0.0.3"]


@pytest.fixture(name="resolver")
def resolver_fixture() -> StaticHostResolver:
    return StaticHostResolver({LB_HOSTNAME: LB_ADDRESSES})


@pytest.fixture(name="provider")
def provider_fixture(
    control_store: InMemoryObjectStore, metrics: InMemoryMetricsSink
) -> CertManagerProvider:
    return CertManagerProvider(
        control_store, CertManagerConfig(domains=[DOMAIN]), metrics, env={}
    )


@pytest.fixture(name="ingress_informer")
def ingress_informer_fixture(workspace_store: InMemoryObjectStore) -> Informer[Ingress]:
    return Informer(workspace_store, Ingress)


@pytest.fixture(name="dns_record_informer")
def dns_record_informer_fixture(
    workspace_store: InMemoryObjectStore,
) -> Informer[DNSRecord]:
    return Informer(workspace_store, DNSRecord)


@pytest.fixture(name="controller")
def controller_fixture(
    ingress_informer: Informer[Ingress],
    dns_record_informer: Informer[DNSRecord],
    provider: CertManagerProvider,
    resolver: StaticHostResolver,
    metrics: InMemoryMetricsSink,
) -> IngressController:
    """Create an IngressController generating predictable hosts."""
    return IngressController(
        ingress_informer,
        dns_record_informer,
        provider,
        resolver,
        metrics,
        domain=DOMAIN,
        dns_ttl=30,
        generate_id=lambda: HOST_ID,
    )
