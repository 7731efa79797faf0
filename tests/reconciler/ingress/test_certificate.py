"""Tests for the certificate reconciler."""

from datetime import datetime, timezone

import pytest

from glbc.cluster import ANNOTATION_HCG_HOST, ANNOTATION_TLS_ENABLED
from glbc.exceptions import InvalidDomainError
from glbc.manifest import Certificate, Ingress, IngressTLS
from glbc.reconciler.ingress.certificate import CertificateReconciler, upsert_tls
from glbc.reconciler.ingress.reconciler import ReconcileStatus
from glbc.store import InMemoryObjectStore
from glbc.tls import CertManagerProvider

from tests import CREATION_TIMESTAMP, DOMAIN, new_ingress

HOST = f"abc.{DOMAIN}"
CERT_NAME = "rootorgws-default-echo"


def managed_ingress(host: str = HOST, tls_enabled: bool = False) -> Ingress:
    annotations = {ANNOTATION_HCG_HOST: host}
    if tls_enabled:
        annotations[ANNOTATION_TLS_ENABLED] = "true"
    ingress = new_ingress(annotations=annotations, hosts=[host])
    ingress.metadata.creation_timestamp = CREATION_TIMESTAMP
    return ingress


async def test_requests_certificate(
    provider: CertManagerProvider, control_store: InMemoryObjectStore
) -> None:
    """Test a certificate is requested once for the managed host."""
    reconciler = CertificateReconciler(provider)
    ingress = managed_ingress()
    assert await reconciler.reconcile(ingress) == ReconcileStatus.CONTINUE
    assert await reconciler.reconcile(ingress) == ReconcileStatus.CONTINUE

    certs = await control_store.list(Certificate)
    assert [cert.name for cert in certs] == [CERT_NAME]
    # The TLS section waits until the certificate has been mirrored
    assert ingress.spec.tls == []


async def test_no_host(
    provider: CertManagerProvider, control_store: InMemoryObjectStore
) -> None:
    """Test nothing is requested before a host is assigned."""
    reconciler = CertificateReconciler(provider)
    assert await reconciler.reconcile(new_ingress()) == ReconcileStatus.CONTINUE
    assert await control_store.list(Certificate) == []


async def test_tls_enabled(provider: CertManagerProvider) -> None:
    """Test the TLS section points at the mirrored secret once issued."""
    reconciler = CertificateReconciler(provider)
    ingress = managed_ingress(tls_enabled=True)
    await reconciler.reconcile(ingress)
    assert ingress.spec.tls == [IngressTLS(hosts=[HOST], secret_name=CERT_NAME)]


async def test_deleting(
    provider: CertManagerProvider, control_store: InMemoryObjectStore
) -> None:
    """Test the certificate is deleted with the Ingress."""
    reconciler = CertificateReconciler(provider)
    ingress = managed_ingress()
    await reconciler.reconcile(ingress)
    ingress.metadata.deletion_timestamp = datetime.now(timezone.utc)
    assert await reconciler.reconcile(ingress) == ReconcileStatus.CONTINUE
    assert await control_store.list(Certificate) == []


async def test_invalid_domain(provider: CertManagerProvider) -> None:
    """Test hosts outside the allowed domains fail the reconciliation."""
    reconciler = CertificateReconciler(provider)
    with pytest.raises(InvalidDomainError):
        await reconciler.reconcile(managed_ingress("abc.example.com"))


def test_upsert_tls() -> None:
    """Test TLS entries are replaced for the host or appended."""
    ingress = new_ingress(tls_hosts=[HOST])
    upsert_tls(ingress, HOST, "secret")
    assert ingress.spec.tls == [IngressTLS(hosts=[HOST], secret_name="secret")]

    upsert_tls(ingress, "other.example.com", "other")
    assert len(ingress.spec.tls) == 2
    assert ingress.spec.tls[1].secret_name == "other"
