"""Tests for the host reconciler."""

from datetime import datetime, timezone

from glbc.cluster import ANNOTATION_HCG_CUSTOM_HOST_REPLACED, ANNOTATION_HCG_HOST
from glbc.reconciler.ingress.host import (
    HostReconciler,
    generate_host_id,
    remove_hosts_from_tls,
)
from glbc.reconciler.ingress.reconciler import ReconcileStatus

from tests import DOMAIN, new_ingress

MANAGED_HOST = f"abc.{DOMAIN}"


async def test_generate_host() -> None:
    """Test a host is generated and the chain stops so it can be persisted."""
    reconciler = HostReconciler(DOMAIN, lambda: "abc")
    ingress = new_ingress(hosts=["echo.example.com"])
    assert await reconciler.reconcile(ingress) == ReconcileStatus.STOP
    assert ingress.metadata.annotations[ANNOTATION_HCG_HOST] == MANAGED_HOST
    assert ingress.spec.rules[0].host == "echo.example.com"


async def test_replace_custom_hosts() -> None:
    """Test custom hosts are replaced by the managed host."""
    reconciler = HostReconciler(DOMAIN, lambda: "unused")
    ingress = new_ingress(
        annotations={ANNOTATION_HCG_HOST: MANAGED_HOST},
        hosts=["echo.example.com", MANAGED_HOST, ""],
        tls_hosts=["echo.example.com"],
    )
    assert await reconciler.reconcile(ingress) == ReconcileStatus.CONTINUE
    assert [rule.host for rule in ingress.spec.rules] == [MANAGED_HOST] * 3
    assert ingress.spec.tls == []
    assert "echo.example.com" in ingress.metadata.annotations[
        ANNOTATION_HCG_CUSTOM_HOST_REPLACED
    ]


async def test_managed_host_unchanged() -> None:
    """Test an Ingress already using the managed host is left alone."""
    reconciler = HostReconciler(DOMAIN)
    ingress = new_ingress(
        annotations={ANNOTATION_HCG_HOST: MANAGED_HOST}, hosts=[MANAGED_HOST]
    )
    assert await reconciler.reconcile(ingress) == ReconcileStatus.CONTINUE
    assert ANNOTATION_HCG_CUSTOM_HOST_REPLACED not in ingress.metadata.annotations


async def test_deleting() -> None:
    """Test no host is generated for an Ingress being deleted."""
    reconciler = HostReconciler(DOMAIN)
    ingress = new_ingress()
    ingress.metadata.deletion_timestamp = datetime.now(timezone.utc)
    assert await reconciler.reconcile(ingress) == ReconcileStatus.CONTINUE
    assert ANNOTATION_HCG_HOST not in ingress.metadata.annotations


def test_remove_hosts_from_tls() -> None:
    """Test TLS entries left without hosts are dropped."""
    ingress = new_ingress(tls_hosts=["a.example.com", "b.example.com"])
    remove_hosts_from_tls(["a.example.com"], ingress)
    assert ingress.spec.tls[0].hosts == ["b.example.com"]
    remove_hosts_from_tls(["b.example.com"], ingress)
    assert ingress.spec.tls == []


def test_generate_host_id() -> None:
    host_id = generate_host_id()
    assert len(host_id) == 20
    assert host_id != generate_host_id()
