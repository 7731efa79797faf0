"""Tests for the in memory DNS provider."""

from glbc.dns import InMemoryDNSProvider
from glbc.manifest import DNSRecord, DNSRecordSpec, Endpoint, ObjectMeta


def new_record(name: str, dns_name: str, *targets: str) -> DNSRecord:
    return DNSRecord(
        metadata=ObjectMeta(name=name, namespace="default", cluster="root:org:ws"),
        spec=DNSRecordSpec(
            endpoints=[Endpoint(dns_name=dns_name, targets=[t]) for t in targets]
        ),
    )


async def test_ensure_replaces_record_set() -> None:
    """Test ensuring a record replaces its previous endpoints."""
    provider = InMemoryDNSProvider()
    await provider.ensure(new_record("echo", "a.hcpapps.net", "10.0.0.2", "10.0.0.1"))
    await provider.ensure(new_record("other", "b.hcpapps.net", "10.0.0.9"))
    assert provider.lookup("a.hcpapps.net") == ["10.0.0.1", "10.0.0.2"]

    await provider.ensure(new_record("echo", "a.hcpapps.net", "10.0.0.3"))
    assert provider.lookup("a.hcpapps.net") == ["10.0.0.3"]
    assert len(provider.endpoints()) == 2


async def test_delete() -> None:
    """Test deleting a record removes only its endpoints."""
    provider = InMemoryDNSProvider()
    record = new_record("echo", "a.hcpapps.net", "10.0.0.1")
    await provider.ensure(record)
    await provider.ensure(new_record("other", "b.hcpapps.net", "10.0.0.9"))

    await provider.delete(record)
    await provider.delete(record)
    assert provider.lookup("a.hcpapps.net") == []
    assert provider.lookup("b.hcpapps.net") == ["10.0.0.9"]
    assert provider.lookup("unknown.hcpapps.net") == []
