"""Tests for the certificate provider helpers."""

from glbc.cluster import ANNOTATION_HCG_HOST, new_control_object_mapper
from glbc.tls import FakeProvider, is_valid_domain

from tests import new_ingress


def test_is_valid_domain() -> None:
    """Test hosts are matched against the allowed domain suffixes."""
    assert is_valid_domain("abc.hcpapps.net", ["hcpapps.net"])
    assert is_valid_domain("abc.hcpapps.net", ["example.com", "hcpapps.net"])
    assert not is_valid_domain("abc.example.com", ["hcpapps.net"])
    assert not is_valid_domain("abc.hcpapps.net", [])


async def test_fake_provider() -> None:
    """Test the fake provider accepts every request."""
    provider = FakeProvider()
    request = new_control_object_mapper(
        new_ingress(annotations={ANNOTATION_HCG_HOST: "abc.example.com"})
    )
    await provider.initialize()
    await provider.create(request)
    await provider.delete(request)
    assert provider.issuer_id == "fake"
    assert provider.domains == []
