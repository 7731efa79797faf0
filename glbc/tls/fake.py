"""A certificate provider that never issues anything."""

import logging

from .provider import CertificateProvider, CertificateRequest

_LOGGER = logging.getLogger(__name__)

FAKE_ISSUER = "fake"


class FakeProvider(CertificateProvider):
    """Provider used when TLS is disabled."""

    @property
    def issuer_id(self) -> str:
        return FAKE_ISSUER

    @property
    def domains(self) -> list[str]:
        return []

    async def initialize(self) -> None:
        pass

    async def create(self, request: CertificateRequest) -> None:
        _LOGGER.debug("Ignoring certificate request for %s", request.host)

    async def delete(self, request: CertificateRequest) -> None:
        pass
