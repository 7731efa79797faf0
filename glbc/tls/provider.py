"""Interfaces for issuing TLS certificates for generated hosts."""

from abc import ABC, abstractmethod
from datetime import datetime
import logging

__all__ = [
    "ANNOTATION_TLS_ISSUER",
    "CertificateRequest",
    "CertificateProvider",
    "is_valid_domain",
]

_LOGGER = logging.getLogger(__name__)

# Identifies the provider that issued a control-plane secret
ANNOTATION_TLS_ISSUER = "kuadrant.dev/tls-issuer"


class CertificateRequest(ABC):
    """A request for a certificate covering a single host."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Name of the certificate and of the secret holding it."""

    @property
    @abstractmethod
    def host(self) -> str:
        """The host the certificate is issued for."""

    @property
    @abstractmethod
    def creation_timestamp(self) -> datetime | None:
        """When the object requesting the certificate was created."""

    @abstractmethod
    def labels(self) -> dict[str, str]:
        """Labels applied to the issued secret."""

    @abstractmethod
    def annotations(self) -> dict[str, str]:
        """Annotations applied to the issued secret."""


class CertificateProvider(ABC):
    """Issues and revokes certificates for an allow-list of domains."""

    @property
    @abstractmethod
    def issuer_id(self) -> str:
        """Identifier of the issuer, used as a metric label."""

    @property
    @abstractmethod
    def domains(self) -> list[str]:
        """Domains certificates may be issued for."""

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare the issuer, failing if it cannot be configured."""

    @abstractmethod
    async def create(self, request: CertificateRequest) -> None:
        """Request a certificate.

        Raises:
            InvalidDomainError: If the host is not covered by the allowed domains.
        """

    @abstractmethod
    async def delete(self, request: CertificateRequest) -> None:
        """Cancel or remove a certificate, succeeding if it is already absent."""


def is_valid_domain(host: str, allowed: list[str]) -> bool:
    """Return True if the host ends with one of the allowed domains."""
    return any(host.endswith(domain) for domain in allowed)
