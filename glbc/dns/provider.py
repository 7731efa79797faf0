"""Interface for publishing DNS records to a DNS backend."""

from abc import ABC, abstractmethod
import copy
import logging

from glbc.manifest import DNSRecord, Endpoint

__all__ = [
    "DNSProvider",
    "InMemoryDNSProvider",
    "PROVIDER_SPECIFIC_WEIGHT",
]

_LOGGER = logging.getLogger(__name__)

# Provider specific property holding the weight of a record in a weighted set
PROVIDER_SPECIFIC_WEIGHT = "aws/weight"


class DNSProvider(ABC):
    """A DNS backend records are published to."""

    @abstractmethod
    async def ensure(self, record: DNSRecord) -> None:
        """Create or replace the record set of a DNSRecord."""

    @abstractmethod
    async def delete(self, record: DNSRecord) -> None:
        """Remove the record set of a DNSRecord, succeeding if already absent."""


class InMemoryDNSProvider(DNSProvider):
    """DNS provider keeping published records in memory."""

    def __init__(self) -> None:
        self._records: dict[tuple[str, str | None, str], list[Endpoint]] = {}

    @staticmethod
    def _key(record: DNSRecord) -> tuple[str, str | None, str]:
        return (record.cluster, record.namespace, record.name)

    async def ensure(self, record: DNSRecord) -> None:
        _LOGGER.debug("Publishing %d endpoints for %s", len(record.spec.endpoints), record.name)
        self._records[self._key(record)] = copy.deepcopy(record.spec.endpoints)

    async def delete(self, record: DNSRecord) -> None:
        if self._records.pop(self._key(record), None) is not None:
            _LOGGER.debug("Removed endpoints for %s", record.name)

    def endpoints(self) -> list[Endpoint]:
        """Return every published endpoint."""
        return [
            copy.deepcopy(endpoint)
            for endpoints in self._records.values()
            for endpoint in endpoints
        ]

    def lookup(self, dns_name: str) -> list[str]:
        """Return the targets published for a DNS name."""
        return sorted(
            target
            for endpoint in self.endpoints()
            if endpoint.dns_name == dns_name
            for target in endpoint.targets
        )
