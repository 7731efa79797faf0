"""Controller publishing DNSRecords to the DNS provider."""

import copy
import logging

from glbc.dns import DNSProvider
from glbc.exceptions import ObjectNotFoundError
from glbc.informer import Informer
from glbc.manifest import DNSRecord, ResourceIdentity
from glbc.metrics import MetricsSink
from glbc.reconciler.controller import Controller
from glbc.reconciler.metadata import add_finalizer, remove_finalizer

__all__ = [
    "DNSRecordController",
    "DNS_RECORD_FINALIZER",
]

_LOGGER = logging.getLogger(__name__)

CONTROLLER_NAME = "glbc-dns"
DNS_RECORD_FINALIZER = "kcp.dev/cascade-cleanup"


class DNSRecordController(Controller):
    """Keeps the DNS provider in sync with DNSRecord objects."""

    def __init__(
        self,
        dns_record_informer: Informer[DNSRecord],
        provider: DNSProvider,
        metrics: MetricsSink,
    ) -> None:
        super().__init__(CONTROLLER_NAME, metrics)
        self._records = dns_record_informer
        self._store = dns_record_informer.store
        self._provider = provider
        self.watch(dns_record_informer)

    async def process(self, identity: ResourceIdentity) -> None:
        if (cached := self.cached(self._records, identity)) is None:
            return
        record = copy.deepcopy(cached)
        if record.deleting:
            await self._provider.delete(record)
            if remove_finalizer(record, DNS_RECORD_FINALIZER):
                try:
                    await self._store.update(record)
                except ObjectNotFoundError:
                    _LOGGER.debug("DNSRecord %s already removed", identity)
            return
        if add_finalizer(record, DNS_RECORD_FINALIZER):
            await self._store.update(record)
        await self._provider.ensure(record)
