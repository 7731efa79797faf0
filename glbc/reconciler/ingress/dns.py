"""Derives the DNSRecord of an Ingress from its load balancer status."""

import copy
import logging

from glbc.cluster import ANNOTATION_HCG_HOST
from glbc.dns import PROVIDER_SPECIFIC_WEIGHT, HostResolver
from glbc.exceptions import ObjectNotFoundError
from glbc.manifest import DNSRecord, Endpoint, Ingress, ObjectMeta
from glbc.store import ObjectStore

from .reconciler import Reconciler, ReconcileStatus

_LOGGER = logging.getLogger(__name__)

# Records the Ingress a DNSRecord was derived from
ANNOTATION_INGRESS_KEY = "kuadrant.dev/ingress-key"

MAX_WEIGHT = 120


def endpoint_weight(num_targets: int) -> str:
    """Return the weight of one record in a set splitting traffic evenly.

    The weight of a cluster is split across its addresses, so past
    MAX_WEIGHT addresses every record gets a weight of 1.
    """
    return str(MAX_WEIGHT // min(max(num_targets, 1), MAX_WEIGHT))


class DNSReconciler(Reconciler):
    """Maintains one DNSRecord per Ingress."""

    def __init__(self, store: ObjectStore, resolver: HostResolver, ttl: int) -> None:
        self._store = store
        self._resolver = resolver
        self._ttl = ttl

    async def reconcile(self, ingress: Ingress) -> ReconcileStatus:
        if ingress.deleting:
            try:
                await self._store.delete(
                    DNSRecord, ingress.cluster, ingress.namespace, ingress.name
                )
            except ObjectNotFoundError:
                pass
            return ReconcileStatus.CONTINUE

        if not (host := ingress.metadata.annotations.get(ANNOTATION_HCG_HOST)):
            return ReconcileStatus.CONTINUE
        endpoints = await self._endpoints(ingress, host)

        try:
            existing = await self._store.get(
                DNSRecord, ingress.cluster, ingress.namespace, ingress.name
            )
        except ObjectNotFoundError:
            record = DNSRecord(
                metadata=ObjectMeta(
                    name=ingress.name,
                    namespace=ingress.namespace,
                    cluster=ingress.cluster,
                    annotations={
                        ANNOTATION_INGRESS_KEY: f"{ingress.namespace}/{ingress.name}"
                    },
                ),
            )
            record.spec.endpoints = endpoints
            await self._store.create(record)
            _LOGGER.info("Created DNSRecord %s for %s", ingress.name, host)
            return ReconcileStatus.CONTINUE

        record = copy.deepcopy(existing)
        record.spec.endpoints = endpoints
        if record.spec != existing.spec:
            _LOGGER.info("Updating DNSRecord %s targets", ingress.name)
            await self._store.update(record)
        return ReconcileStatus.CONTINUE

    async def _targets(self, ingress: Ingress) -> dict[str, list[str]]:
        """Return the addresses of each load balancer of the Ingress."""
        targets: dict[str, list[str]] = {}
        for lb in ingress.status.load_balancer.ingress:
            if lb.ip:
                targets[lb.ip] = [lb.ip]
            if lb.hostname:
                targets[lb.hostname] = await self._resolver.lookup(lb.hostname)
        return targets

    async def _endpoints(self, ingress: Ingress, host: str) -> list[Endpoint]:
        endpoints = []
        for addresses in (await self._targets(ingress)).values():
            for address in addresses:
                endpoints.append(
                    Endpoint(
                        dns_name=host,
                        targets=[address],
                        record_type="A",
                        record_ttl=self._ttl,
                        set_identifier=address,
                        provider_specific={
                            PROVIDER_SPECIFIC_WEIGHT: endpoint_weight(len(addresses))
                        },
                    )
                )
        return endpoints
