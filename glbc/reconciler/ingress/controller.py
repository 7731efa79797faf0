"""Controller assigning hosts, certificates and DNS records to Ingresses."""

from collections.abc import Callable
import copy
import logging

from glbc.dns import HostResolver
from glbc.exceptions import ObjectNotFoundError
from glbc.informer import EventHandler, Informer
from glbc.manifest import DNSRecord, Ingress, ResourceIdentity
from glbc.metrics import MetricsSink
from glbc.reconciler.controller import Controller
from glbc.reconciler.metadata import (
    add_finalizer,
    remove_finalizer,
    remove_finalizers_with_prefix,
)
from glbc.tls import CertificateProvider

from .certificate import CertificateReconciler
from .dns import DNSReconciler
from .host import HostReconciler, generate_host_id
from .reconciler import Reconciler, ReconcileStatus

__all__ = [
    "IngressController",
    "CASCADE_CLEANUP_FINALIZER",
    "SYNCER_FINALIZER_PREFIX",
]

_LOGGER = logging.getLogger(__name__)

CONTROLLER_NAME = "glbc-ingress"
CASCADE_CLEANUP_FINALIZER = "kcp.dev/cascade-cleanup"
SYNCER_FINALIZER_PREFIX = "workload.kcp.dev/syncer-"


class IngressController(Controller):
    """Reconciles workspace Ingresses through a chain of reconcilers.

    The host reconciler runs first since the certificate and DNS reconcilers
    depend on the generated host. Changes made by the chain are persisted
    with a single update at the end of the pass.
    """

    def __init__(
        self,
        ingress_informer: Informer[Ingress],
        dns_record_informer: Informer[DNSRecord],
        provider: CertificateProvider,
        resolver: HostResolver,
        metrics: MetricsSink,
        domain: str,
        dns_ttl: int = 60,
        generate_id: Callable[[], str] = generate_host_id,
    ) -> None:
        super().__init__(CONTROLLER_NAME, metrics)
        self._ingresses = ingress_informer
        self._store = ingress_informer.store
        self._reconcilers: list[Reconciler] = [
            HostReconciler(domain, generate_id),
            CertificateReconciler(provider),
            DNSReconciler(dns_record_informer.store, resolver, dns_ttl),
        ]
        self.watch(ingress_informer)
        # DNSRecords share the identity of the Ingress they are derived from
        self.add_informer(dns_record_informer)
        dns_record_informer.add_event_handler(
            EventHandler(
                on_update=lambda _, record: self._enqueue_owner(record),
                on_delete=self._enqueue_owner,
            )
        )

    def _enqueue_owner(self, record: DNSRecord) -> None:
        identity = self._ingresses.identity(record)
        if identity in self._ingresses.cache:
            self.enqueue(identity)

    async def process(self, identity: ResourceIdentity) -> None:
        if (current := self.cached(self._ingresses, identity)) is None:
            return
        target = copy.deepcopy(current)
        if not target.deleting:
            add_finalizer(target, CASCADE_CLEANUP_FINALIZER)

        for reconciler in self._reconcilers:
            if await reconciler.reconcile(target) == ReconcileStatus.STOP:
                break

        if target.deleting:
            remove_finalizer(target, CASCADE_CLEANUP_FINALIZER)
            remove_finalizers_with_prefix(target, SYNCER_FINALIZER_PREFIX)

        if target == current:
            return
        _LOGGER.debug("Updating changed ingress %s", identity)
        try:
            await self._store.update(target)
        except ObjectNotFoundError:
            if not target.deleting:
                raise
            _LOGGER.debug("Ingress %s already removed", identity)
