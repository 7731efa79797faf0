"""Assigns the managed host of an Ingress."""

from collections.abc import Callable
import logging
import uuid

from glbc.cluster import ANNOTATION_HCG_CUSTOM_HOST_REPLACED, ANNOTATION_HCG_HOST
from glbc.manifest import Ingress

from .reconciler import Reconciler, ReconcileStatus

_LOGGER = logging.getLogger(__name__)


def generate_host_id() -> str:
    return uuid.uuid4().hex[:20]


def remove_hosts_from_tls(hosts: list[str], ingress: Ingress) -> None:
    """Remove hosts from the TLS section, dropping entries left without hosts."""
    if not hosts:
        return
    remaining = []
    for tls in ingress.spec.tls:
        tls.hosts = [host for host in tls.hosts if host not in hosts]
        if tls.hosts:
            remaining.append(tls)
    ingress.spec.tls = remaining


class HostReconciler(Reconciler):
    """Generates a host under the managed domain and applies it to every rule."""

    def __init__(
        self, domain: str, generate_id: Callable[[], str] = generate_host_id
    ) -> None:
        self._domain = domain
        self._generate_id = generate_id

    async def reconcile(self, ingress: Ingress) -> ReconcileStatus:
        if ingress.deleting:
            return ReconcileStatus.CONTINUE
        annotations = ingress.metadata.annotations
        if not annotations.get(ANNOTATION_HCG_HOST):
            host = f"{self._generate_id()}.{self._domain}"
            _LOGGER.info("Assigning host %s to ingress %s", host, ingress.name)
            annotations[ANNOTATION_HCG_HOST] = host
            # The host must be persisted before a certificate is requested for it
            return ReconcileStatus.STOP

        managed_host = annotations[ANNOTATION_HCG_HOST]
        custom_hosts = []
        for rule in ingress.spec.rules:
            if rule.host != managed_host:
                if rule.host:
                    custom_hosts.append(rule.host)
                rule.host = managed_host
        remove_hosts_from_tls(custom_hosts, ingress)
        if custom_hosts:
            annotations[ANNOTATION_HCG_CUSTOM_HOST_REPLACED] = (
                f"replaced custom hosts {', '.join(custom_hosts)} to the glbc host "
                "due to custom host policy not being allowed"
            )
        return ReconcileStatus.CONTINUE
