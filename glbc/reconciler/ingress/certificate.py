"""Requests the certificate of an Ingress and points its TLS section at it."""

import logging

from glbc.cluster import ANNOTATION_HCG_HOST, ANNOTATION_TLS_ENABLED, new_control_object_mapper
from glbc.exceptions import AlreadyExistsError
from glbc.manifest import Ingress, IngressTLS
from glbc.tls import CertificateProvider

from .reconciler import Reconciler, ReconcileStatus

_LOGGER = logging.getLogger(__name__)


def upsert_tls(ingress: Ingress, host: str, secret_name: str) -> None:
    """Point the TLS entry for a host at a secret, adding one if needed."""
    for index, tls in enumerate(ingress.spec.tls):
        if host in tls.hosts:
            ingress.spec.tls[index] = IngressTLS(hosts=[host], secret_name=secret_name)
            return
    ingress.spec.tls.append(IngressTLS(hosts=[host], secret_name=secret_name))


class CertificateReconciler(Reconciler):
    """Drives the certificate of the managed host through the provider."""

    def __init__(self, provider: CertificateProvider) -> None:
        self._provider = provider

    async def reconcile(self, ingress: Ingress) -> ReconcileStatus:
        if not ingress.metadata.annotations.get(ANNOTATION_HCG_HOST):
            return ReconcileStatus.CONTINUE
        request = new_control_object_mapper(ingress)
        if ingress.deleting:
            await self._provider.delete(request)
            return ReconcileStatus.CONTINUE

        try:
            await self._provider.create(request)
        except AlreadyExistsError:
            _LOGGER.debug("Certificate %s already requested", request.name)
        if ANNOTATION_TLS_ENABLED in ingress.metadata.annotations:
            # The issued secret is mirrored under the certificate name
            upsert_tls(ingress, request.host, request.name)
        return ReconcileStatus.CONTINUE
