"""A local certificate issuer standing in for cert-manager.

When glbc runs against in-memory stores nothing else would act on the
Certificate objects it creates. The LocalIssuer fulfils them: it signs a
certificate with the CA secret created by the provider (or self-signs when
there is none), stores it in the requested secret with the certificate's
secret template, and marks the certificate ready.
"""

import copy
from datetime import datetime, timezone
import logging

from glbc.exceptions import AlreadyExistsError, ObjectNotFoundError
from glbc.informer import Informer
from glbc.manifest import (
    SECRET_TYPE_TLS,
    TLS_CERT_KEY,
    TLS_PRIVATE_KEY_KEY,
    Certificate,
    ObjectMeta,
    ResourceIdentity,
    Secret,
)
from glbc.metrics import MetricsSink
from glbc.reconciler.controller import Controller

from .cert_manager import CA_SECRET_NAME
from .certs import decode_data, encode_data, issue_certificate, parse_duration

__all__ = [
    "LocalIssuer",
]

_LOGGER = logging.getLogger(__name__)

CONTROLLER_NAME = "glbc-local-issuer"


class LocalIssuer(Controller):
    """Issues the secrets requested by Certificate objects."""

    def __init__(
        self,
        certificate_informer: Informer[Certificate],
        metrics: MetricsSink,
        ca_secret_name: str = CA_SECRET_NAME,
    ) -> None:
        super().__init__(CONTROLLER_NAME, metrics)
        self._certificates = certificate_informer
        self._store = certificate_informer.store
        self._ca_secret_name = ca_secret_name
        self.watch(certificate_informer)

    async def process(self, identity: ResourceIdentity) -> None:
        if (cached := self.cached(self._certificates, identity)) is None:
            return
        if cached.deleting:
            return
        cert = copy.deepcopy(cached)
        try:
            await self._store.get(
                Secret, cert.cluster, cert.namespace, cert.spec.secret_name
            )
        except ObjectNotFoundError:
            await self._issue(cert)
        if not cert.status.ready:
            cert.status.ready = True
            cert.status.not_after = datetime.now(timezone.utc) + parse_duration(
                cert.spec.duration
            )
            await self._store.update(cert)

    async def _ca(self, cert: Certificate) -> tuple[bytes | None, bytes | None]:
        try:
            ca = await self._store.get(
                Secret, cert.cluster, cert.namespace, self._ca_secret_name
            )
        except ObjectNotFoundError:
            return None, None
        if TLS_CERT_KEY not in ca.data or TLS_PRIVATE_KEY_KEY not in ca.data:
            return None, None
        return decode_data(ca.data[TLS_CERT_KEY]), decode_data(ca.data[TLS_PRIVATE_KEY_KEY])

    async def _issue(self, cert: Certificate) -> None:
        ca_cert, ca_key = await self._ca(cert)
        cert_pem, key_pem = issue_certificate(
            cert.spec.dns_names,
            parse_duration(cert.spec.duration),
            ca_cert_pem=ca_cert,
            ca_key_pem=ca_key,
            key_size=cert.spec.private_key.size,
        )
        secret = Secret(
            metadata=ObjectMeta(
                name=cert.spec.secret_name,
                namespace=cert.namespace,
                cluster=cert.cluster,
                labels=dict(cert.spec.secret_template.labels),
                annotations=dict(cert.spec.secret_template.annotations),
            ),
            data={
                TLS_CERT_KEY: encode_data(cert_pem),
                TLS_PRIVATE_KEY_KEY: encode_data(key_pem),
            },
            type=SECRET_TYPE_TLS,
        )
        try:
            await self._store.create(secret)
        except AlreadyExistsError:
            _LOGGER.debug("Secret %s already issued", cert.spec.secret_name)
            return
        _LOGGER.info(
            "Issued certificate %s for %s", cert.name, ", ".join(cert.spec.dns_names)
        )
