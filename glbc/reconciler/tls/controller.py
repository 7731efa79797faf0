"""Controller mirroring issued TLS secrets from the control plane into workspaces.

Certificates are issued into Secrets in the control plane. For every such
secret this controller:

- Guards the secret with a finalizer so it cannot disappear before the
  workspace copy is cleaned up.
- Creates or refreshes the mirror Secret in the namespace of the Ingress the
  certificate was requested for.
- Marks the owning Ingress with the tls enabled annotation, which is the
  point a certificate request is considered complete.
- On deletion, removes the mirror and then the finalizer.

Whether a secret has been handled is never remembered in memory: each step
checks the state of the stores, so every pass is safe to repeat.
"""

import copy
import logging

from glbc.cluster import (
    ANNOTATION_HCG_HOST,
    ANNOTATION_TLS_ENABLED,
    ObjectMapper,
    new_workspace_object_mapper,
)
from glbc.exceptions import AlreadyExistsError, ObjectNotFoundError
from glbc.informer import EventHandler, Informer
from glbc.manifest import Ingress, ObjectMeta, ResourceIdentity, Secret
from glbc.metrics import MetricsSink
from glbc.reconciler.controller import Controller
from glbc.reconciler.metadata import add_finalizer, remove_finalizer
from glbc.store import ObjectStore
from glbc.tls.metrics import (
    CERTIFICATE_ISSUANCE_DURATION,
    CERTIFICATE_PENDING_REQUEST_COUNT,
    CERTIFICATE_REQUEST_TOTAL,
    CERTIFICATE_SECRET_COUNT,
    HOSTNAME_LABEL,
    ISSUER_LABEL,
    RESULT_LABEL,
    RESULT_SUCCEEDED,
)
from glbc.tls.provider import ANNOTATION_TLS_ISSUER

__all__ = [
    "TLSController",
    "CONTROLLER_NAME",
    "SECRETS_FINALIZER",
]

_LOGGER = logging.getLogger(__name__)

CONTROLLER_NAME = "glbc-secrets"
SECRETS_FINALIZER = "kcp.dev/cascade-cleanup"


class TLSController(Controller):
    """Reconciles control-plane TLS secrets with their workspace mirrors."""

    def __init__(
        self,
        secret_informer: Informer[Secret],
        workspace_store: ObjectStore,
        metrics: MetricsSink,
    ) -> None:
        """Initialize TLSController.

        Args:
            secret_informer: Informer over the control-plane Secrets.
            workspace_store: Store the mirrors and Ingresses live in.
            metrics: Sink receiving certificate lifecycle metrics.
        """
        super().__init__(CONTROLLER_NAME, metrics)
        self._secrets = secret_informer
        self._control_store = secret_informer.store
        self._workspace_store = workspace_store
        self.add_informer(secret_informer)
        secret_informer.add_event_handler(
            EventHandler(
                on_add=self._on_add,
                on_update=lambda _, secret: self._enqueue(secret),
                on_delete=self._on_delete,
                on_resync=self._enqueue,
            )
        )

    def _enqueue(self, secret: Secret) -> None:
        self.enqueue(self._secrets.identity(secret))

    def _secret_count_labels(self, secret: Secret) -> dict[str, str] | None:
        annotations = secret.metadata.annotations
        issuer = annotations.get(ANNOTATION_TLS_ISSUER)
        hostname = annotations.get(ANNOTATION_HCG_HOST)
        if issuer is None or hostname is None:
            return None
        return {ISSUER_LABEL: issuer, HOSTNAME_LABEL: hostname}

    def _on_add(self, secret: Secret) -> None:
        if (labels := self._secret_count_labels(secret)) is not None:
            self._metrics.add_gauge(CERTIFICATE_SECRET_COUNT, labels, 1)
        self._enqueue(secret)

    def _on_delete(self, secret: Secret) -> None:
        if (labels := self._secret_count_labels(secret)) is not None:
            self._metrics.add_gauge(CERTIFICATE_SECRET_COUNT, labels, -1)
        self._enqueue(secret)

    async def process(self, identity: ResourceIdentity) -> None:
        if (cached := self.cached(self._secrets, identity)) is None:
            return
        # Raises MissingContextError for secrets not issued for a workspace
        context = new_workspace_object_mapper(cached)
        secret = copy.deepcopy(cached)

        if secret.deleting:
            _LOGGER.info(
                "Control plane secret %s deleted, removing mirror from workspace %s",
                secret.name,
                context.workspace,
            )
            await self._ensure_deleted(context)
            if remove_finalizer(secret, SECRETS_FINALIZER):
                try:
                    await self._control_store.update(secret)
                except ObjectNotFoundError:
                    _LOGGER.debug("Secret %s already removed", identity)
            return

        if add_finalizer(secret, SECRETS_FINALIZER):
            secret = await self._control_store.update(secret)
        await self._ensure_mirrored(context, secret)

    async def _ensure_deleted(self, context: ObjectMapper) -> None:
        try:
            await self._workspace_store.delete(
                Secret, context.workspace, context.namespace, context.name
            )
        except ObjectNotFoundError:
            _LOGGER.debug("Mirror secret %s already deleted", context.name)

    def _mirror(self, context: ObjectMapper, secret: Secret) -> Secret:
        annotations = {}
        if (issuer := secret.metadata.annotations.get(ANNOTATION_TLS_ISSUER)) is not None:
            annotations[ANNOTATION_TLS_ISSUER] = issuer
        return Secret(
            metadata=ObjectMeta(
                name=context.name,
                namespace=context.namespace,
                cluster=context.workspace,
                labels=context.labels(),
                annotations=annotations,
            ),
            data=dict(secret.data),
            type=secret.type,
        )

    async def _ensure_mirrored(self, context: ObjectMapper, secret: Secret) -> None:
        mirror = self._mirror(context, secret)
        try:
            stored = await self._workspace_store.create(mirror)
            _LOGGER.info(
                "Mirrored tls secret %s to workspace %s namespace %s",
                context.name,
                context.workspace,
                context.namespace,
            )
        except AlreadyExistsError:
            existing = await self._workspace_store.get(
                Secret, context.workspace, context.namespace, context.name
            )
            if _mirror_current(existing, mirror):
                stored = existing
            else:
                _LOGGER.info("Refreshing mirror secret %s", context.name)
                mirror.metadata.resource_version = existing.metadata.resource_version
                mirror.metadata.uid = existing.metadata.uid
                stored = await self._workspace_store.update(mirror)

        # Signal completion on the Ingress the certificate was requested for
        try:
            ingress = await self._workspace_store.get(
                Ingress, context.workspace, context.namespace, context.owned_by
            )
        except ObjectNotFoundError:
            _LOGGER.info(
                "Ingress %s/%s owning secret %s not found",
                context.namespace,
                context.owned_by,
                secret.name,
            )
            return
        if ANNOTATION_TLS_ENABLED in ingress.metadata.annotations:
            return
        ingress.metadata.annotations[ANNOTATION_TLS_ENABLED] = "true"
        await self._workspace_store.update(ingress)
        self._observe_issuance(context, secret, stored)

    def _observe_issuance(
        self, context: ObjectMapper, secret: Secret, mirror: Secret
    ) -> None:
        issuer = secret.metadata.annotations.get(ANNOTATION_TLS_ISSUER, "")
        self._metrics.inc_counter(
            CERTIFICATE_REQUEST_TOTAL,
            {ISSUER_LABEL: issuer, RESULT_LABEL: RESULT_SUCCEEDED},
        )
        # The request completed so there is one less pending request
        self._metrics.add_gauge(
            CERTIFICATE_PENDING_REQUEST_COUNT,
            {ISSUER_LABEL: issuer, HOSTNAME_LABEL: context.host},
            -1,
        )
        if mirror.metadata.creation_timestamp is None or context.creation_timestamp is None:
            return
        duration = mirror.metadata.creation_timestamp - context.creation_timestamp
        self._metrics.observe_histogram(
            CERTIFICATE_ISSUANCE_DURATION,
            {ISSUER_LABEL: issuer, RESULT_LABEL: RESULT_SUCCEEDED},
            duration.total_seconds(),
        )


def _mirror_current(existing: Secret, desired: Secret) -> bool:
    return (
        existing.data == desired.data
        and existing.type == desired.type
        and existing.metadata.labels == desired.metadata.labels
        and existing.metadata.annotations == desired.metadata.annotations
    )
