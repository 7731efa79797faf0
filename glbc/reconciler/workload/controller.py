"""Controllers releasing Services and Deployments held by stale syncer finalizers."""

import copy
import logging
from typing import Generic, TypeVar

from glbc.exceptions import ObjectNotFoundError
from glbc.informer import Informer
from glbc.manifest import BaseObject, Deployment, ResourceIdentity, Service
from glbc.metrics import MetricsSink
from glbc.reconciler.controller import Controller
from glbc.reconciler.metadata import remove_finalizers_with_prefix

__all__ = [
    "WorkloadController",
    "new_service_controller",
    "new_deployment_controller",
]

_LOGGER = logging.getLogger(__name__)

SYNCER_FINALIZER_PREFIX = "workload.kcp.dev/syncer-"

T = TypeVar("T", bound=BaseObject)


class WorkloadController(Controller, Generic[T]):
    """Removes syncer finalizers from workloads being deleted.

    Syncers do not always clean up their finalizers, which would otherwise
    keep deleted workloads around forever.
    """

    def __init__(self, name: str, informer: Informer[T], metrics: MetricsSink) -> None:
        super().__init__(name, metrics)
        self._objects = informer
        self._store = informer.store
        self.watch(informer)

    async def process(self, identity: ResourceIdentity) -> None:
        if (cached := self.cached(self._objects, identity)) is None:
            return
        if not cached.deleting:
            return
        obj = copy.deepcopy(cached)
        if not remove_finalizers_with_prefix(obj, SYNCER_FINALIZER_PREFIX):
            return
        _LOGGER.info("Removing syncer finalizers from %s %s", obj.kind, identity)
        try:
            await self._store.update(obj)
        except ObjectNotFoundError:
            _LOGGER.debug("%s %s already removed", obj.kind, identity)


def new_service_controller(
    informer: Informer[Service], metrics: MetricsSink
) -> WorkloadController[Service]:
    return WorkloadController("glbc-service", informer, metrics)


def new_deployment_controller(
    informer: Informer[Deployment], metrics: MetricsSink
) -> WorkloadController[Deployment]:
    return WorkloadController("glbc-deployment", informer, metrics)
