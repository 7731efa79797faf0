"""Tests for the Service and Deployment controllers."""

import pytest

from glbc.exceptions import ObjectNotFoundError
from glbc.informer import Informer
from glbc.manifest import Deployment, ObjectMeta, Service
from glbc.metrics import InMemoryMetricsSink
from glbc.reconciler.workload import new_deployment_controller, new_service_controller
from glbc.store import InMemoryObjectStore

from tests import NAMESPACE, WORKSPACE, running, settle

SYNCER_FINALIZER = "workload.kcp.dev/syncer-cluster-1"
OTHER_FINALIZER = "example.com/keep"


def new_meta(*finalizers: str) -> ObjectMeta:
    return ObjectMeta(
        name="echo",
        namespace=NAMESPACE,
        cluster=WORKSPACE,
        finalizers=list(finalizers),
    )


async def test_release_deleted_service(
    workspace_store: InMemoryObjectStore, metrics: InMemoryMetricsSink
) -> None:
    """Test a deleted Service held only by a syncer finalizer goes away."""
    controller = new_service_controller(Informer(workspace_store, Service), metrics)
    assert controller.name == "glbc-service"
    await workspace_store.create(Service(metadata=new_meta(SYNCER_FINALIZER)))
    async with running(controller):
        await settle(controller)
        # Objects not being deleted keep their finalizers
        service = await workspace_store.get(Service, WORKSPACE, NAMESPACE, "echo")
        assert service.metadata.finalizers == [SYNCER_FINALIZER]

        await workspace_store.delete(Service, WORKSPACE, NAMESPACE, "echo")
        await settle(controller)

    with pytest.raises(ObjectNotFoundError):
        await workspace_store.get(Service, WORKSPACE, NAMESPACE, "echo")


async def test_keep_other_finalizers(
    workspace_store: InMemoryObjectStore, metrics: InMemoryMetricsSink
) -> None:
    """Test finalizers not owned by a syncer are left in place."""
    controller = new_deployment_controller(
        Informer(workspace_store, Deployment), metrics
    )
    assert controller.name == "glbc-deployment"
    await workspace_store.create(
        Deployment(metadata=new_meta(SYNCER_FINALIZER, OTHER_FINALIZER))
    )
    await workspace_store.delete(Deployment, WORKSPACE, NAMESPACE, "echo")
    async with running(controller):
        await settle(controller)

    deployment = await workspace_store.get(Deployment, WORKSPACE, NAMESPACE, "echo")
    assert deployment.metadata.finalizers == [OTHER_FINALIZER]
    assert deployment.deleting
