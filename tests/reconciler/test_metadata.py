"""Tests for the metadata helpers."""

from glbc.manifest import ObjectMeta, Service
from glbc.reconciler.metadata import (
    add_finalizer,
    has_finalizer,
    remove_finalizer,
    remove_finalizers_with_prefix,
)


def test_finalizers() -> None:
    """Test adding and removing finalizers reports changes."""
    obj = Service(metadata=ObjectMeta(name="svc"))
    assert add_finalizer(obj, "kcp.dev/cascade-cleanup")
    assert not add_finalizer(obj, "kcp.dev/cascade-cleanup")
    assert has_finalizer(obj, "kcp.dev/cascade-cleanup")
    assert obj.metadata.finalizers == ["kcp.dev/cascade-cleanup"]

    assert remove_finalizer(obj, "kcp.dev/cascade-cleanup")
    assert not remove_finalizer(obj, "kcp.dev/cascade-cleanup")
    assert not has_finalizer(obj, "kcp.dev/cascade-cleanup")


def test_remove_finalizers_with_prefix() -> None:
    """Test removing every finalizer sharing a prefix."""
    obj = Service(
        metadata=ObjectMeta(
            name="svc",
            finalizers=[
                "workload.kcp.dev/syncer-east",
                "kcp.dev/cascade-cleanup",
                "workload.kcp.dev/syncer-west",
            ],
        )
    )
    assert remove_finalizers_with_prefix(obj, "workload.kcp.dev/syncer-")
    assert obj.metadata.finalizers == ["kcp.dev/cascade-cleanup"]
    assert not remove_finalizers_with_prefix(obj, "workload.kcp.dev/syncer-")
