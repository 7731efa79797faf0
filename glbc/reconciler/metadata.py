"""Helpers for editing object metadata in place."""

from glbc.manifest import BaseObject


def has_finalizer(obj: BaseObject, finalizer: str) -> bool:
    return finalizer in obj.metadata.finalizers


def add_finalizer(obj: BaseObject, finalizer: str) -> bool:
    """Add a finalizer, returning True if the object changed."""
    if finalizer in obj.metadata.finalizers:
        return False
    obj.metadata.finalizers.append(finalizer)
    return True


def remove_finalizer(obj: BaseObject, finalizer: str) -> bool:
    """Remove a finalizer, returning True if the object changed."""
    if finalizer not in obj.metadata.finalizers:
        return False
    obj.metadata.finalizers = [f for f in obj.metadata.finalizers if f != finalizer]
    return True


def remove_finalizers_with_prefix(obj: BaseObject, prefix: str) -> bool:
    """Remove every finalizer starting with the prefix."""
    kept = [f for f in obj.metadata.finalizers if not f.startswith(prefix)]
    if len(kept) == len(obj.metadata.finalizers):
        return False
    obj.metadata.finalizers = kept
    return True
