"""Controller for workspace Ingresses."""

from .controller import CASCADE_CLEANUP_FINALIZER, IngressController

__all__ = [
    "CASCADE_CLEANUP_FINALIZER",
    "IngressController",
]
