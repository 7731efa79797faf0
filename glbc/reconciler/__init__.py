"""
The reconciler module contains the controllers run by glbc.

Each controller is built on `Controller`, which drains a deduplicating work
queue of object identities with a fixed pool of workers, and reads objects
from informer caches rather than from the stores.
"""

from .controller import Controller

__all__ = [
    "Controller",
]
