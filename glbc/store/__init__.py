"""
The store module provides access to the objects glbc reconciles.

- Each store is scoped to either the tenant facing workspace scope or the
  privileged control-plane scope.
- Objects are addressed by ResourceIdentity and carry a resource version used
  for optimistic concurrency on update.
- Watch streams deliver add, modify and delete events for a kind.

This abstract interface allows for various implementations (in-memory, a
Kubernetes API client, etc.).
"""

from .store import ObjectStore, WatchEvent, WatchEventType, WatchStream
from .in_memory import InMemoryObjectStore

__all__ = [
    "ObjectStore",
    "WatchEvent",
    "WatchEventType",
    "WatchStream",
    "InMemoryObjectStore",
]
