"""Module for in memory object store."""

from __future__ import annotations

import asyncio
import copy
from collections import defaultdict
from collections.abc import Callable
from datetime import datetime, timezone
import itertools
import logging
from typing import Any, DefaultDict, TypeVar
import uuid

from glbc.exceptions import AlreadyExistsError, ConflictError, ObjectNotFoundError
from glbc.manifest import BaseObject, Scope

from .store import ObjectStore, WatchEvent, WatchEventType, WatchStream

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseObject)

_Key = tuple[str, str, str | None, str]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


class _Subscription(WatchStream[T]):
    """A watch stream fed by the in memory store."""

    def __init__(self, remove: Callable[["_Subscription[T]"], None]) -> None:
        self._queue: asyncio.Queue[WatchEvent[T] | None] = asyncio.Queue()
        self._remove = remove
        self._closed = False

    def put(self, event: WatchEvent[T]) -> None:
        if not self._closed:
            self._queue.put_nowait(event)

    def pending(self) -> int:
        return self._queue.qsize()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._remove(self)
        self._queue.put_nowait(None)

    def __aiter__(self) -> "_Subscription[T]":
        return self

    async def __anext__(self) -> WatchEvent[T]:
        event = await self._queue.get()
        if event is None:
            raise StopAsyncIteration
        return event


class InMemoryObjectStore(ObjectStore):
    """In-memory implementation of the ObjectStore interface.

    Objects are keyed by kind, cluster, namespace and name. Every read returns a
    copy so that callers can never mutate the stored state.
    """

    def __init__(self, scope: Scope, clock: Callable[[], datetime] = _utcnow) -> None:
        """Initialize the InMemoryObjectStore."""
        self.scope = scope
        self._clock = clock
        self._objects: dict[_Key, BaseObject] = {}
        self._versions = itertools.count(1)
        self._subscriptions: DefaultDict[str, list[_Subscription[Any]]] = (
            defaultdict(list)
        )

    @staticmethod
    def _key(kind: str, cluster: str, namespace: str | None, name: str) -> _Key:
        return (kind, cluster, namespace, name)

    def _obj_key(self, obj: BaseObject) -> _Key:
        return self._key(obj.kind, obj.metadata.cluster, obj.metadata.namespace, obj.name)

    def _next_version(self) -> str:
        return str(next(self._versions))

    def _fire_event(self, event_type: WatchEventType, obj: BaseObject) -> None:
        _LOGGER.debug("%s %s %s", event_type, obj.kind, self.identity(obj))
        for subscription in list(self._subscriptions[obj.kind]):
            subscription.put(WatchEvent(event_type, copy.deepcopy(obj)))

    async def list(
        self,
        cls: type[T],
        cluster: str | None = None,
        namespace: str | None = None,
    ) -> list[T]:
        """List objects of a kind, optionally filtered by cluster and namespace."""
        return [
            copy.deepcopy(obj)  # type: ignore[misc]
            for (kind, obj_cluster, obj_namespace, _), obj in self._objects.items()
            if kind == cls.kind
            and (cluster is None or obj_cluster == cluster)
            and (namespace is None or obj_namespace == namespace)
        ]

    async def get(self, cls: type[T], cluster: str, namespace: str | None, name: str) -> T:
        """Return a copy of an object."""
        obj = self._objects.get(self._key(cls.kind, cluster, namespace, name))
        if obj is None:
            raise ObjectNotFoundError(
                f"{cls.kind} {namespace}/{name} not found in {self.scope} {cluster}"
            )
        return copy.deepcopy(obj)  # type: ignore[return-value]

    async def create(self, obj: T) -> T:
        """Create an object, assigning its server owned metadata."""
        key = self._obj_key(obj)
        if key in self._objects:
            raise AlreadyExistsError(
                f"{obj.kind} {self.identity(obj)} already exists"
            )
        stored = copy.deepcopy(obj)
        stored.metadata.uid = str(uuid.uuid4())
        stored.metadata.resource_version = self._next_version()
        stored.metadata.creation_timestamp = self._clock()
        stored.metadata.deletion_timestamp = None
        self._objects[key] = stored
        self._fire_event(WatchEventType.ADDED, stored)
        return copy.deepcopy(stored)

    async def update(self, obj: T) -> T:
        """Update an object, rejecting stale resource versions."""
        key = self._obj_key(obj)
        if (existing := self._objects.get(key)) is None:
            raise ObjectNotFoundError(f"{obj.kind} {self.identity(obj)} not found")
        if (
            obj.metadata.resource_version
            and obj.metadata.resource_version != existing.metadata.resource_version
        ):
            raise ConflictError(
                f"{obj.kind} {self.identity(obj)} has been modified "
                f"(version {obj.metadata.resource_version} != "
                f"{existing.metadata.resource_version})"
            )
        stored = copy.deepcopy(obj)
        stored.metadata.uid = existing.metadata.uid
        stored.metadata.creation_timestamp = existing.metadata.creation_timestamp
        stored.metadata.deletion_timestamp = existing.metadata.deletion_timestamp
        stored.metadata.resource_version = self._next_version()
        if stored.metadata.deletion_timestamp is not None and not stored.metadata.finalizers:
            del self._objects[key]
            self._fire_event(WatchEventType.DELETED, stored)
            return copy.deepcopy(stored)
        self._objects[key] = stored
        self._fire_event(WatchEventType.MODIFIED, stored)
        return copy.deepcopy(stored)

    async def delete(
        self, cls: type[T], cluster: str, namespace: str | None, name: str
    ) -> None:
        """Delete an object, or mark it for deletion while finalizers remain."""
        key = self._key(cls.kind, cluster, namespace, name)
        if (existing := self._objects.get(key)) is None:
            raise ObjectNotFoundError(
                f"{cls.kind} {namespace}/{name} not found in {self.scope} {cluster}"
            )
        if existing.metadata.finalizers:
            if existing.metadata.deletion_timestamp is None:
                existing.metadata.deletion_timestamp = self._clock()
                existing.metadata.resource_version = self._next_version()
                self._fire_event(WatchEventType.MODIFIED, existing)
            return
        del self._objects[key]
        self._fire_event(WatchEventType.DELETED, existing)

    def watch(self, cls: type[T]) -> WatchStream[T]:
        """Open a stream of changes to objects of a kind."""

        def remove(subscription: _Subscription[Any]) -> None:
            if subscription in self._subscriptions[cls.kind]:
                self._subscriptions[cls.kind].remove(subscription)

        subscription: _Subscription[T] = _Subscription(remove)
        self._subscriptions[cls.kind].append(subscription)
        return subscription

    def add_object(self, obj: BaseObject) -> None:
        """Seed an object without validation, e.g. when bootstrapping from manifests."""
        stored = copy.deepcopy(obj)
        if not stored.metadata.uid:
            stored.metadata.uid = str(uuid.uuid4())
        if stored.metadata.creation_timestamp is None:
            stored.metadata.creation_timestamp = self._clock()
        stored.metadata.resource_version = self._next_version()
        self._objects[self._obj_key(stored)] = stored
        self._fire_event(WatchEventType.ADDED, stored)

    def list_all(self) -> list[BaseObject]:
        """Return a copy of every stored object, sorted by kind and identity."""
        return [copy.deepcopy(self._objects[key]) for key in sorted(self._objects, key=str)]
