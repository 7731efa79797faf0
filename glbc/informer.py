"""Local cache of objects kept consistent with an object store watch.

Reconciliation always reads from the cache rather than the store so that
processing is decoupled from store latency. The cache is written only by the
informer; handlers and reconcilers must treat cached objects as immutable and
copy them before mutating.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
import logging
from typing import Generic, TypeVar

from .manifest import BaseObject, ResourceIdentity
from .store import ObjectStore, WatchEventType, WatchStream

__all__ = [
    "LocalCache",
    "EventHandler",
    "Informer",
]

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseObject)


class LocalCache(Generic[T]):
    """Identity indexed snapshot of the objects of one kind."""

    def __init__(self) -> None:
        self._objects: dict[ResourceIdentity, T] = {}

    def get(self, identity: ResourceIdentity) -> T | None:
        """Return the cached object, or None if it is not present."""
        return self._objects.get(identity)

    def list(self) -> list[T]:
        return list(self._objects.values())

    def keys(self) -> list[ResourceIdentity]:
        return list(self._objects)

    def __len__(self) -> int:
        return len(self._objects)

    def __contains__(self, identity: object) -> bool:
        return identity in self._objects

    def _set(self, identity: ResourceIdentity, obj: T) -> T | None:
        previous = self._objects.get(identity)
        self._objects[identity] = obj
        return previous

    def _pop(self, identity: ResourceIdentity) -> T | None:
        return self._objects.pop(identity, None)


@dataclass
class EventHandler(Generic[T]):
    """Callbacks invoked as the cache changes.

    `on_resync` fires for every cached object on each resync period and is
    kept apart from `on_update` so that live changes and periodic resyncs are
    distinguishable, even though controllers usually enqueue for both.
    """

    on_add: Callable[[T], None] | None = None
    on_update: Callable[[T, T], None] | None = None
    on_delete: Callable[[T], None] | None = None
    on_resync: Callable[[T], None] | None = None


class Informer(Generic[T]):
    """Lists and watches one kind from a store, keeping a LocalCache current."""

    def __init__(
        self,
        store: ObjectStore,
        cls: type[T],
        namespace: str | None = None,
        resync_period: float | None = None,
    ) -> None:
        """Initialize the informer.

        Args:
            store: The store to list and watch.
            cls: The kind of object to cache.
            namespace: Restrict the cache to a single namespace.
            resync_period: Seconds between resyncs, or None to disable them.
        """
        self._store = store
        self._cls = cls
        self._namespace = namespace
        self._resync_period = resync_period
        self._cache: LocalCache[T] = LocalCache()
        self._handlers: list[EventHandler[T]] = []
        self._synced = asyncio.Event()
        self._stream: WatchStream[T] | None = None

    @property
    def cache(self) -> LocalCache[T]:
        return self._cache

    @property
    def store(self) -> ObjectStore:
        return self._store

    @property
    def kind(self) -> str:
        return self._cls.kind

    def identity(self, obj: BaseObject) -> ResourceIdentity:
        return self._store.identity(obj)

    def add_event_handler(self, handler: EventHandler[T]) -> None:
        """Register callbacks, replaying adds for objects already cached."""
        self._handlers.append(handler)
        if handler.on_add is not None:
            for obj in self._cache.list():
                self._dispatch(handler.on_add, obj)

    def has_synced(self) -> bool:
        return self._synced.is_set()

    def has_pending_events(self) -> bool:
        """Return True while watch events are waiting to be applied to the cache."""
        return self._stream is not None and self._stream.pending() > 0

    async def wait_for_sync(self) -> None:
        """Wait until the initial list has been loaded into the cache."""
        await self._synced.wait()

    async def run(self) -> None:
        """List and watch the store until cancelled."""
        _LOGGER.debug("Starting %s informer for %s", self.kind, self._store.scope)
        stream = self._store.watch(self._cls)
        self._stream = stream
        try:
            for obj in await self._store.list(self._cls, namespace=self._namespace):
                self._apply_upsert(obj)
            self._synced.set()
            _LOGGER.debug("%s informer synced %d objects", self.kind, len(self._cache))
            resync_task = None
            if self._resync_period:
                resync_task = asyncio.create_task(self._resync_loop())
            try:
                async for event in stream:
                    if not self._matches(event.object):
                        continue
                    if event.type == WatchEventType.DELETED:
                        self._apply_delete(event.object)
                    else:
                        self._apply_upsert(event.object)
            finally:
                if resync_task is not None:
                    resync_task.cancel()
        finally:
            stream.close()
            self._stream = None
            _LOGGER.debug("Stopped %s informer for %s", self.kind, self._store.scope)

    def _matches(self, obj: BaseObject) -> bool:
        return self._namespace is None or obj.metadata.namespace == self._namespace

    def _apply_upsert(self, obj: T) -> None:
        identity = self.identity(obj)
        previous = self._cache._set(identity, obj)
        if previous is None:
            for handler in self._handlers:
                if handler.on_add is not None:
                    self._dispatch(handler.on_add, obj)
            return
        if previous.metadata.resource_version == obj.metadata.resource_version:
            return
        for handler in self._handlers:
            if handler.on_update is not None:
                self._dispatch(handler.on_update, previous, obj)

    def _apply_delete(self, obj: T) -> None:
        identity = self.identity(obj)
        previous = self._cache._pop(identity)
        if previous is None:
            _LOGGER.debug("Ignoring delete of uncached %s %s", self.kind, identity)
            return
        for handler in self._handlers:
            if handler.on_delete is not None:
                self._dispatch(handler.on_delete, obj)

    def resync(self) -> None:
        """Fire the resync handlers for every cached object."""
        _LOGGER.debug("Resyncing %d %s objects", len(self._cache), self.kind)
        for obj in self._cache.list():
            for handler in self._handlers:
                if handler.on_resync is not None:
                    self._dispatch(handler.on_resync, obj)

    async def _resync_loop(self) -> None:
        assert self._resync_period
        while True:
            await asyncio.sleep(self._resync_period)
            self.resync()

    def _dispatch(self, callback: Callable[..., None], *args: T) -> None:
        try:
            callback(*args)
        except Exception:
            _LOGGER.exception("Informer handler failed for %s", self.kind)
