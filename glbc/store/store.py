"""Store module for reading and writing objects in a cluster scope."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import StrEnum
from typing import Generic, TypeVar

from glbc.manifest import BaseObject, ResourceIdentity, Scope

T = TypeVar("T", bound=BaseObject)


class WatchEventType(StrEnum):
    """Enum for watch events."""

    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"


@dataclass(frozen=True)
class WatchEvent(Generic[T]):
    """A change to an object observed on a watch stream."""

    type: WatchEventType
    object: T


class WatchStream(ABC, Generic[T]):
    """A stream of watch events for a single kind.

    The stream is subscribed as soon as it is created so that a list issued
    after opening the stream does not miss changes.
    """

    @abstractmethod
    def close(self) -> None:
        """Stop receiving events."""

    def pending(self) -> int:
        """Return the number of events received but not yet consumed."""
        return 0

    def __aiter__(self) -> "WatchStream[T]":
        return self

    @abstractmethod
    async def __anext__(self) -> WatchEvent[T]:
        """Return the next event, raising StopAsyncIteration once closed."""


class ObjectStore(ABC):
    """Abstract base class for an object store scoped to a workspace or the control plane.

    Updates use optimistic concurrency: an update carrying a resource version
    that is no longer current fails with a ConflictError. Deleting an object
    that carries finalizers only marks it for deletion; it is removed once an
    update leaves it without finalizers.
    """

    scope: Scope

    def identity(self, obj: BaseObject) -> ResourceIdentity:
        """Return the identity of an object in this store."""
        return ResourceIdentity(
            scope=self.scope,
            cluster=obj.metadata.cluster,
            namespace=obj.metadata.namespace,
            name=obj.metadata.name,
        )

    @abstractmethod
    async def list(
        self,
        cls: type[T],
        cluster: str | None = None,
        namespace: str | None = None,
    ) -> list[T]:
        """List objects of a kind, optionally filtered by cluster and namespace."""

    @abstractmethod
    async def get(self, cls: type[T], cluster: str, namespace: str | None, name: str) -> T:
        """Return an object.

        Raises:
            ObjectNotFoundError: If the object does not exist.
        """

    @abstractmethod
    async def create(self, obj: T) -> T:
        """Create an object and return the stored copy.

        Raises:
            AlreadyExistsError: If an object with the same identity exists.
        """

    @abstractmethod
    async def update(self, obj: T) -> T:
        """Update an object and return the stored copy.

        Raises:
            ObjectNotFoundError: If the object does not exist.
            ConflictError: If the object carries a stale resource version.
        """

    @abstractmethod
    async def delete(
        self, cls: type[T], cluster: str, namespace: str | None, name: str
    ) -> None:
        """Delete an object, or mark it for deletion if it carries finalizers.

        Raises:
            ObjectNotFoundError: If the object does not exist.
        """

    @abstractmethod
    def watch(self, cls: type[T]) -> WatchStream[T]:
        """Open a stream of changes to objects of a kind."""
