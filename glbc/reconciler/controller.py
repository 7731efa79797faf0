"""The reconciliation engine shared by every controller.

A controller owns a work queue of object identities and a set of informers
feeding it. A fixed pool of workers drains the queue, calling `process` for
each identity. Successful passes reset the identity's backoff, objects that
are not managed by glbc are skipped, and any other failure re-adds the
identity with capped exponential backoff so that it is never abandoned.
"""

from abc import ABC, abstractmethod
import asyncio
import logging
import time
from typing import Any, TypeVar

from glbc.exceptions import QueueShutDownError, is_missing_context
from glbc.informer import EventHandler, Informer
from glbc.manifest import BaseObject, ResourceIdentity
from glbc.metrics import MetricsSink
from glbc.workqueue import RateLimiter, WorkQueue

from .metrics import (
    ACTIVE_WORKERS,
    CONTROLLER_LABEL,
    MAX_CONCURRENT_RECONCILES,
    RECONCILE_ERRORS,
    RECONCILE_TIME,
    RECONCILE_TOTAL,
    RESULT_ERROR,
    RESULT_LABEL,
    RESULT_SUCCESS,
)

__all__ = [
    "Controller",
]

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseObject)


class Controller(ABC):
    """Base class for controllers reconciling object identities."""

    def __init__(
        self,
        name: str,
        metrics: MetricsSink,
        rate_limiter: RateLimiter[ResourceIdentity] | None = None,
    ) -> None:
        """Initialize Controller."""
        self._name = name
        self._metrics = metrics
        self._queue: WorkQueue[ResourceIdentity] = WorkQueue(name, rate_limiter)
        self._informers: list[Informer[Any]] = []
        self._labels = {CONTROLLER_LABEL: name}
        self._metrics.set_gauge(ACTIVE_WORKERS, self._labels, 0)
        self._metrics.set_gauge(MAX_CONCURRENT_RECONCILES, self._labels, 0)
        self._metrics.inc_counter(RECONCILE_ERRORS, self._labels, 0)
        for result in (RESULT_SUCCESS, RESULT_ERROR):
            self._metrics.inc_counter(
                RECONCILE_TOTAL, {**self._labels, RESULT_LABEL: result}, 0
            )

    @property
    def name(self) -> str:
        return self._name

    @property
    def queue(self) -> WorkQueue[ResourceIdentity]:
        return self._queue

    @property
    def informers(self) -> list[Informer[Any]]:
        """Informers whose caches this controller reads."""
        return list(self._informers)

    def is_idle(self) -> bool:
        """Return True when no work is queued, running or scheduled."""
        return self._queue.is_idle()

    def add_informer(self, informer: Informer[Any]) -> None:
        if informer not in self._informers:
            self._informers.append(informer)

    def watch(self, informer: Informer[T]) -> None:
        """Enqueue the identity of every object the informer observes."""
        self.add_informer(informer)

        def enqueue(obj: T) -> None:
            self.enqueue(informer.identity(obj))

        informer.add_event_handler(
            EventHandler(
                on_add=enqueue,
                on_update=lambda _, obj: enqueue(obj),
                on_delete=enqueue,
                on_resync=enqueue,
            )
        )

    def enqueue(self, identity: ResourceIdentity) -> None:
        """Schedule an identity for reconciliation."""
        self._queue.add(identity)

    def enqueue_after(self, identity: ResourceIdentity, delay: float) -> None:
        """Schedule an identity for reconciliation once the delay has passed."""
        self._queue.add_after(identity, delay)

    def cached(self, informer: Informer[T], identity: ResourceIdentity) -> T | None:
        """Return the cached object for an identity, or None once it is gone."""
        if (obj := informer.cache.get(identity)) is None:
            _LOGGER.info("%s: object %s was deleted", self._name, identity)
        return obj

    @abstractmethod
    async def process(self, identity: ResourceIdentity) -> None:
        """Reconcile the object with the given identity."""

    async def start(self, workers: int) -> None:
        """Run workers until cancelled.

        On cancellation the queue is shut down, dropping queued work, and
        reconciliations already in flight are allowed to finish.
        """
        _LOGGER.info("Starting %d workers for %s", workers, self._name)
        self._metrics.set_gauge(MAX_CONCURRENT_RECONCILES, self._labels, workers)
        tasks = [
            asyncio.create_task(self._worker(), name=f"{self._name}-worker-{i}")
            for i in range(workers)
        ]
        try:
            await asyncio.wait(tasks)
        except asyncio.CancelledError:
            self._queue.shut_down()
            await asyncio.wait(tasks)
            raise
        finally:
            _LOGGER.info("Stopped workers for %s", self._name)

    async def _worker(self) -> None:
        while True:
            try:
                identity = await self._queue.get()
            except QueueShutDownError:
                return
            try:
                await self._process_item(identity)
            finally:
                self._queue.done(identity)

    async def _process_item(self, identity: ResourceIdentity) -> None:
        self._metrics.add_gauge(ACTIVE_WORKERS, self._labels, 1)
        start = time.monotonic()
        try:
            await self.process(identity)
        except Exception as err:
            if is_missing_context(err):
                _LOGGER.debug("%s: skipping %s: %s", self._name, identity, err)
                self._queue.forget(identity)
                self._record(RESULT_SUCCESS)
                return
            _LOGGER.error(
                "%s: error reconciling %s (retry %d): %s",
                self._name,
                identity,
                self._queue.num_requeues(identity),
                err,
            )
            _LOGGER.debug("Reconcile failure", exc_info=True)
            self._metrics.inc_counter(RECONCILE_ERRORS, self._labels)
            self._record(RESULT_ERROR)
            self._queue.add_rate_limited(identity)
        else:
            self._queue.forget(identity)
            self._record(RESULT_SUCCESS)
        finally:
            self._metrics.observe_histogram(
                RECONCILE_TIME, self._labels, time.monotonic() - start
            )
            self._metrics.add_gauge(ACTIVE_WORKERS, self._labels, -1)

    def _record(self, result: str) -> None:
        self._metrics.inc_counter(RECONCILE_TOTAL, {**self._labels, RESULT_LABEL: result})
