"""Tests for the informer and its local cache."""

import asyncio
import typing
from collections.abc import AsyncGenerator

import pytest

from glbc.informer import EventHandler, Informer, LocalCache
from glbc.manifest import ObjectMeta, ResourceIdentity, Secret
from glbc.store import InMemoryObjectStore

from tests import WORKSPACE, wait_for


class Recorder:
    """Records informer callbacks."""

    def __init__(self) -> None:
        self.events: list[tuple[str, str]] = []

    def handler(self) -> EventHandler[Secret]:
        return EventHandler(
            on_add=lambda obj: self.events.append(("add", obj.name)),
            on_update=lambda old, new: self.events.append(("update", new.name)),
            on_delete=lambda obj: self.events.append(("delete", obj.name)),
            on_resync=lambda obj: self.events.append(("resync", obj.name)),
        )


def new_secret(name: str, namespace: str = "default") -> Secret:
    return Secret(metadata=ObjectMeta(name=name, namespace=namespace, cluster=WORKSPACE))


@pytest.fixture(name="informer")
async def informer_fixture(
    workspace_store: InMemoryObjectStore,
) -> AsyncGenerator[Informer[Secret], None]:
    await workspace_store.create(new_secret("existing"))
    informer = Informer(workspace_store, Secret)
    task = asyncio.create_task(informer.run())
    await informer.wait_for_sync()
    yield informer
    task.cancel()
    await asyncio.gather(task, return_exceptions=True)


async def test_initial_list(informer: Informer[Secret]) -> None:
    """Test objects present before the informer started are cached."""
    assert informer.has_synced()
    assert [obj.name for obj in informer.cache.list()] == ["existing"]

    recorder = Recorder()
    informer.add_event_handler(recorder.handler())
    assert recorder.events == [("add", "existing")]


async def test_watch_events(
    informer: Informer[Secret], workspace_store: InMemoryObjectStore
) -> None:
    """Test changes are applied to the cache and dispatched to handlers."""
    recorder = Recorder()
    informer.add_event_handler(recorder.handler())
    recorder.events.clear()

    created = await workspace_store.create(new_secret("new"))
    created.data["key"] = "dmFsdWU="
    await workspace_store.update(created)
    await workspace_store.delete(Secret, WORKSPACE, "default", "existing")
    await wait_for(lambda: len(recorder.events) == 3)

    assert recorder.events == [
        ("add", "new"),
        ("update", "new"),
        ("delete", "existing"),
    ]
    assert not informer.has_pending_events()
    identity = informer.identity(created)
    cached = informer.cache.get(identity)
    assert cached is not None
    assert cached.data == {"key": "dmFsdWU="}
    assert informer.cache.keys() == [identity]


async def test_namespace_filter(workspace_store: InMemoryObjectStore) -> None:
    """Test an informer restricted to a namespace ignores other objects."""
    await workspace_store.create(new_secret("a", namespace="cert-manager"))
    await workspace_store.create(new_secret("b"))
    informer = Informer(workspace_store, Secret, namespace="cert-manager")
    task = asyncio.create_task(informer.run())
    try:
        await informer.wait_for_sync()
        await workspace_store.create(new_secret("c"))
        await workspace_store.create(new_secret("d", namespace="cert-manager"))
        await wait_for(lambda: len(informer.cache) == 2)
        assert sorted(obj.name for obj in informer.cache.list()) == ["a", "d"]
    finally:
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)


async def test_resync(workspace_store: InMemoryObjectStore) -> None:
    """Test cached objects are periodically re-dispatched."""
    await workspace_store.create(new_secret("a"))
    informer = Informer(workspace_store, Secret, resync_period=0.01)
    recorder = Recorder()
    informer.add_event_handler(recorder.handler())
    task = asyncio.create_task(informer.run())
    try:
        await wait_for(lambda: ("resync", "a") in recorder.events)
    finally:
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
    assert recorder.events[0] == ("add", "a")


async def test_failing_handler(
    informer: Informer[Secret], workspace_store: InMemoryObjectStore
) -> None:
    """Test a failing handler does not stop other handlers or the informer."""

    def fail(obj: Secret) -> None:
        raise ValueError("boom")

    recorder = Recorder()
    informer.add_event_handler(EventHandler(on_add=fail))
    informer.add_event_handler(recorder.handler())
    await workspace_store.create(new_secret("new"))
    await wait_for(lambda: ("add", "new") in recorder.events)


def test_cache_keys_return_type() -> None:
    """Test annotations naming the builtin list resolve despite the list method."""
    hints = typing.get_type_hints(LocalCache.keys)
    assert hints["return"] == list[ResourceIdentity]
