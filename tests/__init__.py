"""Test helpers for glbc."""

import asyncio
from collections.abc import AsyncGenerator, Callable
import contextlib
from datetime import datetime, timedelta, timezone
from typing import Any

from glbc.informer import Informer
from glbc.manifest import (
    Ingress,
    IngressRule,
    IngressSpec,
    IngressStatus,
    IngressTLS,
    LoadBalancerIngress,
    LoadBalancerStatus,
    ObjectMeta,
)
from glbc.reconciler import Controller

WORKSPACE = "root:org:ws"
NAMESPACE = "default"
DOMAIN = "hcpapps.net"
CERTIFICATE_NAMESPACE = "cert-manager"

CREATION_TIMESTAMP = datetime(2022, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class StepClock:
    """Store clock advancing by a fixed step on every reading."""

    def __init__(
        self, start: datetime = CREATION_TIMESTAMP, step: timedelta = timedelta(seconds=1)
    ) -> None:
        self._now = start
        self._step = step

    def __call__(self) -> datetime:
        now = self._now
        self._now += self._step
        return now


def new_ingress(
    name: str = "echo",
    namespace: str = NAMESPACE,
    cluster: str = WORKSPACE,
    annotations: dict[str, str] | None = None,
    hosts: list[str] | None = None,
    tls_hosts: list[str] | None = None,
    ips: list[str] | None = None,
    hostnames: list[str] | None = None,
) -> Ingress:
    """Return an Ingress with the given rules and load balancer status."""
    return Ingress(
        metadata=ObjectMeta(
            name=name,
            namespace=namespace,
            cluster=cluster,
            annotations=dict(annotations or {}),
        ),
        spec=IngressSpec(
            rules=[IngressRule(host=host) for host in hosts or []],
            tls=(
                [IngressTLS(hosts=list(tls_hosts), secret_name=f"{name}-tls")]
                if tls_hosts
                else []
            ),
        ),
        status=IngressStatus(
            load_balancer=LoadBalancerStatus(
                ingress=[LoadBalancerIngress(ip=ip) for ip in ips or []]
                + [LoadBalancerIngress(hostname=host) for host in hostnames or []]
            )
        ),
    )


async def wait_for(predicate: Callable[[], bool], timeout: float = 5.0) -> None:
    """Poll until the predicate holds."""
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.005)


def _informers(controllers: tuple[Controller, ...]) -> list[Informer[Any]]:
    informers: list[Informer[Any]] = []
    for controller in controllers:
        for informer in controller.informers:
            if informer not in informers:
                informers.append(informer)
    return informers


async def settle(*controllers: Controller, timeout: float = 5.0) -> None:
    """Wait until the controllers have no work and no watch event is pending."""
    informers = _informers(controllers)

    def idle() -> bool:
        return all(c.is_idle() for c in controllers) and not any(
            i.has_pending_events() for i in informers
        )

    idle_polls = 0
    async with asyncio.timeout(timeout):
        while idle_polls < 3:
            idle_polls = idle_polls + 1 if idle() else 0
            await asyncio.sleep(0.01)


@contextlib.asynccontextmanager
async def running(*controllers: Controller, workers: int = 1) -> AsyncGenerator[None, None]:
    """Run the informers and workers of the controllers for the duration."""
    informers = _informers(controllers)
    informer_tasks = [asyncio.create_task(informer.run()) for informer in informers]
    await asyncio.gather(*(informer.wait_for_sync() for informer in informers))
    controller_tasks = [
        asyncio.create_task(controller.start(workers)) for controller in controllers
    ]
    await asyncio.sleep(0)
    try:
        yield
    finally:
        for tasks in (controller_tasks, informer_tasks):
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
