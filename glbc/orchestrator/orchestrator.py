"""Orchestrator for glbc.

This module wires the informers and controllers of glbc to a pair of object
stores, one for the workspace scope and one for the control-plane scope, and
manages their lifecycle.
"""

import asyncio
from collections.abc import Callable, Mapping
import logging
from typing import Any

from glbc.config import GlbcConfig
from glbc.dns import (
    DNSProvider,
    HostResolver,
    InMemoryDNSProvider,
    SystemHostResolver,
)
from glbc.exceptions import GlbcException
from glbc.informer import Informer
from glbc.manifest import (
    Certificate,
    Deployment,
    DNSRecord,
    Ingress,
    Secret,
    Service,
)
from glbc.metrics import InMemoryMetricsSink, MetricsSink
from glbc.reconciler import Controller
from glbc.reconciler.dns import DNSRecordController
from glbc.reconciler.ingress import IngressController
from glbc.reconciler.ingress.host import generate_host_id
from glbc.reconciler.tls import TLSController
from glbc.reconciler.workload import new_deployment_controller, new_service_controller
from glbc.store import ObjectStore
from glbc.tls import (
    CertificateProvider,
    CertManagerConfig,
    CertManagerProvider,
    FakeProvider,
)
from glbc.tls.issuer import LocalIssuer

__all__ = [
    "Orchestrator",
]

_LOGGER = logging.getLogger(__name__)

IDLE_POLL_INTERVAL = 0.05
# Consecutive idle polls required before the system is considered settled
IDLE_POLLS = 3


def _new_provider(
    config: GlbcConfig,
    control_store: ObjectStore,
    metrics: MetricsSink,
    env: Mapping[str, str] | None,
) -> CertificateProvider:
    if not config.tls_enabled:
        _LOGGER.info("TLS disabled, certificates will not be issued")
        return FakeProvider()
    return CertManagerProvider(
        control_store,
        CertManagerConfig(
            issuer=config.tls_provider,
            domains=[config.domain],
            certificate_namespace=config.certificate_namespace,
            region=config.region,
            le_email=config.le_email,
        ),
        metrics,
        env=env,
    )


class Orchestrator:
    """Orchestrator for coordinating the execution of controllers.

    The orchestrator is responsible for:
    - Creating the informers and controllers over both stores
    - Initializing the certificate provider before anything reconciles
    - Starting informers and waiting for their caches to sync before
      starting the controller workers
    - Stopping everything again, letting in flight work finish
    """

    def __init__(
        self,
        workspace_store: ObjectStore,
        control_store: ObjectStore,
        config: GlbcConfig | None = None,
        metrics: MetricsSink | None = None,
        provider: CertificateProvider | None = None,
        dns_provider: DNSProvider | None = None,
        resolver: HostResolver | None = None,
        generate_id: Callable[[], str] = generate_host_id,
        local_issuer: bool = True,
        env: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            workspace_store: Store of the tenant facing workspace scope.
            control_store: Store of the privileged control-plane scope.
            config: Controller configuration.
            metrics: Sink receiving controller metrics.
            provider: Certificate provider, derived from the config when absent.
            dns_provider: Backend DNS records are published to.
            resolver: Resolver for load balancer hostnames.
            generate_id: Source of generated host ids.
            local_issuer: Fulfil Certificates in process instead of relying
                on an external cert-manager.
            env: Environment read by the certificate provider.

        Raises:
            ProviderException: If the certificate provider is misconfigured.
        """
        self.workspace_store = workspace_store
        self.control_store = control_store
        self.config = config or GlbcConfig()
        self.metrics = metrics or InMemoryMetricsSink()
        self.provider = provider or _new_provider(
            self.config, control_store, self.metrics, env
        )
        self.dns_provider = dns_provider or InMemoryDNSProvider()
        self._resolver = resolver or SystemHostResolver()
        self._generate_id = generate_id
        self._local_issuer = local_issuer
        self.informers: list[Informer[Any]] = []
        self.controllers: dict[str, Controller] = {}
        self._informer_tasks: list[asyncio.Task[None]] = []
        self._controller_tasks: list[asyncio.Task[None]] = []
        self._create_controllers()

    def _informer(
        self, store: ObjectStore, cls: type[Any], namespace: str | None = None
    ) -> Informer[Any]:
        informer: Informer[Any] = Informer(
            store, cls, namespace=namespace, resync_period=self.config.resync_period
        )
        self.informers.append(informer)
        return informer

    def _create_controllers(self) -> None:
        """Create the informers and all controllers."""
        namespace = self.config.certificate_namespace
        secrets = self._informer(self.control_store, Secret, namespace)
        ingresses = self._informer(self.workspace_store, Ingress)
        dns_records = self._informer(self.workspace_store, DNSRecord)
        services = self._informer(self.workspace_store, Service)
        deployments = self._informer(self.workspace_store, Deployment)

        controllers: list[Controller] = [
            TLSController(secrets, self.workspace_store, self.metrics),
            IngressController(
                ingresses,
                dns_records,
                self.provider,
                self._resolver,
                self.metrics,
                domain=self.config.domain,
                dns_ttl=self.config.dns_ttl,
                generate_id=self._generate_id,
            ),
            DNSRecordController(dns_records, self.dns_provider, self.metrics),
            new_service_controller(services, self.metrics),
            new_deployment_controller(deployments, self.metrics),
        ]
        if self._local_issuer and isinstance(self.provider, CertManagerProvider):
            certificates = self._informer(self.control_store, Certificate, namespace)
            controllers.append(LocalIssuer(certificates, self.metrics))
        self.controllers = {controller.name: controller for controller in controllers}
        _LOGGER.debug("Initialized controllers: %s", ", ".join(self.controllers))

    @property
    def running(self) -> bool:
        return bool(self._controller_tasks)

    async def start(self) -> None:
        """Start informers and controllers.

        Raises:
            ProviderException: If the certificate provider fails to initialize.
            StoreError: If an informer cannot list its store.
        """
        if self.running:
            return
        _LOGGER.info("Starting orchestrator")
        await self.provider.initialize()

        self._informer_tasks = [
            asyncio.create_task(informer.run(), name=f"informer-{informer.kind}")
            for informer in self.informers
        ]
        try:
            for informer, task in zip(self.informers, self._informer_tasks):
                await self._wait_for_sync(informer, task)
        except BaseException:
            await self._cancel(self._informer_tasks)
            self._informer_tasks = []
            raise
        _LOGGER.debug("Informer caches synced")

        self._controller_tasks = [
            asyncio.create_task(controller.start(self.config.workers), name=name)
            for name, controller in self.controllers.items()
        ]

    async def _wait_for_sync(
        self, informer: Informer[Any], task: asyncio.Task[None]
    ) -> None:
        """Wait for an informer cache, failing if the informer stops first."""
        synced = asyncio.create_task(informer.wait_for_sync())
        try:
            await asyncio.wait({synced, task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            synced.cancel()
        if not informer.has_synced():
            self._check_tasks()

    @staticmethod
    async def _cancel(tasks: list[asyncio.Task[None]]) -> list[Any]:
        for task in tasks:
            task.cancel()
        return await asyncio.gather(*tasks, return_exceptions=True)

    def _check_tasks(self) -> None:
        """Raise the failure of any informer or controller that has stopped.

        Informers and controllers run until cancelled, so one that has
        finished means its cache or queue is no longer being served.
        """
        for task in [*self._informer_tasks, *self._controller_tasks]:
            if not task.done() or task.cancelled():
                continue
            if (err := task.exception()) is not None:
                _LOGGER.error("%s failed: %s", task.get_name(), err)
                raise err
            raise GlbcException(f"{task.get_name()} stopped unexpectedly")

    async def stop(self) -> None:
        """Stop all controllers, then the informers feeding them."""
        if not self.running and not self._informer_tasks:
            return
        _LOGGER.info("Stopping orchestrator")
        for tasks in (self._controller_tasks, self._informer_tasks):
            for result in await self._cancel(tasks):
                if isinstance(result, Exception):
                    _LOGGER.error("Task failed during shutdown: %s", result)
        self._controller_tasks = []
        self._informer_tasks = []
        _LOGGER.info("Orchestrator stopped")

    def is_idle(self) -> bool:
        """Return True if no controller has work and no watch event is pending."""
        return all(
            controller.is_idle() for controller in self.controllers.values()
        ) and not any(informer.has_pending_events() for informer in self.informers)

    async def run(self) -> None:
        """Run until cancelled.

        Raises:
            GlbcException: If an informer or controller stops, e.g. because
                its watch failed.
        """
        await self.start()
        try:
            await asyncio.wait(
                [*self._informer_tasks, *self._controller_tasks],
                return_when=asyncio.FIRST_COMPLETED,
            )
            self._check_tasks()
        finally:
            await self.stop()

    async def run_until_idle(self, timeout: float) -> bool:
        """Start if needed and wait for all work to settle.

        Returns:
            bool: True if the system became idle, False if the timeout expired
            first, e.g. because some object keeps failing to reconcile.

        Raises:
            GlbcException: If an informer or controller stops while waiting.
        """
        await self.start()
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        idle_polls = 0
        while loop.time() < deadline:
            self._check_tasks()
            idle_polls = idle_polls + 1 if self.is_idle() else 0
            if idle_polls >= IDLE_POLLS:
                _LOGGER.info("All work completed")
                return True
            await asyncio.sleep(IDLE_POLL_INTERVAL)
        _LOGGER.error("Work did not complete within %s seconds", timeout)
        return False
