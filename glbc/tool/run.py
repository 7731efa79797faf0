"""glbc run action.

Loads workspace manifests into an in-memory workspace store, runs every
controller against in-memory workspace and control-plane stores until all
work has settled, then prints the objects of both scopes.
"""

from argparse import (
    ArgumentParser,
    BooleanOptionalAction,
    _SubParsersAction as SubParsersAction,
)
import logging
import pathlib
from typing import cast

import aiofiles
import prometheus_client

from glbc.config import GlbcConfig
from glbc.dns import HostResolver, StaticHostResolver, SystemHostResolver
from glbc.exceptions import GlbcException, InputException
from glbc.manifest import Scope
from glbc.metrics import PrometheusMetricsSink, start_metrics_server
from glbc.orchestrator import LoadOptions, Orchestrator, ResourceLoader
from glbc.store import InMemoryObjectStore

_LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


def _resolver(entries: list[str] | None) -> HostResolver:
    """Return a resolver answering from HOST=IP entries, or the system resolver."""
    if not entries:
        return SystemHostResolver()
    resolver = StaticHostResolver()
    hosts: dict[str, list[str]] = {}
    for entry in entries:
        host, sep, address = entry.partition("=")
        if not sep or not host or not address:
            raise InputException(f"Invalid --resolve value '{entry}', expected HOST=IP")
        hosts.setdefault(host, []).append(address)
    for host, addresses in hosts.items():
        resolver.set(host, addresses)
    return resolver


class RunAction:
    """glbc run action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "run",
                help="Reconcile workspace manifests with in-memory stores",
                description="""Loads Ingresses, Services and Deployments from a
                    local directory into an in-memory workspace, runs the glbc
                    controllers until all work completes, and prints the
                    resulting objects of the workspace and the control plane.
                    Defaults are read from GLBC_* environment variables.""",
            ),
        )
        args.add_argument(
            "path", type=pathlib.Path, help="Path to a manifest file or directory"
        )
        args.add_argument(
            "--domain",
            type=str,
            help="Domain generated hosts are created under",
        )
        args.add_argument(
            "--tls-provider",
            type=str,
            help="Certificate issuer: glbc-ca, letsencryptstaging or letsencryptprod",
        )
        args.add_argument(
            "--tls",
            type=bool,
            action=BooleanOptionalAction,
            default=None,
            help="Request certificates for generated hosts",
        )
        args.add_argument(
            "--workspace",
            type=str,
            help="Workspace assigned to objects that do not declare one",
        )
        args.add_argument(
            "--workers",
            type=int,
            help="Number of workers per controller",
        )
        args.add_argument(
            "--dns-ttl",
            type=int,
            help="TTL of generated DNS records",
        )
        args.add_argument(
            "--resolve",
            type=str,
            action="append",
            help="Resolve a load balancer hostname as HOST=IP, may be repeated",
        )
        args.add_argument(
            "--timeout",
            type=float,
            default=DEFAULT_TIMEOUT,
            help="Seconds to wait for reconciliation to complete",
        )
        args.add_argument(
            "--monitoring-port",
            type=int,
            help="Port to serve metrics on, 0 to disable",
        )
        args.add_argument(
            "--output-file",
            type=str,
            default="/dev/stdout",
            help="Output file for the results of the command",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        path: pathlib.Path,
        output_file: str,
        timeout: float = DEFAULT_TIMEOUT,
        domain: str | None = None,
        tls_provider: str | None = None,
        tls: bool | None = None,
        workspace: str | None = None,
        workers: int | None = None,
        dns_ttl: int | None = None,
        resolve: list[str] | None = None,
        monitoring_port: int | None = None,
        **kwargs,
    ) -> None:
        """Async Action implementation."""
        config = GlbcConfig.from_env()
        if domain:
            config.domain = domain
        if tls_provider:
            config.tls_provider = tls_provider
        if tls is not None:
            config.tls_enabled = tls
        if workspace:
            config.default_workspace = workspace
        if workers is not None:
            if workers < 1:
                raise InputException("--workers must be at least 1")
            config.workers = workers
        if dns_ttl is not None:
            config.dns_ttl = dns_ttl
        if monitoring_port is not None:
            config.monitoring_port = monitoring_port

        workspace_store = InMemoryObjectStore(Scope.WORKSPACE)
        control_store = InMemoryObjectStore(Scope.CONTROL_PLANE)
        loader = ResourceLoader()
        async for obj in loader.load(
            LoadOptions(path=path, default_workspace=config.default_workspace)
        ):
            workspace_store.add_object(obj)

        metrics = PrometheusMetricsSink(prometheus_client.CollectorRegistry())
        start_metrics_server(config.monitoring_port, metrics)

        orchestrator = Orchestrator(
            workspace_store,
            control_store,
            config,
            metrics=metrics,
            resolver=_resolver(resolve),
        )
        try:
            idle = await orchestrator.run_until_idle(timeout)
        finally:
            await orchestrator.stop()

        async with aiofiles.open(output_file, mode="w") as file:
            for store in (workspace_store, control_store):
                for obj in store.list_all():
                    await file.write(obj.yaml())

        if not idle:
            raise GlbcException(
                f"Reconciliation did not complete within {timeout} seconds"
            )
