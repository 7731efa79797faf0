"""Resolution of load balancer hostnames to addresses."""

from abc import ABC, abstractmethod
import asyncio
from collections.abc import Mapping
import logging
import socket

from glbc.exceptions import GlbcException

__all__ = [
    "HostResolver",
    "StaticHostResolver",
    "SystemHostResolver",
]

_LOGGER = logging.getLogger(__name__)


class HostResolver(ABC):
    """Resolves a hostname to its IPv4 addresses."""

    @abstractmethod
    async def lookup(self, host: str) -> list[str]:
        """Return the addresses of a host."""


class StaticHostResolver(HostResolver):
    """Resolver answering from a fixed table."""

    def __init__(self, hosts: Mapping[str, list[str]] | None = None) -> None:
        self._hosts = dict(hosts or {})

    def set(self, host: str, addresses: list[str]) -> None:
        self._hosts[host] = list(addresses)

    async def lookup(self, host: str) -> list[str]:
        return list(self._hosts.get(host, []))


class SystemHostResolver(HostResolver):
    """Resolver using the system name resolution."""

    async def lookup(self, host: str) -> list[str]:
        loop = asyncio.get_running_loop()
        try:
            infos = await loop.getaddrinfo(
                host, None, family=socket.AF_INET, type=socket.SOCK_STREAM
            )
        except socket.gaierror as err:
            raise GlbcException(f"Unable to resolve host {host}: {err}") from err
        addresses: list[str] = []
        for *_, sockaddr in infos:
            if (address := str(sockaddr[0])) not in addresses:
                addresses.append(address)
        _LOGGER.debug("Resolved %s to %s", host, addresses)
        return addresses
