"""
The dns module publishes the records derived from Ingresses.

A `DNSProvider` receives the record sets of DNSRecord objects, and a
`HostResolver` turns load balancer hostnames into addresses.
"""

from .provider import PROVIDER_SPECIFIC_WEIGHT, DNSProvider, InMemoryDNSProvider
from .resolver import HostResolver, StaticHostResolver, SystemHostResolver

__all__ = [
    "PROVIDER_SPECIFIC_WEIGHT",
    "DNSProvider",
    "InMemoryDNSProvider",
    "HostResolver",
    "StaticHostResolver",
    "SystemHostResolver",
]
