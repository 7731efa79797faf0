"""Controller for DNSRecords."""

from .controller import DNSRecordController

__all__ = [
    "DNSRecordController",
]
