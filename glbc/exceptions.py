"""Exceptions related to glbc."""

__all__ = [
    "GlbcException",
    "InputException",
    "MissingContextError",
    "StoreError",
    "ObjectNotFoundError",
    "AlreadyExistsError",
    "ConflictError",
    "StoreUnavailableError",
    "ProviderException",
    "InvalidDomainError",
    "QueueShutDownError",
    "is_missing_context",
]


class GlbcException(Exception):
    """Generic base exception used for this library."""


class InputException(GlbcException):
    """Raised when the input files or values are not formatted as expected."""


class MissingContextError(GlbcException):
    """Raised when an object lacks the annotations needed to map it across clusters.

    This indicates the object is not managed by glbc rather than a failure, so
    callers skip the object instead of retrying it.
    """


class StoreError(GlbcException):
    """Raised when an object store operation fails."""


class ObjectNotFoundError(StoreError):
    """Raised when an object is not found in the store."""


class AlreadyExistsError(StoreError):
    """Raised when creating an object that already exists."""


class ConflictError(StoreError):
    """Raised when an update carries a stale resource version."""


class StoreUnavailableError(StoreError):
    """Raised when the store cannot be reached."""


class ProviderException(GlbcException):
    """Raised when a certificate or DNS provider fails."""


class InvalidDomainError(ProviderException):
    """Raised when a certificate is requested for a host outside the allowed domains."""

    def __init__(self, host: str, domains: list[str]) -> None:
        super().__init__(
            f"cannot create certificate for host {host} invalid domain "
            f"(allowed: {', '.join(domains) or 'none'})"
        )
        self.host = host
        self.domains = domains


class QueueShutDownError(GlbcException):
    """Raised by a work queue that has been shut down."""


def is_missing_context(err: BaseException) -> bool:
    """Return True if the error means the object is not managed by glbc."""
    return isinstance(err, MissingContextError)
