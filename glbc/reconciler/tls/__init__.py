"""Controller for the lifecycle of issued TLS secrets."""

from .controller import CONTROLLER_NAME, SECRETS_FINALIZER, TLSController

__all__ = [
    "CONTROLLER_NAME",
    "SECRETS_FINALIZER",
    "TLSController",
]
