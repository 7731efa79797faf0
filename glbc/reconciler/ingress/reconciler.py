"""Steps an Ingress reconciliation is composed of."""

from abc import ABC, abstractmethod
from enum import Enum

from glbc.manifest import Ingress

__all__ = [
    "ReconcileStatus",
    "Reconciler",
]


class ReconcileStatus(Enum):
    """Whether the chain of reconcilers continues after a step."""

    STOP = "stop"
    CONTINUE = "continue"


class Reconciler(ABC):
    """A single step of an Ingress reconciliation.

    Steps mutate the Ingress they are given, which the controller persists
    once the chain is done.
    """

    @abstractmethod
    async def reconcile(self, ingress: Ingress) -> ReconcileStatus:
        """Reconcile one aspect of the Ingress."""
