"""Controllers for Services and Deployments."""

from .controller import (
    WorkloadController,
    new_deployment_controller,
    new_service_controller,
)

__all__ = [
    "WorkloadController",
    "new_deployment_controller",
    "new_service_controller",
]
