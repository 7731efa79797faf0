"""
The orchestrator module runs glbc.

- `Orchestrator` wires informers and controllers to the workspace and
  control-plane stores and manages their lifecycle.
- `ResourceLoader` reads manifests from disk, used to seed a store before
  the controllers start.
"""

from .loader import LoadOptions, ResourceLoader
from .orchestrator import Orchestrator

__all__ = [
    "LoadOptions",
    "Orchestrator",
    "ResourceLoader",
]
