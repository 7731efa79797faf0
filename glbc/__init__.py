"""
glbc is a global load balancer controller.

It keeps DNS records, TLS certificates and mirrored certificate secrets in a
privileged control-plane scope synchronized with the Ingresses declared in
tenant facing workspaces.
"""

__all__ = [
    "cluster",
    "config",
    "dns",
    "exceptions",
    "informer",
    "manifest",
    "metrics",
    "orchestrator",
    "reconciler",
    "store",
    "tls",
    "workqueue",
    # Note this is exposed for CLI documentation, not to be used as a library
    "tool",
]
