"""
The cluster module maps objects between the workspace and control-plane scopes.

Objects created in the control plane on behalf of a workspace object carry
annotations describing where they came from, so that reconciliation of either
side can always find the other.
"""

from .mapper import (
    ANNOTATION_CREATION_TIMESTAMP,
    ANNOTATION_HCG_CUSTOM_HOST_REPLACED,
    ANNOTATION_HCG_HOST,
    ANNOTATION_HCG_NAMESPACE,
    ANNOTATION_HCG_WORKSPACE,
    ANNOTATION_TLS_ENABLED,
    LABEL_HCG_HOST,
    LABEL_HCG_MANAGED,
    LABEL_OWNED_BY,
    ControlPlaneContext,
    ObjectMapper,
    WorkspaceContext,
    new_control_object_mapper,
    new_workspace_object_mapper,
)

__all__ = [
    "ANNOTATION_CREATION_TIMESTAMP",
    "ANNOTATION_HCG_CUSTOM_HOST_REPLACED",
    "ANNOTATION_HCG_HOST",
    "ANNOTATION_HCG_NAMESPACE",
    "ANNOTATION_HCG_WORKSPACE",
    "ANNOTATION_TLS_ENABLED",
    "LABEL_HCG_HOST",
    "LABEL_HCG_MANAGED",
    "LABEL_OWNED_BY",
    "ControlPlaneContext",
    "ObjectMapper",
    "WorkspaceContext",
    "new_control_object_mapper",
    "new_workspace_object_mapper",
]
