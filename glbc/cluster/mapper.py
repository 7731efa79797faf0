"""Mapping of objects between the workspace and control-plane scopes.

An object created in the control plane on behalf of a workspace object carries
the annotations needed to find its way back. A `WorkspaceContext` is read from
those annotations on a control-plane object, while a `ControlPlaneContext` is
derived from a workspace object to produce the name, labels and annotations
of its control-plane counterpart.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
import logging
import re

from glbc.exceptions import MissingContextError
from glbc.manifest import BaseObject
from glbc.tls.provider import CertificateRequest

__all__ = [
    "ObjectMapper",
    "WorkspaceContext",
    "ControlPlaneContext",
    "new_workspace_object_mapper",
    "new_control_object_mapper",
]

_LOGGER = logging.getLogger(__name__)

LABEL_HCG_HOST = "kuadrant.dev/hcg.host"
LABEL_HCG_MANAGED = "kuadrant.dev/hcg.managed"
LABEL_OWNED_BY = "kcp.dev/owned-by"

ANNOTATION_HCG_WORKSPACE = "kuadrant.dev/hcg.workspace"
ANNOTATION_HCG_NAMESPACE = "kuadrant.dev/hcg.namespace"
ANNOTATION_HCG_HOST = "kuadrant.dev/host.generated"
ANNOTATION_HCG_CUSTOM_HOST_REPLACED = "kuadrant.dev/custom-hosts.replaced"
ANNOTATION_CREATION_TIMESTAMP = "kuadrant.dev/hcg.creationTimestamp"
ANNOTATION_TLS_ENABLED = "kuadrant.dev/tls.enabled"

RFC3339_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Resource names are RFC 1123 subdomains
_INVALID_NAME_CHARS = re.compile(r"[^a-z0-9.\-]")


def format_timestamp(value: datetime | None) -> str:
    """Format a timestamp as RFC3339 in UTC with second precision."""
    if value is None:
        return ""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(RFC3339_FORMAT)


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC3339 timestamp, returning an aware datetime."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def sanitize_name(value: str) -> str:
    """Fold a name into a valid RFC 1123 resource name.

    Workspace names carry ':' separators which are removed. The value is
    also lowercased since the control cluster rejects upper case names, so
    names differing only by case map to the same resource. Any other
    character outside [a-z0-9.-] is dropped.
    """
    return _INVALID_NAME_CHARS.sub("", value.lower())


class ObjectMapper(CertificateRequest, ABC):
    """Cross cluster context shared by both mapping directions."""

    def __init__(
        self,
        workspace: str,
        namespace: str,
        name: str,
        host: str,
        owned_by: str,
        creation_timestamp: datetime | None,
    ) -> None:
        self._workspace = workspace
        self._namespace = namespace
        self._name = name
        self._host = host
        self._owned_by = owned_by
        self._creation_timestamp = creation_timestamp

    @property
    @abstractmethod
    def name(self) -> str:
        """Name of the counterpart object."""

    @property
    def namespace(self) -> str:
        """Namespace of the workspace object."""
        return self._namespace

    @property
    def workspace(self) -> str:
        """Logical cluster of the workspace object."""
        return self._workspace

    @property
    def host(self) -> str:
        return self._host

    @property
    def owned_by(self) -> str:
        """Name of the workspace object the mapped objects originate from."""
        return self._owned_by

    @property
    def creation_timestamp(self) -> datetime | None:
        """Creation time of the workspace object."""
        return self._creation_timestamp

    def labels(self) -> dict[str, str]:
        return {
            LABEL_HCG_HOST: self._host,
            LABEL_HCG_MANAGED: "true",
            LABEL_OWNED_BY: self._owned_by,
        }

    def annotations(self) -> dict[str, str]:
        return {
            ANNOTATION_HCG_WORKSPACE: self._workspace,
            ANNOTATION_HCG_NAMESPACE: self._namespace,
            ANNOTATION_HCG_HOST: self._host,
            ANNOTATION_CREATION_TIMESTAMP: format_timestamp(self._creation_timestamp),
        }

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(workspace={self._workspace!r}, "
            f"namespace={self._namespace!r}, name={self.name!r}, host={self._host!r})"
        )


class WorkspaceContext(ObjectMapper):
    """Context read from a control-plane object, pointing back at the workspace."""

    @property
    def name(self) -> str:
        return self._name


class ControlPlaneContext(ObjectMapper):
    """Context derived from a workspace object, naming its control-plane counterpart."""

    @property
    def name(self) -> str:
        """Return a name unique across workspaces and namespaces."""
        return sanitize_name(f"{self._workspace}-{self._namespace}-{self._name}")


def _required_annotation(obj: BaseObject, annotation: str) -> str:
    value = obj.metadata.annotations.get(annotation)
    if not value:
        raise MissingContextError(
            f"{obj.kind} {obj.namespace}/{obj.name} expected annotation "
            f"{annotation} to be present and not empty"
        )
    return value


def new_workspace_object_mapper(obj: BaseObject) -> WorkspaceContext:
    """Map a control-plane object back to the workspace object it was created for.

    Raises:
        MissingContextError: If any of the mapping annotations is absent or malformed.
    """
    raw_timestamp = _required_annotation(obj, ANNOTATION_CREATION_TIMESTAMP)
    try:
        creation_timestamp = parse_timestamp(raw_timestamp)
    except ValueError as err:
        raise MissingContextError(
            f"{obj.kind} {obj.namespace}/{obj.name} has invalid annotation "
            f"{ANNOTATION_CREATION_TIMESTAMP}: {raw_timestamp}"
        ) from err
    return WorkspaceContext(
        workspace=_required_annotation(obj, ANNOTATION_HCG_WORKSPACE),
        namespace=_required_annotation(obj, ANNOTATION_HCG_NAMESPACE),
        name=obj.name,
        host=_required_annotation(obj, ANNOTATION_HCG_HOST),
        owned_by=obj.metadata.labels.get(LABEL_OWNED_BY, ""),
        creation_timestamp=creation_timestamp,
    )


def new_control_object_mapper(obj: BaseObject) -> ControlPlaneContext:
    """Map a workspace object to the context of its control-plane counterparts.

    Only the generated host annotation is required; the workspace, namespace
    and creation time come from the object's own metadata.

    Raises:
        MissingContextError: If the object has no generated host.
    """
    return ControlPlaneContext(
        workspace=obj.metadata.cluster,
        namespace=obj.metadata.namespace or "",
        name=obj.name,
        host=_required_annotation(obj, ANNOTATION_HCG_HOST),
        owned_by=obj.name,
        creation_timestamp=obj.metadata.creation_timestamp,
    )
