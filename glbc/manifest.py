"""Representation of the objects reconciled by glbc.

Objects are plain dataclasses shaped like their Kubernetes counterparts. They
may be parsed from Kubernetes-style documents (e.g. YAML manifests read from
disk) and serialized back to the same shape, so that objects flowing through
the stores can be dumped and inspected.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
import logging
from typing import Any, ClassVar, TypeVar

from mashumaro import DataClassDictMixin, field_options
from mashumaro.config import BaseConfig
import yaml

from .exceptions import InputException

__all__ = [
    "Scope",
    "ResourceIdentity",
    "ObjectMeta",
    "BaseObject",
    "Secret",
    "Ingress",
    "Service",
    "Deployment",
    "DNSRecord",
    "Certificate",
    "Issuer",
    "parse_raw_obj",
]

_LOGGER = logging.getLogger(__name__)


SECRET_KIND = "Secret"
INGRESS_KIND = "Ingress"
SERVICE_KIND = "Service"
DEPLOYMENT_KIND = "Deployment"
DNS_RECORD_KIND = "DNSRecord"
CERTIFICATE_KIND = "Certificate"
ISSUER_KIND = "Issuer"

SECRET_TYPE_OPAQUE = "Opaque"
SECRET_TYPE_TLS = "kubernetes.io/tls"
TLS_CERT_KEY = "tls.crt"
TLS_PRIVATE_KEY_KEY = "tls.key"

DEFAULT_NAMESPACE = "default"

# The logical cluster an object lives in when read from a kcp workspace
CLUSTER_ANNOTATION = "kcp.dev/cluster"

T = TypeVar("T", bound="BaseObject")


class Scope(StrEnum):
    """The object store an object lives in."""

    WORKSPACE = "workspace"
    CONTROL_PLANE = "control-plane"


@dataclass(frozen=True, order=True)
class ResourceIdentity:
    """Identifier for an object in either the workspace or control-plane scope."""

    scope: Scope
    cluster: str
    namespace: str | None
    name: str

    @property
    def namespaced_name(self) -> str:
        if self.namespace:
            return f"{self.namespace}/{self.name}"
        return self.name

    def __str__(self) -> str:
        """Return the scope, cluster and namespaced name concatenated as an id."""
        if self.cluster:
            return f"{self.scope}|{self.cluster}|{self.namespaced_name}"
        return f"{self.scope}|{self.namespaced_name}"


@dataclass
class BaseManifest(DataClassDictMixin):
    """Base class for all serializable objects."""

    class Config(BaseConfig):
        omit_none = True
        serialize_by_alias = True


@dataclass
class ObjectMeta(BaseManifest):
    """Metadata common to all objects."""

    name: str
    """The name of the object."""

    namespace: str | None = None
    """The namespace of the object."""

    cluster: str = field(default="", metadata=field_options(alias="clusterName"))
    """The logical cluster (workspace) holding the object, empty in the control plane."""

    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)

    finalizers: list[str] = field(default_factory=list)
    """Deletion guard tokens preventing physical deletion."""

    creation_timestamp: datetime | None = field(
        default=None, metadata=field_options(alias="creationTimestamp")
    )
    deletion_timestamp: datetime | None = field(
        default=None, metadata=field_options(alias="deletionTimestamp")
    )
    resource_version: str = field(
        default="", metadata=field_options(alias="resourceVersion")
    )
    uid: str = ""


@dataclass
class BaseObject(BaseManifest):
    """Base class for all objects held in an object store."""

    kind: ClassVar[str]
    api_version: ClassVar[str]

    metadata: ObjectMeta
    """Object metadata."""

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str | None:
        return self.metadata.namespace

    @property
    def cluster(self) -> str:
        return self.metadata.cluster

    @property
    def deleting(self) -> bool:
        """Return True once the object has been marked for deletion."""
        return self.metadata.deletion_timestamp is not None

    @classmethod
    def parse_doc(cls: type[T], doc: dict[str, Any]) -> T:
        """Parse an object from a Kubernetes-style document."""
        if doc.get("kind") != cls.kind:
            raise InputException(f"Invalid {cls.kind} object has kind {doc.get('kind')}")
        if not (metadata := doc.get("metadata")) or not metadata.get("name"):
            raise InputException(f"Invalid {cls.kind} missing metadata.name: {doc}")
        doc = dict(doc)
        doc["metadata"] = dict(metadata)
        if not metadata.get("namespace"):
            doc["metadata"]["namespace"] = DEFAULT_NAMESPACE
        if not metadata.get("clusterName"):
            annotations = metadata.get("annotations") or {}
            if cluster := annotations.get(CLUSTER_ANNOTATION):
                doc["metadata"]["clusterName"] = cluster
        try:
            return cls.from_dict(doc)
        except ValueError as err:
            raise InputException(f"Invalid {cls.kind} object: {err}") from err

    def to_doc(self) -> dict[str, Any]:
        """Return a Kubernetes-style document for the object."""
        return {"apiVersion": self.api_version, "kind": self.kind, **self.to_dict()}

    def yaml(self) -> str:
        """Return a YAML string representation of the object."""
        return yaml.dump(self.to_doc(), sort_keys=False, explicit_start=True)


@dataclass
class Secret(BaseObject):
    """A Secret, holding base64 encoded data."""

    kind: ClassVar[str] = SECRET_KIND
    api_version: ClassVar[str] = "v1"

    data: dict[str, str] = field(default_factory=dict)
    type: str = SECRET_TYPE_OPAQUE


@dataclass
class IngressRule(BaseManifest):
    """A host rule of an Ingress."""

    host: str = ""
    http: dict[str, Any] | None = None


@dataclass
class IngressTLS(BaseManifest):
    """The TLS configuration of an Ingress."""

    hosts: list[str] = field(default_factory=list)
    secret_name: str = field(default="", metadata=field_options(alias="secretName"))


@dataclass
class IngressSpec(BaseManifest):
    """The spec of an Ingress."""

    rules: list[IngressRule] = field(default_factory=list)
    tls: list[IngressTLS] = field(default_factory=list)


@dataclass
class LoadBalancerIngress(BaseManifest):
    """An address of a load balancer fronting an Ingress."""

    ip: str = ""
    hostname: str = ""


@dataclass
class LoadBalancerStatus(BaseManifest):
    """The load balancer status of an Ingress."""

    ingress: list[LoadBalancerIngress] = field(default_factory=list)


@dataclass
class IngressStatus(BaseManifest):
    """The status of an Ingress."""

    load_balancer: LoadBalancerStatus = field(
        default_factory=LoadBalancerStatus,
        metadata=field_options(alias="loadBalancer"),
    )


@dataclass
class Ingress(BaseObject):
    """An Ingress declared by a tenant in a workspace."""

    kind: ClassVar[str] = INGRESS_KIND
    api_version: ClassVar[str] = "networking.k8s.io/v1"

    spec: IngressSpec = field(default_factory=IngressSpec)
    status: IngressStatus = field(default_factory=IngressStatus)


@dataclass
class Service(BaseObject):
    """A Service declared in a workspace."""

    kind: ClassVar[str] = SERVICE_KIND
    api_version: ClassVar[str] = "v1"

    spec: dict[str, Any] = field(default_factory=dict)


@dataclass
class Deployment(BaseObject):
    """A Deployment declared in a workspace."""

    kind: ClassVar[str] = DEPLOYMENT_KIND
    api_version: ClassVar[str] = "apps/v1"

    spec: dict[str, Any] = field(default_factory=dict)


@dataclass
class Endpoint(BaseManifest):
    """A single DNS record set entry."""

    dns_name: str = field(default="", metadata=field_options(alias="dnsName"))
    targets: list[str] = field(default_factory=list)
    record_type: str = field(default="A", metadata=field_options(alias="recordType"))
    record_ttl: int = field(default=60, metadata=field_options(alias="recordTTL"))
    set_identifier: str = field(
        default="", metadata=field_options(alias="setIdentifier")
    )
    provider_specific: dict[str, str] = field(
        default_factory=dict, metadata=field_options(alias="providerSpecific")
    )


@dataclass
class DNSRecordSpec(BaseManifest):
    """The spec of a DNSRecord."""

    endpoints: list[Endpoint] = field(default_factory=list)


@dataclass
class DNSRecord(BaseObject):
    """A DNS record set derived from an Ingress."""

    kind: ClassVar[str] = DNS_RECORD_KIND
    api_version: ClassVar[str] = "kuadrant.dev/v1"

    spec: DNSRecordSpec = field(default_factory=DNSRecordSpec)


@dataclass
class IssuerRef(BaseManifest):
    """Reference to the issuer of a Certificate."""

    name: str
    kind: str = ISSUER_KIND
    group: str = "cert-manager.io"


@dataclass
class SecretTemplate(BaseManifest):
    """Metadata copied onto the Secret issued for a Certificate."""

    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)


@dataclass
class PrivateKey(BaseManifest):
    """Private key settings of a Certificate."""

    algorithm: str = "RSA"
    encoding: str = "PKCS1"
    size: int = 2048


@dataclass
class CertificateSpec(BaseManifest):
    """The spec of a Certificate."""

    secret_name: str = field(default="", metadata=field_options(alias="secretName"))
    dns_names: list[str] = field(
        default_factory=list, metadata=field_options(alias="dnsNames")
    )
    issuer_ref: IssuerRef | None = field(
        default=None, metadata=field_options(alias="issuerRef")
    )
    secret_template: SecretTemplate = field(
        default_factory=SecretTemplate, metadata=field_options(alias="secretTemplate")
    )
    duration: str = "2160h"
    renew_before: str = field(default="360h", metadata=field_options(alias="renewBefore"))
    private_key: PrivateKey = field(
        default_factory=PrivateKey, metadata=field_options(alias="privateKey")
    )
    usages: list[str] = field(
        default_factory=lambda: ["digital signature", "key encipherment"]
    )


@dataclass
class CertificateStatus(BaseManifest):
    """The status of a Certificate."""

    ready: bool = False
    not_after: datetime | None = field(
        default=None, metadata=field_options(alias="notAfter")
    )


@dataclass
class Certificate(BaseObject):
    """A certificate request materialized in the control plane."""

    kind: ClassVar[str] = CERTIFICATE_KIND
    api_version: ClassVar[str] = "cert-manager.io/v1"

    spec: CertificateSpec = field(default_factory=CertificateSpec)
    status: CertificateStatus = field(default_factory=CertificateStatus)


@dataclass
class Issuer(BaseObject):
    """A certificate issuer in the control plane."""

    kind: ClassVar[str] = ISSUER_KIND
    api_version: ClassVar[str] = "cert-manager.io/v1"

    spec: dict[str, Any] = field(default_factory=dict)


KINDS: dict[str, type[BaseObject]] = {
    cls.kind: cls
    for cls in (Secret, Ingress, Service, Deployment, DNSRecord, Certificate, Issuer)
}


def parse_raw_obj(doc: dict[str, Any]) -> BaseObject:
    """Parse a Kubernetes-style document into the matching object type."""
    if not (kind := doc.get("kind")):
        raise InputException(f"Invalid object missing kind: {doc}")
    if (cls := KINDS.get(kind)) is None:
        raise InputException(f"Unsupported object kind {kind}")
    return cls.parse_doc(doc)
