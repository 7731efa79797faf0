"""Certificate provider backed by cert-manager style Certificate objects.

Certificates are materialized in a namespace of the control-plane store, and
the issued secret is expected to appear under the certificate's name carrying
the certificate's secret template. The issuer named by the provider is
created by `initialize`.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
import logging
import os

from glbc.exceptions import (
    AlreadyExistsError,
    InvalidDomainError,
    ObjectNotFoundError,
    ProviderException,
)
from glbc.manifest import (
    SECRET_TYPE_OPAQUE,
    SECRET_TYPE_TLS,
    TLS_CERT_KEY,
    TLS_PRIVATE_KEY_KEY,
    BaseObject,
    Certificate,
    CertificateSpec,
    Issuer,
    IssuerRef,
    ObjectMeta,
    Secret,
    SecretTemplate,
)
from glbc.metrics import MetricsSink
from glbc.store import ObjectStore

from .certs import encode_data, generate_ca
from .metrics import (
    CERTIFICATE_PENDING_REQUEST_COUNT,
    CERTIFICATE_REQUEST_ERRORS,
    HOSTNAME_LABEL,
    ISSUER_LABEL,
)
from .provider import (
    ANNOTATION_TLS_ISSUER,
    CertificateProvider,
    CertificateRequest,
    is_valid_domain,
)

__all__ = [
    "CertIssuer",
    "CertManagerConfig",
    "CertManagerProvider",
    "CA_SECRET_NAME",
]

_LOGGER = logging.getLogger(__name__)

DEFAULT_CERTIFICATE_NAMESPACE = "cert-manager"

CA_SECRET_NAME = "glbc-ca"
AWS_SECRET_NAME = "route53-credentials"

ENV_AWS_ACCESS_KEY_ID = "AWS_ACCESS_KEY_ID"
ENV_AWS_SECRET_ACCESS_KEY = "AWS_SECRET_ACCESS_KEY"
ENV_AWS_ZONE_ID = "AWS_DNS_PUBLIC_ZONE_ID"
ENV_LE_EMAIL = "HCG_LE_EMAIL"

LE_PROD_API = "https://acme-v02.api.letsencrypt.org/directory"
LE_STAGING_API = "https://acme-staging-v02.api.letsencrypt.org/directory"


class CertIssuer(StrEnum):
    """Issuers the provider knows how to create."""

    CA = "glbc-ca"
    LE_STAGING = "letsencryptstaging"
    LE_PROD = "letsencryptprod"


LETSENCRYPT_ISSUERS = (CertIssuer.LE_STAGING, CertIssuer.LE_PROD)


@dataclass
class CertManagerConfig:
    """Configuration for the cert-manager provider."""

    issuer: str = CertIssuer.CA
    """Name of the issuer certificates reference."""

    domains: list[str] = field(default_factory=list)
    """Domains certificates may be issued for."""

    certificate_namespace: str = DEFAULT_CERTIFICATE_NAMESPACE
    """Control-plane namespace holding certificates and their secrets."""

    region: str = ""
    """AWS region used by the Route53 DNS01 solver."""

    le_email: str = ""
    """Account e-mail for Let's Encrypt, read from the environment when empty."""


class CertManagerProvider(CertificateProvider):
    """Requests certificates by creating Certificate objects in the control plane."""

    def __init__(
        self,
        store: ObjectStore,
        config: CertManagerConfig,
        metrics: MetricsSink,
        env: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize CertManagerProvider.

        Raises:
            ProviderException: If a Let's Encrypt issuer is missing its settings.
        """
        self._store = store
        self._config = config
        self._metrics = metrics
        self._env = env if env is not None else os.environ
        self._le_email = config.le_email or self._env.get(ENV_LE_EMAIL, "")
        if config.issuer in LETSENCRYPT_ISSUERS:
            missing = [
                name
                for name in (
                    ENV_AWS_ACCESS_KEY_ID,
                    ENV_AWS_SECRET_ACCESS_KEY,
                    ENV_AWS_ZONE_ID,
                )
                if not self._env.get(name)
            ]
            if missing:
                raise ProviderException(
                    f"certmanager is missing env vars for aws {' '.join(missing)}"
                )
            if not self._le_email:
                raise ProviderException(f"certmanager: missing env var {ENV_LE_EMAIL}")

    @property
    def issuer_id(self) -> str:
        return str(self._config.issuer)

    @property
    def domains(self) -> list[str]:
        return list(self._config.domains)

    @property
    def certificate_namespace(self) -> str:
        return self._config.certificate_namespace

    async def initialize(self) -> None:
        """Create the issuer and the secret it depends on."""
        _LOGGER.info("Initializing %s certificate issuer", self.issuer_id)
        if self._config.issuer in LETSENCRYPT_ISSUERS:
            await self._ensure(self._aws_secret())
            await self._ensure(self._letsencrypt_issuer())
        elif self._config.issuer == CertIssuer.CA:
            await self._ensure_ca_secret()
            await self._ensure(self._ca_issuer())
        else:
            raise ProviderException(
                f"unsupported TLS certificate provider '{self._config.issuer}'"
            )

    async def create(self, request: CertificateRequest) -> None:
        """Create the Certificate for a request.

        Raises:
            InvalidDomainError: If the host is outside the allowed domains.
            AlreadyExistsError: If the certificate has already been requested.
        """
        if not is_valid_domain(request.host, self._config.domains):
            self._metrics.inc_counter(
                CERTIFICATE_REQUEST_ERRORS, {ISSUER_LABEL: self.issuer_id}
            )
            raise InvalidDomainError(request.host, self._config.domains)
        await self._store.create(self._certificate(request))
        _LOGGER.info("Requested certificate %s for %s", request.name, request.host)
        self._metrics.add_gauge(
            CERTIFICATE_PENDING_REQUEST_COUNT,
            {ISSUER_LABEL: self.issuer_id, HOSTNAME_LABEL: request.host},
            1,
        )

    async def delete(self, request: CertificateRequest) -> None:
        """Delete the Certificate and its secret, ignoring objects already gone."""
        namespace = self._config.certificate_namespace
        cert_found = True
        try:
            await self._store.delete(Certificate, "", namespace, request.name)
        except ObjectNotFoundError:
            cert_found = False
        try:
            await self._store.delete(Secret, "", namespace, request.name)
        except ObjectNotFoundError:
            if cert_found:
                # The certificate was never issued, the pending request is cancelled
                _LOGGER.debug("Cancelled pending certificate %s", request.name)
                self._metrics.add_gauge(
                    CERTIFICATE_PENDING_REQUEST_COUNT,
                    {ISSUER_LABEL: self.issuer_id, HOSTNAME_LABEL: request.host},
                    -1,
                )

    def _certificate(self, request: CertificateRequest) -> Certificate:
        annotations = request.annotations()
        annotations[ANNOTATION_TLS_ISSUER] = self.issuer_id
        return Certificate(
            metadata=ObjectMeta(
                name=request.name,
                namespace=self._config.certificate_namespace,
            ),
            spec=CertificateSpec(
                secret_name=request.name,
                dns_names=[request.host],
                issuer_ref=IssuerRef(name=self.issuer_id),
                secret_template=SecretTemplate(
                    labels=request.labels(),
                    annotations=annotations,
                ),
            ),
        )

    async def _ensure(self, obj: BaseObject) -> None:
        """Create an object, replacing the existing one if present."""
        try:
            await self._store.create(obj)
            return
        except AlreadyExistsError:
            pass
        existing = await self._store.get(
            type(obj), obj.metadata.cluster, obj.metadata.namespace, obj.name
        )
        obj.metadata.resource_version = existing.metadata.resource_version
        await self._store.update(obj)

    async def _ensure_ca_secret(self) -> None:
        namespace = self._config.certificate_namespace
        try:
            await self._store.get(Secret, "", namespace, CA_SECRET_NAME)
        except ObjectNotFoundError:
            pass
        else:
            _LOGGER.debug("Reusing existing CA secret %s", CA_SECRET_NAME)
            return
        cert_pem, key_pem = generate_ca(CA_SECRET_NAME)
        secret = Secret(
            metadata=ObjectMeta(name=CA_SECRET_NAME, namespace=namespace),
            data={
                TLS_CERT_KEY: encode_data(cert_pem),
                TLS_PRIVATE_KEY_KEY: encode_data(key_pem),
            },
            type=SECRET_TYPE_TLS,
        )
        await self._ensure(secret)

    def _ca_issuer(self) -> Issuer:
        return Issuer(
            metadata=ObjectMeta(
                name=self.issuer_id, namespace=self._config.certificate_namespace
            ),
            spec={"ca": {"secretName": CA_SECRET_NAME}},
        )

    def _aws_secret(self) -> Secret:
        return Secret(
            metadata=ObjectMeta(
                name=AWS_SECRET_NAME, namespace=self._config.certificate_namespace
            ),
            data={
                name: encode_data(self._env.get(name, "").encode())
                for name in (
                    ENV_AWS_ACCESS_KEY_ID,
                    ENV_AWS_SECRET_ACCESS_KEY,
                    ENV_AWS_ZONE_ID,
                )
            },
            type=SECRET_TYPE_OPAQUE,
        )

    def _letsencrypt_issuer(self) -> Issuer:
        server = LE_PROD_API if self._config.issuer == CertIssuer.LE_PROD else LE_STAGING_API
        return Issuer(
            metadata=ObjectMeta(
                name=self.issuer_id, namespace=self._config.certificate_namespace
            ),
            spec={
                "acme": {
                    "email": self._le_email,
                    "server": server,
                    "privateKeySecretRef": {"name": self.issuer_id},
                    "solvers": [
                        {
                            "dns01": {
                                "route53": {
                                    "accessKeyID": self._env.get(ENV_AWS_ACCESS_KEY_ID, ""),
                                    "hostedZoneID": self._env.get(ENV_AWS_ZONE_ID, ""),
                                    "region": self._config.region,
                                    "secretAccessKeySecretRef": {
                                        "name": AWS_SECRET_NAME,
                                        "key": ENV_AWS_SECRET_ACCESS_KEY,
                                    },
                                }
                            }
                        }
                    ],
                }
            },
        )
