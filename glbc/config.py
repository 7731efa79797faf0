"""Configuration objects for glbc."""

from collections.abc import Mapping
from dataclasses import dataclass
import os

from .exceptions import InputException

__all__ = [
    "GlbcConfig",
]

DEFAULT_DOMAIN = "dev.hcpapps.net"
DEFAULT_TLS_PROVIDER = "glbc-ca"
DEFAULT_CERTIFICATE_NAMESPACE = "cert-manager"
DEFAULT_WORKSPACE = "root:default"
DEFAULT_REGION = "eu-central-1"


def _env_bool(value: str) -> bool:
    if value.lower() in ("1", "true", "yes", "on"):
        return True
    if value.lower() in ("0", "false", "no", "off"):
        return False
    raise InputException(f"Invalid boolean value '{value}'")


def _env_number(name: str, value: str, cast: type[int] | type[float]) -> int | float:
    try:
        return cast(value)
    except ValueError as err:
        raise InputException(f"Invalid value for {name}: '{value}'") from err


@dataclass
class GlbcConfig:
    """Configuration for the glbc controllers."""

    domain: str = DEFAULT_DOMAIN
    """Domain generated hosts are created under."""

    tls_enabled: bool = True
    """Whether certificates are requested for generated hosts."""

    tls_provider: str = DEFAULT_TLS_PROVIDER
    """The certificate issuer, one of glbc-ca, letsencryptstaging, letsencryptprod."""

    certificate_namespace: str = DEFAULT_CERTIFICATE_NAMESPACE
    """Control-plane namespace holding certificates and issued secrets."""

    dns_ttl: int = 60
    """TTL of the DNS records derived from Ingresses."""

    workers: int = 2
    """Number of workers per controller."""

    resync_period: float | None = None
    """Seconds between informer resyncs, None to disable."""

    monitoring_port: int = 8080
    """Port the metrics endpoint is served on, 0 to disable."""

    region: str = DEFAULT_REGION
    """AWS region used by the Let's Encrypt DNS01 solver."""

    le_email: str = ""
    """Let's Encrypt account e-mail."""

    default_workspace: str = DEFAULT_WORKSPACE
    """Workspace assigned to loaded objects that do not declare one."""

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "GlbcConfig":
        """Return a configuration with defaults overridden by GLBC_ variables."""
        env = env if env is not None else os.environ
        config = cls()
        if value := env.get("GLBC_DOMAIN"):
            config.domain = value
        if value := env.get("GLBC_TLS_PROVIDED"):
            config.tls_enabled = _env_bool(value)
        if value := env.get("GLBC_TLS_PROVIDER"):
            config.tls_provider = value
        if value := env.get("GLBC_CERTIFICATE_NAMESPACE"):
            config.certificate_namespace = value
        if value := env.get("GLBC_DNS_TTL"):
            config.dns_ttl = int(_env_number("GLBC_DNS_TTL", value, int))
        if value := env.get("GLBC_WORKERS"):
            config.workers = int(_env_number("GLBC_WORKERS", value, int))
        if value := env.get("GLBC_RESYNC_PERIOD"):
            config.resync_period = float(_env_number("GLBC_RESYNC_PERIOD", value, float))
        if value := env.get("GLBC_MONITORING_PORT"):
            config.monitoring_port = int(
                _env_number("GLBC_MONITORING_PORT", value, int)
            )
        if value := env.get("AWS_REGION"):
            config.region = value
        if value := env.get("HCG_LE_EMAIL"):
            config.le_email = value
        if value := env.get("GLBC_WORKSPACE"):
            config.default_workspace = value
        return config
