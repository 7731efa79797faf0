"""
The tls module issues certificates for the hosts glbc generates.

- `CertificateProvider` is the interface controllers use to request and
  cancel certificates for a `CertificateRequest`.
- `CertManagerProvider` requests certificates by creating cert-manager style
  Certificate objects in the control plane.
- `FakeProvider` issues nothing and is used when TLS is disabled.
"""

from .cert_manager import CertIssuer, CertManagerConfig, CertManagerProvider
from .fake import FakeProvider
from .provider import (
    ANNOTATION_TLS_ISSUER,
    CertificateProvider,
    CertificateRequest,
    is_valid_domain,
)

__all__ = [
    "ANNOTATION_TLS_ISSUER",
    "CertIssuer",
    "CertManagerConfig",
    "CertManagerProvider",
    "CertificateProvider",
    "CertificateRequest",
    "FakeProvider",
    "is_valid_domain",
]
