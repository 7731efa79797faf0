"""Helpers for generating keys and X.509 certificates."""

import base64
from datetime import datetime, timedelta, timezone
import re

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from glbc.exceptions import InputException

__all__ = [
    "generate_ca",
    "issue_certificate",
    "parse_duration",
    "encode_data",
    "decode_data",
]

ORGANIZATION = "Kuadrant"
DEFAULT_KEY_SIZE = 2048

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(h|m|s)")


def encode_data(value: bytes) -> str:
    """Encode secret data the way it is stored in a Secret."""
    return base64.b64encode(value).decode()


def decode_data(value: str) -> bytes:
    return base64.b64decode(value)


def parse_duration(value: str) -> timedelta:
    """Parse a duration such as `2160h` or `1h30m`."""
    if not value or _DURATION_PART.sub("", value):
        raise InputException(f"Invalid duration '{value}'")
    total = timedelta()
    for amount, unit in _DURATION_PART.findall(value):
        if unit == "h":
            total += timedelta(hours=float(amount))
        elif unit == "m":
            total += timedelta(minutes=float(amount))
        else:
            total += timedelta(seconds=float(amount))
    return total


def _private_key_pem(key: rsa.RSAPrivateKey) -> bytes:
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )


def generate_ca(
    common_name: str,
    valid_for: timedelta = timedelta(days=365),
    key_size: int = DEFAULT_KEY_SIZE,
) -> tuple[bytes, bytes]:
    """Generate a self-signed CA, returning the PEM certificate and private key."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
    subject = x509.Name(
        [
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, ORGANIZATION),
            x509.NameAttribute(NameOID.COMMON_NAME, common_name),
        ]
    )
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + valid_for)
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=False,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=True,
                crl_sign=True,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .add_extension(
            x509.ExtendedKeyUsage(
                [ExtendedKeyUsageOID.CLIENT_AUTH, ExtendedKeyUsageOID.SERVER_AUTH]
            ),
            critical=False,
        )
        .sign(key, hashes.SHA256())
    )
    return cert.public_bytes(serialization.Encoding.PEM), _private_key_pem(key)


def issue_certificate(
    dns_names: list[str],
    valid_for: timedelta,
    ca_cert_pem: bytes | None = None,
    ca_key_pem: bytes | None = None,
    key_size: int = DEFAULT_KEY_SIZE,
) -> tuple[bytes, bytes]:
    """Issue a serving certificate for the DNS names.

    The certificate is signed by the CA when one is given and is self-signed
    otherwise. Returns the PEM certificate and private key.
    """
    if not dns_names:
        raise InputException("Certificate requires at least one DNS name")
    key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, dns_names[0])])
    issuer_name = subject
    signing_key: rsa.RSAPrivateKey = key
    if ca_cert_pem and ca_key_pem:
        ca_cert = x509.load_pem_x509_certificate(ca_cert_pem)
        ca_key = serialization.load_pem_private_key(ca_key_pem, password=None)
        if not isinstance(ca_key, rsa.RSAPrivateKey):
            raise InputException("CA private key is not an RSA key")
        issuer_name = ca_cert.subject
        signing_key = ca_key
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer_name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + valid_for)
        .add_extension(
            x509.SubjectAlternativeName([x509.DNSName(name) for name in dns_names]),
            critical=False,
        )
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .add_extension(
            x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]), critical=False
        )
        .sign(signing_key, hashes.SHA256())
    )
    return cert.public_bytes(serialization.Encoding.PEM), _private_key_pem(key)
