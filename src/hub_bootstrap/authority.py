"""Authority identity material — the CA certificate and key held by the hub.

The hub's certificate authority is created or loaded before anything in this
package runs. Components here only read it through the AuthorityProvider
interface: the certificate and the private key, both as DER bytes, stable for
the lifetime of the process.
"""
from __future__ import annotations

import datetime
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes
from cryptography.x509.oid import NameOID

PROJECT_NAME = "hub-bootstrap"


class AuthorityProvider(ABC):
    """Read-only source of the authority certificate and private key."""

    @abstractmethod
    def get_authority_certificate(self) -> bytes:
        """Return the DER-encoded authority certificate."""

    @abstractmethod
    def get_authority_private_key(self) -> bytes:
        """Return the DER-encoded authority private key."""


@dataclass(frozen=True)
class AuthorityIdentity(AuthorityProvider):
    """In-memory authority material.

    Parameters
    ----------
    certificate_der:
        DER-encoded X.509 certificate of the authority.
    private_key_der:
        DER-encoded (PKCS#8) private key matching the certificate.
    """

    certificate_der: bytes
    private_key_der: bytes

    # ------------------------------------------------------------------
    # AuthorityProvider interface
    # ------------------------------------------------------------------

    def get_authority_certificate(self) -> bytes:
        return self.certificate_der

    def get_authority_private_key(self) -> bytes:
        return self.private_key_der

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @classmethod
    def generate(
        cls,
        common_name: str = PROJECT_NAME,
        organization: str = PROJECT_NAME,
        validity_days: int = 3650,
        key_size: int = 2048,
    ) -> "AuthorityIdentity":
        """Generate a new self-signed certificate authority.

        Parameters
        ----------
        common_name:
            Common name for the CA certificate subject.
        organization:
            Organization name for the CA certificate subject.
        validity_days:
            How long the CA certificate should be valid (default 10 years).
        key_size:
            RSA key size in bits. Must be at least 2048.

        Returns
        -------
        AuthorityIdentity
            Authority holding the DER-encoded certificate and key.

        Raises
        ------
        ValueError
            If ``key_size`` is less than 2048.
        """
        if key_size < 2048:
            raise ValueError(f"key_size must be at least 2048 bits, got {key_size}")

        ca_key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
        now = datetime.datetime.now(datetime.timezone.utc)

        subject = issuer = x509.Name(
            [
                x509.NameAttribute(NameOID.COMMON_NAME, common_name),
                x509.NameAttribute(NameOID.ORGANIZATION_NAME, organization),
            ]
        )

        ca_cert = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(issuer)
            .public_key(ca_key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now)
            .not_valid_after(now + datetime.timedelta(days=validity_days))
            .add_extension(
                x509.BasicConstraints(ca=True, path_length=None),
                critical=True,
            )
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    key_encipherment=False,
                    content_commitment=False,
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
                x509.SubjectKeyIdentifier.from_public_key(ca_key.public_key()),
                critical=False,
            )
            .sign(ca_key, hashes.SHA256())
        )

        return cls(
            certificate_der=ca_cert.public_bytes(serialization.Encoding.DER),
            private_key_der=ca_key.private_bytes(
                encoding=serialization.Encoding.DER,
                format=serialization.PrivateFormat.PKCS8,
                encryption_algorithm=serialization.NoEncryption(),
            ),
        )

    @classmethod
    def from_pem(cls, cert_pem: bytes, key_pem: bytes) -> "AuthorityIdentity":
        """Build an AuthorityIdentity from PEM-encoded certificate and key.

        Raises
        ------
        ValueError
            If either input cannot be parsed.
        """
        cert = x509.load_pem_x509_certificate(cert_pem)
        key = serialization.load_pem_private_key(key_pem, password=None)
        return cls(
            certificate_der=cert.public_bytes(serialization.Encoding.DER),
            private_key_der=key.private_bytes(
                encoding=serialization.Encoding.DER,
                format=serialization.PrivateFormat.PKCS8,
                encryption_algorithm=serialization.NoEncryption(),
            ),
        )

    @classmethod
    def load(cls, cert_path: Path, key_path: Path) -> "AuthorityIdentity":
        """Read PEM files from disk and build an AuthorityIdentity."""
        return cls.from_pem(Path(cert_path).read_bytes(), Path(key_path).read_bytes())

    # ------------------------------------------------------------------
    # Convenience
    # ------------------------------------------------------------------

    def load_certificate(self) -> x509.Certificate:
        """Parse and return the X.509 certificate object."""
        return x509.load_der_x509_certificate(self.certificate_der)

    def load_private_key(self) -> PrivateKeyTypes:
        """Parse and return the private key object."""
        return serialization.load_der_private_key(self.private_key_der, password=None)

    def certificate_pem(self) -> bytes:
        """Return PEM-encoded CA certificate bytes."""
        return self.load_certificate().public_bytes(serialization.Encoding.PEM)

    def private_key_pem(self) -> bytes:
        """Return PEM-encoded CA private key bytes (unencrypted)."""
        return self.load_private_key().private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
