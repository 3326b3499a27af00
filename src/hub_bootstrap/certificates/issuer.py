"""Server certificate issuance for the hub.

ServerCertificateIssuer mints a fresh key pair and a certificate signed by
the authority, restricted to server authentication and valid for the hub's
DNS names and advertised IP addresses. It keeps no state between calls.
"""
from __future__ import annotations

import datetime
import ipaddress
import logging
from dataclasses import dataclass, field
from typing import Iterable, Union

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from hub_bootstrap.authority import AuthorityProvider
from hub_bootstrap.config import HubConfig

logger = logging.getLogger(__name__)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


class IssuanceError(Exception):
    """Raised when a server certificate or its key cannot be produced."""


def parse_ips(addresses: Iterable[str]) -> list[IPAddress]:
    """Parse textual addresses, dropping entries that are not valid IPs.

    Dropped entries are logged at WARNING level and never raise.
    """
    parsed: list[IPAddress] = []
    for addr in addresses:
        try:
            parsed.append(ipaddress.ip_address(addr.strip()))
        except ValueError:
            logger.warning("Ignoring advertise address %r: not a valid IP address", addr)
    return parsed


@dataclass(frozen=True)
class AltNames:
    """Subject alternative names for a server certificate."""

    dns_names: list[str] = field(default_factory=list)
    ips: list[IPAddress] = field(default_factory=list)

    @classmethod
    def from_strings(
        cls, dns_names: Iterable[str], addresses: Iterable[str]
    ) -> "AltNames":
        """Build AltNames from raw DNS names and textual addresses."""
        return cls(dns_names=list(dns_names), ips=parse_ips(addresses))

    def general_names(self) -> list[x509.GeneralName]:
        names: list[x509.GeneralName] = [x509.DNSName(name) for name in self.dns_names]
        names.extend(x509.IPAddress(ip) for ip in self.ips)
        return names


@dataclass(frozen=True)
class ServerCertRequest:
    """Desired subject, usages, and alternative names of a server certificate.

    Parameters
    ----------
    common_name:
        Subject common name. Must not be empty.
    organization:
        Subject organization. Must not be empty.
    alt_names:
        DNS names and IP addresses the certificate is valid for.
    usages:
        Extended key usages. Defaults to server authentication only.
    """

    common_name: str
    organization: str
    alt_names: AltNames = field(default_factory=AltNames)
    usages: tuple[x509.ObjectIdentifier, ...] = (ExtendedKeyUsageOID.SERVER_AUTH,)

    def __post_init__(self) -> None:
        if not self.common_name.strip():
            raise ValueError("common_name must not be empty")
        if not self.organization.strip():
            raise ValueError("organization must not be empty")
        if not self.usages:
            raise ValueError("usages must contain at least one extended key usage")


class ServerCertificateIssuer:
    """Issues server certificates signed by the hub authority.

    Parameters
    ----------
    authority:
        Source of the authority certificate and private key.
    validity_days:
        Validity period of issued certificates.
    key_size:
        RSA key size for the generated server key.
    """

    def __init__(
        self,
        authority: AuthorityProvider,
        validity_days: int = 365,
        key_size: int = 2048,
    ) -> None:
        if validity_days <= 0:
            raise ValueError(f"validity_days must be positive, got {validity_days}")
        self._authority = authority
        self._validity_days = validity_days
        self._key_size = key_size

    def issue(self, request: ServerCertRequest) -> tuple[bytes, bytes]:
        """Issue a certificate for *request*.

        Returns
        -------
        tuple[bytes, bytes]
            DER-encoded certificate and DER-encoded (PKCS#8) private key.

        Raises
        ------
        IssuanceError
            If the authority material cannot be loaded or signing fails.
        """
        try:
            ca_cert = x509.load_der_x509_certificate(
                self._authority.get_authority_certificate()
            )
            ca_key = serialization.load_der_private_key(
                self._authority.get_authority_private_key(), password=None
            )
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            raise IssuanceError(f"Cannot load authority material: {exc}") from exc

        try:
            server_key = rsa.generate_private_key(
                public_exponent=65537, key_size=self._key_size
            )
            now = datetime.datetime.now(datetime.timezone.utc)

            subject = x509.Name(
                [
                    x509.NameAttribute(NameOID.COMMON_NAME, request.common_name),
                    x509.NameAttribute(NameOID.ORGANIZATION_NAME, request.organization),
                ]
            )

            builder = (
                x509.CertificateBuilder()
                .subject_name(subject)
                .issuer_name(ca_cert.subject)
                .public_key(server_key.public_key())
                .serial_number(x509.random_serial_number())
                .not_valid_before(now)
                .not_valid_after(now + datetime.timedelta(days=self._validity_days))
                .add_extension(
                    x509.BasicConstraints(ca=False, path_length=None),
                    critical=True,
                )
                .add_extension(
                    x509.KeyUsage(
                        digital_signature=True,
                        key_encipherment=True,
                        content_commitment=False,
                        data_encipherment=False,
                        key_agreement=False,
                        key_cert_sign=False,
                        crl_sign=False,
                        encipher_only=False,
                        decipher_only=False,
                    ),
                    critical=True,
                )
                .add_extension(
                    x509.ExtendedKeyUsage(list(request.usages)),
                    critical=False,
                )
                .add_extension(
                    x509.AuthorityKeyIdentifier.from_issuer_public_key(
                        ca_cert.public_key()  # type: ignore[arg-type]
                    ),
                    critical=False,
                )
            )

            general_names = request.alt_names.general_names()
            if general_names:
                builder = builder.add_extension(
                    x509.SubjectAlternativeName(general_names), critical=False
                )

            cert = builder.sign(ca_key, hashes.SHA256())  # type: ignore[arg-type]
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            raise IssuanceError(f"Failed to sign server certificate: {exc}") from exc

        logger.info(
            "Issued server certificate cn=%r serial=%s dns=%s ips=%s",
            request.common_name,
            cert.serial_number,
            request.alt_names.dns_names,
            [str(ip) for ip in request.alt_names.ips],
        )

        cert_der = cert.public_bytes(serialization.Encoding.DER)
        key_der = server_key.private_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        return cert_der, key_der


def sign_server_certificate(
    config: HubConfig, issuer: ServerCertificateIssuer
) -> tuple[bytes, bytes]:
    """Issue the hub's own server certificate from its configuration."""
    request = ServerCertRequest(
        common_name=config.common_name,
        organization=config.organization,
        alt_names=AltNames.from_strings(config.dns_names, config.advertise_addresses),
    )
    return issuer.issue(request)
