"""Server certificate issuance for the hub.

Provides X.509 server certificates signed by the hub authority and bound to
the hub's advertised DNS names and IP addresses.
"""
from __future__ import annotations

from hub_bootstrap.certificates.issuer import (
    AltNames,
    IssuanceError,
    ServerCertificateIssuer,
    ServerCertRequest,
    parse_ips,
    sign_server_certificate,
)

__all__ = [
    "AltNames",
    "IssuanceError",
    "ServerCertRequest",
    "ServerCertificateIssuer",
    "parse_ips",
    "sign_server_certificate",
]
