"""hub-bootstrap — server certificates and rotating bootstrap credentials for edge agents.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Quick start
-----------
::

    import datetime

    from hub_bootstrap import (
        AuthorityIdentity, BootstrapRotator, CredentialVerifier, InMemoryPublisher,
    )

    authority = AuthorityIdentity.generate()
    publisher = InMemoryPublisher()
    rotator = BootstrapRotator(authority, publisher, period=datetime.timedelta(hours=12))
    rotator.rotate_once()
    CredentialVerifier(authority).verify(publisher.read())
"""
from __future__ import annotations

__version__: str = "0.1.0"

from hub_bootstrap.authority import PROJECT_NAME, AuthorityIdentity, AuthorityProvider
from hub_bootstrap.certificates.issuer import (
    AltNames,
    IssuanceError,
    ServerCertificateIssuer,
    ServerCertRequest,
    parse_ips,
    sign_server_certificate,
)
from hub_bootstrap.config import ConfigError, HubConfig
from hub_bootstrap.publish.publisher import (
    FilesystemPublisher,
    InMemoryPublisher,
    PublishError,
    Publisher,
)
from hub_bootstrap.rotation.rotator import BootstrapRotator, RotationError, RotatorState
from hub_bootstrap.tokens.credential import (
    BootstrapCredential,
    CredentialVerifier,
    FingerprintMismatchError,
)
from hub_bootstrap.tokens.fingerprint import fingerprint
from hub_bootstrap.tokens.signer import (
    SigningError,
    TokenError,
    TokenExpiredError,
    TokenInvalidError,
    TokenSigner,
    TokenTamperedError,
)

__all__ = [
    "__version__",
    "PROJECT_NAME",
    # authority
    "AuthorityIdentity",
    "AuthorityProvider",
    # certificates
    "AltNames",
    "IssuanceError",
    "ServerCertRequest",
    "ServerCertificateIssuer",
    "parse_ips",
    "sign_server_certificate",
    # config
    "ConfigError",
    "HubConfig",
    # publish
    "FilesystemPublisher",
    "InMemoryPublisher",
    "PublishError",
    "Publisher",
    # rotation
    "BootstrapRotator",
    "RotationError",
    "RotatorState",
    # tokens
    "BootstrapCredential",
    "CredentialVerifier",
    "FingerprintMismatchError",
    "SigningError",
    "TokenError",
    "TokenExpiredError",
    "TokenInvalidError",
    "TokenSigner",
    "TokenTamperedError",
    "fingerprint",
]
