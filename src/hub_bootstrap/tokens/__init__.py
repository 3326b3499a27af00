"""Fingerprint, token signing, and bootstrap credential helpers."""
from __future__ import annotations

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
