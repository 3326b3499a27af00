"""Authority certificate fingerprint."""
from __future__ import annotations

import hashlib

FINGERPRINT_LENGTH = 64


def fingerprint(cert_der: bytes) -> str:
    """Return the lowercase hex SHA-256 digest of *cert_der*.

    Agents pin this value out-of-band to recognise the legitimate authority.
    """
    return hashlib.sha256(cert_der).hexdigest()
