"""Bootstrap credential — authority fingerprint joined with a signed token.

Wire format::

    <fingerprint-hex>.<signed-token>

The token is itself dot-separated, so parsing splits on the first delimiter
only. Agents compare the fingerprint with the value they pinned out-of-band
and present the token when they register.
"""
from __future__ import annotations

import datetime
import hmac
from dataclasses import dataclass

from hub_bootstrap.authority import AuthorityProvider
from hub_bootstrap.tokens.fingerprint import FINGERPRINT_LENGTH, fingerprint
from hub_bootstrap.tokens.signer import TokenError, TokenInvalidError, TokenSigner

DELIMITER = "."


class FingerprintMismatchError(TokenError):
    """Raised when a credential names a different authority."""

    def __init__(self, presented: str) -> None:
        self.presented = presented
        super().__init__(
            f"Credential fingerprint {presented[:12]}... does not match the authority"
        )


@dataclass(frozen=True)
class BootstrapCredential:
    """A single rotation's credential value.

    Parameters
    ----------
    fingerprint:
        Lowercase hex SHA-256 of the authority certificate.
    token:
        Compact signed token carrying the expiry.
    expires_at:
        Expiry the token was signed with. None when parsed from text.
    """

    fingerprint: str
    token: str
    expires_at: datetime.datetime | None = None

    @classmethod
    def issue(
        cls, authority: AuthorityProvider, expires_at: datetime.datetime
    ) -> "BootstrapCredential":
        """Sign a token expiring at *expires_at* and bind it to *authority*.

        Raises
        ------
        SigningError
            If the authority key cannot be used to sign the token.
        """
        token = TokenSigner(authority.get_authority_private_key()).sign(expires_at)
        return cls(
            fingerprint=fingerprint(authority.get_authority_certificate()),
            token=token,
            expires_at=expires_at,
        )

    def encode(self) -> str:
        """Return the ``<fingerprint>.<token>`` string."""
        return DELIMITER.join([self.fingerprint, self.token])

    def to_bytes(self) -> bytes:
        return self.encode().encode("utf-8")

    @classmethod
    def parse(cls, value: str | bytes) -> "BootstrapCredential":
        """Split a credential string into its fingerprint and token.

        Raises
        ------
        TokenInvalidError
            If the value is not ``<64 hex chars>.<token>``.
        """
        if isinstance(value, bytes):
            try:
                value = value.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise TokenInvalidError("credential is not valid UTF-8") from exc

        ca_hash, sep, token = value.strip().partition(DELIMITER)
        if not sep or not token:
            raise TokenInvalidError("credential is missing the token part")
        if len(ca_hash) != FINGERPRINT_LENGTH or not _is_lower_hex(ca_hash):
            raise TokenInvalidError("credential fingerprint is not a SHA-256 hex digest")
        return cls(fingerprint=ca_hash, token=token)


def _is_lower_hex(text: str) -> bool:
    return all(c in "0123456789abcdef" for c in text)


class CredentialVerifier:
    """Checks bootstrap credentials presented by agents.

    Intended for registration handlers: the credential must name this
    authority and carry an unexpired token signed with its key.

    Parameters
    ----------
    authority:
        The authority whose fingerprint and key are expected.
    leeway:
        Clock skew tolerated on the token expiry.
    """

    def __init__(
        self,
        authority: AuthorityProvider,
        leeway: datetime.timedelta = datetime.timedelta(0),
    ) -> None:
        self._fingerprint = fingerprint(authority.get_authority_certificate())
        self._signer = TokenSigner(authority.get_authority_private_key(), leeway=leeway)

    def verify(self, value: str | bytes) -> datetime.datetime:
        """Verify a credential and return the token expiry.

        Raises
        ------
        TokenInvalidError
            When the credential or token is malformed.
        FingerprintMismatchError
            When the fingerprint belongs to another authority.
        TokenTamperedError
            When the token signature is invalid.
        TokenExpiredError
            When the token has expired.
        """
        credential = BootstrapCredential.parse(value)
        if not hmac.compare_digest(credential.fingerprint, self._fingerprint):
            raise FingerprintMismatchError(credential.fingerprint)
        return self._signer.verify(credential.token)
