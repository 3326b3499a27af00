"""TokenSigner — time-limited HS256 tokens keyed by the authority key.

Tokens are compact JWTs whose only required claim is ``exp``. The signing
key is the raw authority private key bytes used as an HMAC secret, so any
party holding the authority key can verify a token and no other party can
produce one.
"""
from __future__ import annotations

import datetime

import jwt

ALGORITHM = "HS256"


# ---------------------------------------------------------------------------
# Custom exceptions
# ---------------------------------------------------------------------------


class SigningError(Exception):
    """Raised when a token cannot be signed with the given key."""


class TokenError(Exception):
    """Base class for all token verification errors."""


class TokenExpiredError(TokenError):
    """Raised when the token's expiry time has passed."""

    def __init__(self, expired_at: datetime.datetime | None = None) -> None:
        self.expired_at = expired_at
        when = expired_at.isoformat() if expired_at else "an earlier time"
        super().__init__(f"Token expired at {when}")


class TokenInvalidError(TokenError):
    """Raised when the token is structurally invalid."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid token: {reason}")


class TokenTamperedError(TokenError):
    """Raised when signature verification fails."""

    def __init__(self) -> None:
        super().__init__("Token signature verification failed")


# ---------------------------------------------------------------------------
# TokenSigner
# ---------------------------------------------------------------------------


class TokenSigner:
    """Signs and verifies expiry-bearing tokens with a symmetric key.

    Parameters
    ----------
    key:
        Secret key material. For bootstrap credentials this is the DER
        encoding of the authority private key.
    leeway:
        Clock skew tolerated when checking expiry during verification.
    """

    def __init__(
        self, key: bytes, leeway: datetime.timedelta = datetime.timedelta(0)
    ) -> None:
        self._key = key
        self._leeway = leeway

    def sign(self, expires_at: datetime.datetime) -> str:
        """Return a compact signed token that expires at *expires_at*.

        The ``exp`` claim is stored in whole seconds since the epoch.

        Raises
        ------
        SigningError
            If the key is rejected or encoding fails.
        """
        claims = {"exp": int(expires_at.timestamp())}
        try:
            return jwt.encode(claims, self._key, algorithm=ALGORITHM)
        except (jwt.PyJWTError, TypeError, ValueError) as exc:
            raise SigningError(f"Failed to sign token: {exc}") from exc

    def verify(self, token: str) -> datetime.datetime:
        """Verify *token* and return its expiry as an aware UTC datetime.

        Raises
        ------
        TokenExpiredError
            When the signature is valid but the token has expired.
        TokenTamperedError
            When the signature does not match.
        TokenInvalidError
            When the token is malformed or lacks an ``exp`` claim.
        """
        try:
            claims = jwt.decode(
                token,
                self._key,
                algorithms=[ALGORITHM],
                options={"require": ["exp"]},
                leeway=self._leeway,
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpiredError(_unverified_expiry(token)) from exc
        except jwt.InvalidSignatureError as exc:
            raise TokenTamperedError() from exc
        except jwt.InvalidTokenError as exc:
            raise TokenInvalidError(str(exc)) from exc

        return datetime.datetime.fromtimestamp(int(claims["exp"]), tz=datetime.timezone.utc)


def _unverified_expiry(token: str) -> datetime.datetime | None:
    """Read ``exp`` from an already signature-checked token, if present."""
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
        return datetime.datetime.fromtimestamp(int(claims["exp"]), tz=datetime.timezone.utc)
    except (jwt.PyJWTError, KeyError, TypeError, ValueError):
        return None
