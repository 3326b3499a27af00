"""BootstrapRotator — periodic refresh of the published bootstrap credential.

Every period the rotator signs a token that expires two periods from now,
prefixes it with the authority fingerprint, and hands the result to a
Publisher. An agent that fetched the credential just before a rotation and
cached it for a full period still holds a token that is valid for at least
one more period, so consecutive credentials always overlap.

The rotator never exits the process itself. A failure to sign or publish
ends the loop and surfaces as a RotationError; the supervising caller (the
CLI in this package) decides to terminate.
"""
from __future__ import annotations

import datetime
import logging
import threading
from enum import Enum
from typing import Callable, Optional

from hub_bootstrap.authority import AuthorityProvider
from hub_bootstrap.publish.publisher import PublishError, Publisher
from hub_bootstrap.tokens.credential import BootstrapCredential
from hub_bootstrap.tokens.signer import SigningError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class RotatorState(str, Enum):
    """Lifecycle state of a BootstrapRotator."""

    IDLE = "idle"
    ROTATING = "rotating"
    PUBLISHED = "published"
    STOPPED = "stopped"
    FAILED = "failed"


class RotationError(Exception):
    """Raised when a rotation cannot complete.

    Parameters
    ----------
    step:
        The step that failed (``"signing token"`` or ``"publishing credential"``).
    cause:
        The underlying SigningError or PublishError.
    """

    def __init__(self, step: str, cause: Exception) -> None:
        self.step = step
        self.cause = cause
        super().__init__(f"Bootstrap credential rotation failed while {step}: {cause}")


class BootstrapRotator:
    """Signs, fingerprints, and publishes a fresh credential every period.

    Rotations are strictly sequential: ``rotate_once`` holds a lock for the
    whole compute-and-publish step, and the background loop runs on a
    single thread.

    Parameters
    ----------
    authority:
        Source of the authority certificate (fingerprinted) and private key
        (used as the token signing key). Read on every rotation.
    publisher:
        Destination for each new credential.
    period:
        Interval between rotations. Must be positive.
    clock:
        Callable returning the current aware UTC datetime. Defaults to the
        system clock.
    """

    def __init__(
        self,
        authority: AuthorityProvider,
        publisher: Publisher,
        period: datetime.timedelta,
        clock: Optional[Callable[[], datetime.datetime]] = None,
    ) -> None:
        if period <= datetime.timedelta(0):
            raise ValueError(f"period must be positive, got {period}")
        self._authority = authority
        self._publisher = publisher
        self._period = period
        self._clock = clock or _utcnow

        self._lock = threading.Lock()
        self._state = RotatorState.IDLE
        self._last_credential: Optional[BootstrapCredential] = None
        self._rotation_count = 0

        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._error: Optional[Exception] = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def period(self) -> datetime.timedelta:
        return self._period

    @property
    def token_lifetime(self) -> datetime.timedelta:
        """Validity of each signed token: twice the rotation period."""
        return self._period * 2

    @property
    def state(self) -> RotatorState:
        return self._state

    @property
    def last_credential(self) -> Optional[BootstrapCredential]:
        """The most recently published credential, or None."""
        return self._last_credential

    @property
    def rotation_count(self) -> int:
        return self._rotation_count

    # ------------------------------------------------------------------
    # Rotation
    # ------------------------------------------------------------------

    def build_credential(
        self, now: Optional[datetime.datetime] = None
    ) -> BootstrapCredential:
        """Compute a credential expiring two periods after *now* without publishing it.

        Raises
        ------
        SigningError
            If the token cannot be signed.
        """
        reference = now or self._clock()
        return BootstrapCredential.issue(self._authority, reference + self.token_lifetime)

    def rotate_once(
        self, now: Optional[datetime.datetime] = None
    ) -> BootstrapCredential:
        """Build and publish one credential.

        Parameters
        ----------
        now:
            Reference time for the expiry (defaults to the rotator clock).

        Returns
        -------
        BootstrapCredential
            The credential that was published.

        Raises
        ------
        RotationError
            If signing or publishing fails. The publisher keeps its
            previous value and the rotator moves to ``FAILED``.
        """
        with self._lock:
            self._state = RotatorState.ROTATING

            try:
                credential = self.build_credential(now)
            except SigningError as exc:
                self._state = RotatorState.FAILED
                logger.error("Failed to generate token signed by the authority key: %s", exc)
                raise RotationError("signing token", exc) from exc

            try:
                self._publisher.publish(credential.to_bytes())
            except PublishError as exc:
                self._state = RotatorState.FAILED
                logger.error("Failed to publish the bootstrap credential: %s", exc)
                raise RotationError("publishing credential", exc) from exc

            self._last_credential = credential
            self._rotation_count += 1
            self._state = RotatorState.PUBLISHED

        logger.info(
            "Published bootstrap credential #%d, token expires at %s",
            self._rotation_count,
            credential.expires_at.isoformat() if credential.expires_at else "unknown",
        )
        return credential

    def run(self, stop_event: threading.Event) -> None:
        """Rotate now and then once per period until *stop_event* is set.

        Raises
        ------
        RotationError
            On the first failed rotation; the loop does not continue.
        """
        interval = self._period.total_seconds()
        while not stop_event.is_set():
            self.rotate_once()
            if stop_event.wait(interval):
                break
        self._state = RotatorState.STOPPED
        logger.info("Bootstrap credential rotation stopped")

    # ------------------------------------------------------------------
    # Background thread
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Run the rotation loop on a background thread.

        Raises
        ------
        RuntimeError
            If the rotator is already running.
        """
        if self._thread is not None and self._thread.is_alive():
            raise RuntimeError("Rotator is already running")
        self._stop_event = threading.Event()
        self._error = None
        self._thread = threading.Thread(
            target=self._run_in_thread, name="bootstrap-rotator", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Signal the loop to stop and wait for the thread to finish."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the background loop ends or *timeout* elapses.

        Returns
        -------
        bool
            True if the loop has ended, False if it is still running.

        Raises
        ------
        RotationError
            If the loop ended because a rotation failed.
        """
        if self._thread is not None:
            self._thread.join(timeout)
        if self._error is not None:
            raise self._error
        return self._thread is None or not self._thread.is_alive()

    def _run_in_thread(self) -> None:
        try:
            self.run(self._stop_event)
        except RotationError as exc:
            self._error = exc
        except Exception as exc:
            self._state = RotatorState.FAILED
            logger.exception("Unexpected error in bootstrap credential rotation")
            self._error = exc
