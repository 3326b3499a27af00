"""Credential publishing — abstract interface and two backends.

Publisher defines the contract the rotator hands each new credential to:
the stored value is replaced whole, and readers see either the previous
value or the new one. InMemoryPublisher keeps the value in a lock-guarded
slot; FilesystemPublisher replaces a file atomically.
"""
from __future__ import annotations

import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger(__name__)


class PublishError(Exception):
    """Raised when the storage backend cannot store a credential."""


class Publisher(ABC):
    """Abstract base class for credential storage backends."""

    @abstractmethod
    def publish(self, credential: bytes) -> None:
        """Replace the stored credential with *credential*.

        Raises
        ------
        PublishError
            If the value could not be stored. The previous value, if any,
            must remain readable.
        """

    @abstractmethod
    def read(self) -> bytes | None:
        """Return the current credential, or None if nothing is published."""


class InMemoryPublisher(Publisher):
    """Process-local publisher backed by a single lock-guarded slot."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value: bytes | None = None
        self._publish_count = 0

    def publish(self, credential: bytes) -> None:
        value = bytes(credential)
        with self._lock:
            self._value = value
            self._publish_count += 1

    def read(self) -> bytes | None:
        with self._lock:
            return self._value

    @property
    def publish_count(self) -> int:
        """Number of successful publish calls."""
        with self._lock:
            return self._publish_count


class FilesystemPublisher(Publisher):
    """Publishes the credential to a file via write-then-rename.

    The value is written to a temporary file in the target's directory,
    flushed to disk, and moved over the target with ``os.replace``.

    Parameters
    ----------
    path:
        Destination file for the credential.
    mode:
        Permission bits applied to the published file.
    """

    def __init__(self, path: Path, mode: int = 0o600) -> None:
        self._path = Path(path)
        self._mode = mode

    @property
    def path(self) -> Path:
        return self._path

    def publish(self, credential: bytes) -> None:
        directory = self._path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=str(directory), prefix=f".{self._path.name}.", suffix=".tmp"
            )
        except OSError as exc:
            raise PublishError(f"Cannot prepare {str(self._path)!r}: {exc}") from exc

        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(credential)
                handle.flush()
                os.fsync(handle.fileno())
            os.chmod(tmp_path, self._mode)
            os.replace(tmp_path, self._path)
        except OSError as exc:
            try:
                os.unlink(tmp_path)
            except OSError:
                logger.debug("Temporary file %s already removed", tmp_path)
            raise PublishError(f"Cannot write {str(self._path)!r}: {exc}") from exc

        logger.debug("Published credential to %s", self._path)

    def read(self) -> bytes | None:
        try:
            return self._path.read_bytes()
        except FileNotFoundError:
            return None
