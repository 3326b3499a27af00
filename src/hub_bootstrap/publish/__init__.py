"""Storage backends that receive each rotated bootstrap credential."""
from __future__ import annotations

from hub_bootstrap.publish.publisher import (
    FilesystemPublisher,
    InMemoryPublisher,
    PublishError,
    Publisher,
)

__all__ = [
    "FilesystemPublisher",
    "InMemoryPublisher",
    "PublishError",
    "Publisher",
]
