"""Periodic bootstrap credential rotation."""

from __future__ import annotations

from hub_bootstrap.rotation.rotator import BootstrapRotator, RotationError, RotatorState

__all__ = [
    "BootstrapRotator",
    "RotationError",
    "RotatorState",
]
