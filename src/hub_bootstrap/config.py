"""HubConfig — validated settings injected into the issuer and rotator.

Nothing in the package reads configuration from global state; callers build
a HubConfig (directly or from a JSON file) and pass it where it is needed.
"""
from __future__ import annotations

import datetime
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator

from hub_bootstrap.authority import PROJECT_NAME

DEFAULT_REFRESH_PERIOD = datetime.timedelta(hours=12)


class ConfigError(Exception):
    """Raised when a configuration file cannot be read or validated."""


class HubConfig(BaseModel):
    """Process configuration for bootstrap credential rotation.

    Parameters
    ----------
    refresh_period:
        Interval between credential rotations. Accepts a number of seconds
        or an ISO 8601 duration. Tokens are valid for twice this period.
    advertise_addresses:
        Textual IP addresses the hub is reachable on. Entries that do not
        parse as IP addresses are dropped when the server certificate is
        issued.
    dns_names:
        DNS names placed verbatim in the server certificate.
    common_name:
        Subject common name for the server certificate.
    organization:
        Subject organization for the server certificate.
    server_cert_validity_days:
        Validity of issued server certificates.
    """

    refresh_period: datetime.timedelta = DEFAULT_REFRESH_PERIOD
    advertise_addresses: list[str] = Field(default_factory=list)
    dns_names: list[str] = Field(default_factory=list)
    common_name: str = Field(default=PROJECT_NAME, min_length=1)
    organization: str = Field(default=PROJECT_NAME, min_length=1)
    server_cert_validity_days: int = Field(default=365, gt=0)

    model_config = {"frozen": True}

    @field_validator("refresh_period")
    @classmethod
    def _period_must_be_positive(cls, value: datetime.timedelta) -> datetime.timedelta:
        if value <= datetime.timedelta(0):
            raise ValueError("refresh_period must be greater than zero")
        return value

    @classmethod
    def from_file(cls, path: Path) -> "HubConfig":
        """Load and validate a JSON configuration file.

        Raises
        ------
        ConfigError
            If the file is missing, unreadable, or fails validation.
        """
        try:
            raw = Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Cannot read config file {str(path)!r}: {exc}") from exc
        try:
            return cls.model_validate_json(raw)
        except ValidationError as exc:
            raise ConfigError(f"Invalid config file {str(path)!r}: {exc}") from exc
