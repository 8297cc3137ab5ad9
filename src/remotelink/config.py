"""Endpoint and connection settings.

An ``Endpoint`` identifies one remote host and the credentials used to log in.
``ConnectionSettings`` holds the tunables of the connect/retry/reconnect cycle.
Both are frozen pydantic models so one manager instance sees the same values
for its whole lifetime.
"""

import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from remotelink.logger import get_logger

logger = get_logger("config")

DEFAULT_PORT = 22
ENV_PREFIX = "REMOTELINK_"


class Endpoint(BaseModel):
    """A remote host reachable over SSH/SFTP."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(..., description="Hostname or IP address")
    port: int = Field(DEFAULT_PORT, description="SSH port")
    username: str = Field(..., description="Login user")
    password: str = Field("", repr=False, description="Login password")
    name: Optional[str] = Field(None, description="Human-friendly label")

    @field_validator("port", mode="before")
    @classmethod
    def _default_port(cls, value):
        if value is None or value == "":
            return DEFAULT_PORT
        value = int(value)
        return value if value > 0 else DEFAULT_PORT

    @property
    def address(self) -> str:
        """Return ``host:port``."""
        return f"{self.host}:{self.port}"

    @property
    def display_name(self) -> str:
        """Return ``name (host)``, or just the host for unnamed endpoints."""
        if self.name:
            return f"{self.name} ({self.host})"
        return self.host

    def is_valid(self) -> bool:
        """Check that every field needed to log in is filled in."""
        return bool(self.name and self.host and self.port > 0 and self.username and self.password)

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX) -> "Endpoint":
        """
        Build an endpoint from environment variables.

        Reads ``<prefix>HOST``, ``<prefix>PORT``, ``<prefix>USERNAME``,
        ``<prefix>PASSWORD`` and ``<prefix>NAME``.

        Raises:
            ValidationError: If host or username is missing
        """
        values = {
            "host": os.getenv(f"{prefix}HOST"),
            "port": os.getenv(f"{prefix}PORT"),
            "username": os.getenv(f"{prefix}USERNAME"),
            "password": os.getenv(f"{prefix}PASSWORD", ""),
            "name": os.getenv(f"{prefix}NAME"),
        }
        logger.debug(f"Loading endpoint from environment (prefix={prefix})")
        return cls(**{key: value for key, value in values.items() if value is not None})


class ConnectionSettings(BaseModel):
    """Tunables for connecting, retrying and watching a session."""

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(3, ge=1, description="Connect attempts per connect/reconnect")
    initial_backoff: float = Field(2.0, ge=0, description="Delay after the first failed attempt (seconds)")
    backoff_multiplier: float = Field(2.0, ge=1, description="Growth factor between delays")
    settle_delay: float = Field(1.0, ge=0, description="Pause between teardown and a new session (seconds)")
    connect_timeout: float = Field(30.0, gt=0, description="Socket timeout for one connect attempt (seconds)")
    keepalive_interval: int = Field(5, ge=0, description="SSH keepalive interval (seconds, 0 disables)")
    monitor_interval: float = Field(5.0, gt=0, description="Liveness probe interval (seconds)")

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX) -> "ConnectionSettings":
        """Build settings, overriding defaults with ``<prefix><FIELD>`` variables."""
        overrides = {}
        for field_name in cls.model_fields:
            raw = os.getenv(f"{prefix}{field_name.upper()}")
            if raw is not None:
                overrides[field_name] = raw
        if overrides:
            logger.debug(f"Connection settings overridden from environment: {sorted(overrides)}")
        return cls(**overrides)
