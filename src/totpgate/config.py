"""Gate configuration loaded from environment variables and keyword overrides."""

from __future__ import annotations

import re
from typing import Any

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from totpgate.errors import ConfigurationError

DEFAULT_SECRET_BYTES = 64
DEFAULT_ROUTE_PREFIX = "/tfa"

_PREFIX_RE = re.compile(r"^/*(.*?)/*$", re.DOTALL)


def normalize_prefix(prefix: str) -> str:
    """Collapse a route prefix to one leading slash and no trailing slash."""
    return "/" + _PREFIX_RE.match(prefix).group(1)


class GateSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TOTPGATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Shown by authenticator apps as "{label}:{identity}"
    label: str | None = None
    secret_byte_length: int = Field(default=DEFAULT_SECRET_BYTES, gt=0)

    # Routing
    route_prefix: str = DEFAULT_ROUTE_PREFIX
    success_redirect: str = "/"
    failure_redirect: str | None = None

    # Where the display identifier lives on the authenticated user object
    identity_path: str = Field(default="email", min_length=1)

    # Session key for the "verified this session" flag
    session_key: str = Field(default="two_factor_verified", min_length=1)

    # Encryption at rest (base64 of 32 bytes), only used by EncryptedEnrollmentStore
    master_key: str = ""

    log_level: str = "INFO"

    @field_validator("secret_byte_length", mode="before")
    @classmethod
    def _reject_bool(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("secret_byte_length must be an integer")
        return value

    @field_validator("route_prefix")
    @classmethod
    def _normalize_prefix(cls, value: str) -> str:
        return normalize_prefix(value)

    @property
    def challenge_path(self) -> str:
        return self.route_prefix

    @property
    def verify_path(self) -> str:
        return f"{self.route_prefix.rstrip('/')}/verify"

    @property
    def failure_target(self) -> str:
        return self.failure_redirect if self.failure_redirect is not None else self.challenge_path


def load_settings(**overrides: Any) -> GateSettings:
    """Build settings from the environment plus overrides.

    Raises ConfigurationError instead of pydantic's ValidationError, and for
    override names that are not settings fields.
    """
    unknown = sorted(k for k in overrides if not k.startswith("_") and k not in GateSettings.model_fields)
    if unknown:
        raise ConfigurationError(f"unknown gate settings: {', '.join(unknown)}")
    try:
        return GateSettings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"invalid gate configuration: {e}") from e
