"""TOTP (Time-based One-Time Password) shared secrets.

Uses pyotp for RFC 6238 code generation and verification. Secrets are
stored and provisioned as unpadded base32 strings.
"""

from __future__ import annotations

import base64
import hashlib
import secrets
from dataclasses import dataclass, field
from datetime import datetime
from urllib.parse import quote

import pyotp

from totpgate.config import DEFAULT_SECRET_BYTES
from totpgate.errors import ConfigurationError, InvalidSecret

DIGITS = 6
PERIOD_S = 30
# +-10 steps of 30s, i.e. +-5 minutes of clock drift
VERIFY_WINDOW = 10


@dataclass(frozen=True)
class TwoFactorSecret:
    """One shared secret plus the label shown by authenticator apps."""

    raw_secret: str = field(repr=False)
    label: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.raw_secret, str) or not self.raw_secret:
            raise InvalidSecret("secret must be a non-empty string")

    @classmethod
    def generate(cls, byte_length: int = DEFAULT_SECRET_BYTES, label: str | None = None) -> TwoFactorSecret:
        """Create a new secret from ``byte_length`` bytes of OS randomness."""
        if isinstance(byte_length, bool) or not isinstance(byte_length, int) or byte_length <= 0:
            raise ConfigurationError("byte_length must be a positive integer")
        raw = secrets.token_bytes(byte_length)
        return cls(raw_secret=base64.b32encode(raw).decode("ascii").rstrip("="), label=label)

    @classmethod
    def from_stored(cls, label: str | None, raw_secret: str) -> TwoFactorSecret:
        """Rehydrate a previously persisted secret, checking that it decodes."""
        secret = cls(raw_secret=raw_secret, label=label)
        try:
            secret.secret_bytes()
        except ValueError as e:
            raise InvalidSecret("stored secret is not valid base32") from e
        return secret

    def _totp(self) -> pyotp.TOTP:
        return pyotp.TOTP(self.raw_secret, digits=DIGITS, digest=hashlib.sha1, interval=PERIOD_S)

    def secret_bytes(self) -> bytes:
        """The HMAC key the base32 string encodes."""
        return self._totp().byte_secret()

    def verify(self, code: str | None, now: datetime | None = None) -> bool:
        """Check ``code`` against the 21 time steps centred on ``now``."""
        if code is None:
            return False
        code = str(code).strip()
        if len(code) != DIGITS or not code.isdigit():
            return False
        return self._totp().verify(code, for_time=now, valid_window=VERIFY_WINDOW)

    def expected_code(self, now: datetime | None = None) -> str:
        """The code for the current time step only."""
        totp = self._totp()
        return totp.now() if now is None else totp.at(now)

    def provisioning_uri(self, identity: str) -> str:
        """Get the otpauth:// URI for QR code enrollment."""
        name = quote(str(identity), safe="")
        if self.label:
            name = f"{quote(self.label, safe='')}:{name}"
        return (
            f"otpauth://totp/{name}?secret={quote(self.raw_secret, safe='')}"
            f"&algorithm=SHA1&digits={DIGITS}&period={PERIOD_S}"
        )
