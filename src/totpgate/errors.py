"""Error taxonomy.

Wrong or expired codes are not errors; they come back as a
``VERIFY_FAILED`` outcome from the gate.
"""

from __future__ import annotations


class TotpGateError(Exception):
    """Base class for everything raised by totpgate."""


class ConfigurationError(TotpGateError, ValueError):
    """Bad construction arguments. Raised at setup, never retried."""


class SessionMissing(TotpGateError, RuntimeError):
    """A request reached the gate without session context.

    Usually means the session middleware is mounted after the gate.
    """


class InvalidSecret(TotpGateError, ValueError):
    """A stored secret is empty or cannot be decoded."""


class StoreFailure(TotpGateError):
    """Raised by enrollment store implementations. The gate never catches it."""


class FlagFailure(TotpGateError):
    """Raised by session flag implementations. The gate never catches it."""
