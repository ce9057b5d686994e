"""totpgate — TOTP second-factor gate for session-based web apps."""

from totpgate.errors import (
    ConfigurationError,
    FlagFailure,
    InvalidSecret,
    SessionMissing,
    StoreFailure,
    TotpGateError,
)
from totpgate.gate import GateKeeper
from totpgate.models import EnrollmentRecord, GateAction, GateOutcome, GateState, RequestContext
from totpgate.secret import TwoFactorSecret

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "EnrollmentRecord",
    "FlagFailure",
    "GateAction",
    "GateKeeper",
    "GateOutcome",
    "GateState",
    "InvalidSecret",
    "RequestContext",
    "SessionMissing",
    "StoreFailure",
    "TotpGateError",
    "TwoFactorSecret",
]
