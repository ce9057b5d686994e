"""Pydantic models for values flowing through the gate."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict


class GateState(StrEnum):
    UNAUTHENTICATED = "unauthenticated"
    SESSION_VERIFIED = "session_verified"
    PENDING_FIRST_ENROLLMENT = "pending_first_enrollment"
    PENDING_ROUTINE_CHALLENGE = "pending_routine_challenge"
    VERIFY_SUCCEEDED = "verify_succeeded"
    VERIFY_FAILED = "verify_failed"
    ACCESS_DENIED = "access_denied"


class GateAction(StrEnum):
    PASS = "pass"
    REDIRECT = "redirect"
    CHALLENGE = "challenge"


class EnrollmentRecord(BaseModel):
    """Durable per-identity record. Owned by the caller's store."""

    secret: str | None = None
    verified: bool = False


class RequestContext(BaseModel):
    """Everything the gate needs to know about one inbound request."""

    model_config = ConfigDict(frozen=True)

    method: str
    path: str
    session: Any = None
    user: Any = None
    code: str | None = None
    prefers_structured: bool = False
    now: datetime | None = None


class GateOutcome(BaseModel):
    """Logical result of evaluating one request.

    Mounting layers turn this into a redirect, a rendered page or JSON.
    """

    model_config = ConfigDict(frozen=True)

    state: GateState
    action: GateAction
    redirect_target: str | None = None
    provisioning_uri: str | None = None
    verify_endpoint: str | None = None
    identity: str | None = None
    prefers_structured: bool = False

    def payload(self) -> dict[str, Any]:
        if self.action == GateAction.REDIRECT:
            return {"redirect": self.redirect_target}
        if self.action == GateAction.CHALLENGE:
            body: dict[str, Any] = {"verifyUrl": self.verify_endpoint}
            if self.provisioning_uri:
                body["provisioningUri"] = self.provisioning_uri
            return body
        return {}
