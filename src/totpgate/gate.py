"""Two-factor verification gate.

Decides, for each request of an authenticated session, whether to let it
through, show the enrollment/challenge view, or check a submitted code.
The gate keeps no state between requests: the enrollment record lives in
an ``EnrollmentStore`` and the "verified this session" flag in a
``SessionFlag``, both supplied by the caller.

Every request performs at most one store read, optionally followed by one
store write. Two concurrent first visits for the same identity may each
generate and save a secret; the store's last write wins.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from totpgate.config import GateSettings, load_settings
from totpgate.errors import ConfigurationError, SessionMissing
from totpgate.identity import resolve_path
from totpgate.models import EnrollmentRecord, GateAction, GateOutcome, GateState, RequestContext
from totpgate.secret import TwoFactorSecret
from totpgate.stores import EnrollmentStore, SessionFlag

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _normalize_path(path: str) -> str:
    return path.rstrip("/") or "/"


def _require_methods(obj: Any, role: str, *names: str) -> None:
    if obj is None:
        raise ConfigurationError(f"{role} is required")
    for name in names:
        if not callable(getattr(obj, name, None)):
            raise ConfigurationError(f"{role} must provide a callable {name}()")


class GateKeeper:
    def __init__(
        self,
        store: EnrollmentStore,
        flag: SessionFlag,
        settings: GateSettings | None = None,
        *,
        clock: Clock | None = None,
        **overrides: Any,
    ) -> None:
        _require_methods(store, "enrollment store", "load", "save")
        _require_methods(flag, "session flag", "get", "set")
        if clock is not None and not callable(clock):
            raise ConfigurationError("clock must be callable")
        if settings is None:
            settings = load_settings(**overrides)
        elif not isinstance(settings, GateSettings):
            raise ConfigurationError("settings must be a GateSettings instance")
        elif overrides:
            settings = load_settings(**{**settings.model_dump(), **overrides})

        self.store = store
        self.flag = flag
        self.settings = settings
        self._clock = clock or _utcnow

    @property
    def label(self) -> str | None:
        return self.settings.label

    @property
    def challenge_path(self) -> str:
        return self.settings.challenge_path

    @property
    def verify_path(self) -> str:
        return self.settings.verify_path

    def generate(self) -> TwoFactorSecret:
        return TwoFactorSecret.generate(self.settings.secret_byte_length, label=self.label)

    def rehydrate(self, raw_secret: str) -> TwoFactorSecret:
        return TwoFactorSecret.from_stored(self.label, raw_secret)

    # --- State machine ---

    def endpoint(self, method: str, path: str) -> str | None:
        """``"challenge"``, ``"verify"`` or None for routes the guard covers.

        Only ``GET {prefix}`` and ``POST {prefix}/verify`` belong to the gate;
        other methods on the same paths are guarded like any host route.
        """
        path = _normalize_path(path)
        method = method.upper()
        if method == "GET" and path == self.challenge_path:
            return "challenge"
        if method == "POST" and path == self.verify_path:
            return "verify"
        return None

    async def evaluate(self, ctx: RequestContext) -> GateOutcome:
        """Run the whole per-request state machine."""
        endpoint = self.endpoint(ctx.method, ctx.path)
        if endpoint == "challenge":
            return await self.challenge(ctx)
        if endpoint == "verify":
            return await self.verify(ctx)
        return await self.guard(ctx)

    async def challenge(self, ctx: RequestContext) -> GateOutcome:
        """GET on the challenge path: enroll or challenge the identity."""
        self._require_session(ctx)
        if ctx.user is None:
            return self._redirect(ctx, GateState.UNAUTHENTICATED, self.settings.success_redirect)
        identity = self._identity(ctx)

        if await self.flag.get(ctx.session):
            return self._redirect(ctx, GateState.SESSION_VERIFIED, self.settings.success_redirect, identity)

        record = await self.store.load(identity)
        if record is None or not record.secret:
            secret = self.generate()
            record = EnrollmentRecord(secret=secret.raw_secret, verified=False)
            await self.store.save(identity, record)
            logger.info("Created enrollment for %s", identity)
            return self._challenge(ctx, GateState.PENDING_FIRST_ENROLLMENT, identity, secret.provisioning_uri(identity))

        secret = self.rehydrate(record.secret)
        uri = None if record.verified else secret.provisioning_uri(identity)
        return self._challenge(ctx, GateState.PENDING_ROUTINE_CHALLENGE, identity, uri)

    async def verify(self, ctx: RequestContext) -> GateOutcome:
        """POST on the verify path: check the submitted code."""
        self._require_session(ctx)
        if ctx.user is None:
            return self._redirect(ctx, GateState.UNAUTHENTICATED, self.settings.success_redirect)
        identity = self._identity(ctx)

        if await self.flag.get(ctx.session):
            return self._redirect(ctx, GateState.VERIFY_SUCCEEDED, self.settings.success_redirect, identity)

        record = await self.store.load(identity)
        if record is None or not record.secret:
            logger.warning("Code submitted by %s before enrollment", identity)
            return self._redirect(ctx, GateState.VERIFY_FAILED, self.settings.failure_target, identity)

        secret = self.rehydrate(record.secret)
        if not secret.verify(ctx.code, ctx.now or self._clock()):
            logger.warning("Invalid two-factor code for %s", identity)
            return self._redirect(ctx, GateState.VERIFY_FAILED, self.settings.failure_target, identity)

        await self.flag.set(ctx.session, True)
        logger.info("Session verified for %s", identity)
        if not record.verified:
            await self.store.save(identity, record.model_copy(update={"verified": True}))
            logger.info("Enrollment confirmed for %s", identity)
        return self._redirect(ctx, GateState.VERIFY_SUCCEEDED, self.settings.success_redirect, identity)

    async def guard(self, ctx: RequestContext) -> GateOutcome:
        """Any other route: only verified or anonymous sessions get through."""
        self._require_session(ctx)
        if ctx.user is None:
            return self._pass(ctx, GateState.UNAUTHENTICATED)
        if await self.flag.get(ctx.session):
            return self._pass(ctx, GateState.SESSION_VERIFIED)
        logger.debug("Unverified session on %s, redirecting to %s", ctx.path, self.challenge_path)
        return self._redirect(ctx, GateState.ACCESS_DENIED, self.challenge_path)

    # --- Helpers ---

    def _require_session(self, ctx: RequestContext) -> None:
        if ctx.session is None:
            raise SessionMissing("no session found; mount session middleware before the gate")

    def _identity(self, ctx: RequestContext) -> str:
        value = resolve_path(ctx.user, self.settings.identity_path)
        if value is None or value == "":
            raise ConfigurationError(
                f"identity path {self.settings.identity_path!r} did not resolve on the authenticated user"
            )
        return str(value)

    def _redirect(
        self, ctx: RequestContext, state: GateState, target: str, identity: str | None = None
    ) -> GateOutcome:
        return GateOutcome(
            state=state,
            action=GateAction.REDIRECT,
            redirect_target=target,
            identity=identity,
            prefers_structured=ctx.prefers_structured,
        )

    def _challenge(
        self, ctx: RequestContext, state: GateState, identity: str, provisioning_uri: str | None
    ) -> GateOutcome:
        return GateOutcome(
            state=state,
            action=GateAction.CHALLENGE,
            provisioning_uri=provisioning_uri,
            verify_endpoint=self.verify_path,
            identity=identity,
            prefers_structured=ctx.prefers_structured,
        )

    def _pass(self, ctx: RequestContext, state: GateState) -> GateOutcome:
        return GateOutcome(state=state, action=GateAction.PASS, prefers_structured=ctx.prefers_structured)
