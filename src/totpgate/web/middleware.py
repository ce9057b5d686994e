"""Guard applied to every route outside the gate's own endpoints."""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

from totpgate.errors import SessionMissing
from totpgate.gate import GateKeeper
from totpgate.models import GateAction
from totpgate.web.routes import IdentitySource, build_context, respond, scope_user

logger = logging.getLogger(__name__)


class GuardMiddleware(BaseHTTPMiddleware):
    """Redirects identified but unverified sessions to the challenge page.

    Must sit inside (i.e. be added before) Starlette's SessionMiddleware.
    """

    def __init__(self, app: ASGIApp, gate: GateKeeper, identity_source: IdentitySource | None = None) -> None:
        super().__init__(app)
        self.gate = gate
        self.identity_source = identity_source or scope_user

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if self.gate.endpoint(request.method, request.url.path) is not None:
            return await call_next(request)

        try:
            outcome = await self.gate.guard(build_context(request, self.identity_source))
        except SessionMissing:
            logger.error("No session on %s; is SessionMiddleware installed outside the guard?", request.url.path)
            return PlainTextResponse("temporarily unavailable", status_code=500)

        if outcome.action == GateAction.PASS:
            return await call_next(request)
        return respond(outcome)
