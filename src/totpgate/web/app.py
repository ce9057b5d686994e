"""FastAPI application wiring: sessions, guard, challenge routes."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.middleware.sessions import SessionMiddleware

from totpgate.errors import ConfigurationError, SessionMissing
from totpgate.gate import GateKeeper
from totpgate.web.middleware import GuardMiddleware
from totpgate.web.routes import IdentitySource, build_router

logger = logging.getLogger(__name__)


async def _unavailable(request: Request, exc: Exception) -> PlainTextResponse:
    logger.error("Two-factor gate failed on %s: %s", request.url.path, exc)
    return PlainTextResponse("temporarily unavailable", status_code=500)


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SessionMissing, _unavailable)
    app.add_exception_handler(ConfigurationError, _unavailable)


def create_app(
    gate: GateKeeper,
    *,
    secret_key: str,
    identity_source: IdentitySource | None = None,
    title: str = "totpgate",
) -> FastAPI:
    """Build an app with the gate mounted; add your own routes to it."""
    app = FastAPI(title=title)
    app.include_router(build_router(gate, identity_source=identity_source))
    # Last added is outermost: the session must exist before the guard runs
    app.add_middleware(GuardMiddleware, gate=gate, identity_source=identity_source)
    app.add_middleware(SessionMiddleware, secret_key=secret_key)
    install_exception_handlers(app)
    return app
