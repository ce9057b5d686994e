"""Challenge and verify endpoints + request/response translation."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from totpgate import qr
from totpgate.gate import GateKeeper
from totpgate.models import GateAction, GateOutcome, RequestContext

TEMPLATES_DIR = Path(__file__).parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

IdentitySource = Callable[[Request], Any]


def scope_user(request: Request) -> Any:
    """Authenticated user from Starlette's AuthenticationMiddleware, if any."""
    user = request.scope.get("user")
    if user is None or not getattr(user, "is_authenticated", True):
        return None
    return user


def prefers_structured(request: Request) -> bool:
    if request.headers.get("x-requested-with", "").lower() == "xmlhttprequest":
        return True
    accept = request.headers.get("accept", "")
    return "application/json" in accept and "text/html" not in accept


def build_context(request: Request, identity_source: IdentitySource, code: str | None = None) -> RequestContext:
    session = request.scope.get("session")
    return RequestContext(
        method=request.method,
        path=request.url.path,
        session=session,
        user=identity_source(request) if session is not None else None,
        code=code,
        prefers_structured=prefers_structured(request),
    )


def respond(outcome: GateOutcome) -> Response:
    """Redirect, or hand back the structured payload when the client asked for it."""
    if outcome.prefers_structured:
        return JSONResponse(outcome.payload())
    return RedirectResponse(outcome.redirect_target, status_code=303)


async def _read_token(request: Request) -> str | None:
    if request.headers.get("content-type", "").startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            return None
        token = body.get("token") if isinstance(body, dict) else None
    else:
        form = await request.form()
        token = form.get("token")
    return token if isinstance(token, str) else None


def build_router(
    gate: GateKeeper,
    *,
    identity_source: IdentitySource | None = None,
    templates: Jinja2Templates = templates,
) -> APIRouter:
    """Router exposing ``GET {prefix}`` and ``POST {prefix}/verify``."""
    identity_source = identity_source or scope_user
    router = APIRouter(tags=["two-factor"])

    @router.get(gate.challenge_path, response_class=HTMLResponse)
    async def challenge_page(request: Request):
        outcome = await gate.challenge(build_context(request, identity_source))
        if outcome.action == GateAction.REDIRECT:
            return respond(outcome)
        if outcome.prefers_structured:
            return JSONResponse(outcome.payload())
        qr_image = qr.data_uri(outcome.provisioning_uri) if outcome.provisioning_uri else None
        return templates.TemplateResponse(
            request, "two_fa.html", {"qr_image": qr_image, "verify_url": outcome.verify_endpoint}
        )

    @router.post(gate.verify_path)
    async def verify_code(request: Request):
        token = await _read_token(request)
        outcome = await gate.verify(build_context(request, identity_source, code=token))
        return respond(outcome)

    return router
