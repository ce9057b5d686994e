"""FastAPI/Starlette mounting layer for the gate."""

from totpgate.web.app import create_app
from totpgate.web.middleware import GuardMiddleware
from totpgate.web.routes import build_router, scope_user

__all__ = ["GuardMiddleware", "build_router", "create_app", "scope_user"]
