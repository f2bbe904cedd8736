"""Route gate middleware: public / auth-only / protected partition."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from urllib.parse import urlencode

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response
from starlette.types import ASGIApp

from roost.auth.cookies import RequestCookieJar
from roost.config import Settings, get_settings
from roost.exceptions import UnexpectedError

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"
DASHBOARD_PATH = "/dashboard"

# Reachable without a session
PUBLIC_PATHS = frozenset({
    "/",
    "/login",
    "/signup",
    "/forgot-password",
    "/verify-email",
    "/auth/callback",
    "/auth/confirm",
    "/health",
})
# Form posts and callbacks of the auth flow itself
PUBLIC_PREFIXES = ("/auth",)

# Only meaningful to anonymous visitors
AUTH_ONLY_PATHS = frozenset({"/login", "/signup"})

# Never gated: static assets
STATIC_PREFIXES = ("/static", "/favicon.ico", "/public")


class RouteClass(str, Enum):
    PUBLIC = "public"
    AUTH_ONLY = "auth_only"  # also public
    PROTECTED = "protected"


class GateAction(str, Enum):
    ALLOW = "allow"
    REDIRECT = "redirect"


@dataclass(frozen=True)
class GateDecision:
    action: GateAction
    location: str | None = None
    params: dict[str, str] = field(default_factory=dict)


def _normalize(path: str) -> str:
    return path.rstrip("/") or "/"


def has_prefix(path: str, prefix: str) -> bool:
    """Segment-aware prefix match: ``/api/public`` matches ``/api/public/x``
    but not ``/api/publicity``."""
    prefix = prefix.rstrip("/")
    return path == prefix or path.startswith(prefix + "/")


def is_excluded(path: str, public_api_prefix: str) -> bool:
    """Paths the gate does not run on at all."""
    prefixes = (*STATIC_PREFIXES, public_api_prefix)
    return any(has_prefix(path, prefix) for prefix in prefixes)


def classify_path(path: str) -> RouteClass:
    path = _normalize(path)
    if path in AUTH_ONLY_PATHS:
        return RouteClass.AUTH_ONLY
    if path in PUBLIC_PATHS or any(has_prefix(path, p) for p in PUBLIC_PREFIXES):
        return RouteClass.PUBLIC
    return RouteClass.PROTECTED


def decide(route_class: RouteClass, has_session: bool, path: str) -> GateDecision:
    """Apply the gate's decision table."""
    if route_class == RouteClass.PUBLIC:
        return GateDecision(GateAction.ALLOW)
    if route_class == RouteClass.AUTH_ONLY:
        if has_session:
            return GateDecision(GateAction.REDIRECT, DASHBOARD_PATH)
        return GateDecision(GateAction.ALLOW)
    if has_session:
        return GateDecision(GateAction.ALLOW)
    return GateDecision(GateAction.REDIRECT, LOGIN_PATH, {"redirectTo": path})


def redirect_url(request: Request, path: str, params: dict[str, Any] | None = None) -> str:
    """Absolute URL on the request's origin."""
    query = urlencode({k: v for k, v in (params or {}).items() if v is not None})
    return str(request.url.replace(path=path, query=query))


def cookie_defaults(settings: Settings) -> dict[str, Any]:
    return {
        "httponly": True,
        "secure": settings.cookie_secure,
        "samesite": settings.cookie_samesite,
    }


def clear_session_cookies(response: Response, settings: Settings) -> Response:
    for name in (settings.access_cookie_name, settings.refresh_cookie_name):
        response.delete_cookie(name, path="/")
    return response


class RouteGate(BaseHTTPMiddleware):
    """Resolves the session for every non-static request and enforces access.

    Builds the request's backend through ``app.state.backend_factory`` and
    leaves ``cookie_jar``, ``backend`` and ``session`` on ``request.state``
    for the handlers. Cookies queued on the jar, by session refresh or by
    the handler, are applied to the outgoing response. Resolution failures
    and exceptions no handler maps to a redirect fail closed: redirect to
    login with the session cookies cleared.
    """

    def __init__(self, app: ASGIApp, settings: Settings | None = None) -> None:
        super().__init__(app)
        self._settings = settings

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        settings = self.settings

        if is_excluded(path, settings.public_api_prefix):
            return await call_next(request)

        jar = RequestCookieJar(request.cookies, defaults=cookie_defaults(settings))
        request.state.cookie_jar = jar

        try:
            backend = request.app.state.backend_factory(jar)
            request.state.backend = backend
            session = await backend.identity.get_session()
        except Exception as e:
            logger.error(f"Session resolution failed for {path}: {e}")
            response = RedirectResponse(redirect_url(request, LOGIN_PATH))
            return clear_session_cookies(response, settings)

        request.state.session = session
        decision = decide(classify_path(path), session is not None, path)

        if decision.action == GateAction.REDIRECT:
            logger.debug(f"Gate redirecting {path} -> {decision.location}")
            response = RedirectResponse(
                redirect_url(request, decision.location, decision.params)
            )
        else:
            try:
                response = await call_next(request)
            except Exception as e:
                logger.exception(f"Unhandled error on {path}: {e}")
                response = RedirectResponse(
                    redirect_url(
                        request, LOGIN_PATH, {"error": UnexpectedError.reason}
                    ),
                    status_code=303 if request.method == "POST" else 307,
                )
                return clear_session_cookies(response, settings)

        return jar.apply(response)
