"""FastAPI application entry point for Roost."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from starlette.responses import RedirectResponse

from roost import __version__
from roost.api.pages import router as pages_router
from roost.api.routes import router
from roost.auth.backend import BackendFactory, supabase_backend
from roost.auth.gate import LOGIN_PATH, RouteGate, redirect_url
from roost.config import get_settings
from roost.exceptions import (
    AuthError,
    ProvisioningError,
    SessionError,
    SignUpFailed,
    UnexpectedError,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

SIGNUP_PATH = "/signup"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info(f"Starting Roost v{__version__}")
    settings = get_settings()
    logger.info(f"Debug mode: {settings.debug}")

    yield

    logger.info("Shutting down Roost")


def _redirect(request: Request, path: str, params: dict | None = None) -> RedirectResponse:
    # Form posts are answered with 303 so the browser switches to GET
    status_code = 303 if request.method == "POST" else 307
    return RedirectResponse(redirect_url(request, path, params), status_code=status_code)


def _clear_session(request: Request) -> None:
    """Queue session cookie removal on the request's jar.

    The route gate applies the jar last, so clearing through it wins over
    tokens written earlier in the same request.
    """
    jar = getattr(request.state, "cookie_jar", None)
    if jar is None:
        return
    settings = get_settings()
    jar.clear(settings.access_cookie_name)
    jar.clear(settings.refresh_cookie_name)


async def auth_error_handler(request: Request, exc: AuthError) -> RedirectResponse:
    logger.warning(f"Auth failed on {request.url.path}: {exc.reason}")
    path = SIGNUP_PATH if isinstance(exc, SignUpFailed) else LOGIN_PATH
    return _redirect(request, path, {"error": exc.reason})


async def session_error_handler(request: Request, exc: SessionError) -> RedirectResponse:
    logger.info(f"Session required for {request.url.path}: {exc.reason}")
    _clear_session(request)
    params = {"redirectTo": request.url.path}
    if exc.reason != SessionError.reason:
        params["error"] = exc.reason
    return _redirect(request, LOGIN_PATH, params)


async def provisioning_error_handler(
    request: Request, exc: ProvisioningError
) -> RedirectResponse:
    logger.error(f"Provisioning failed on {request.url.path}: {exc}")
    _clear_session(request)
    return _redirect(request, LOGIN_PATH, {"error": exc.reason})


async def unexpected_error_handler(
    request: Request, exc: UnexpectedError
) -> RedirectResponse:
    logger.error(f"Unexpected error on {request.url.path}: {exc}")
    _clear_session(request)
    return _redirect(request, LOGIN_PATH, {"error": exc.reason})


def create_app(backend_factory: BackendFactory | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        backend_factory: Builds the per-request identity provider and data
            store client from the request's cookie jar. Defaults to Supabase.
    """
    settings = get_settings()

    app = FastAPI(
        title="Roost",
        description="Authentication, session and role gating for Roost",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.backend_factory = backend_factory or supabase_backend

    app.add_middleware(RouteGate)

    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(SessionError, session_error_handler)
    app.add_exception_handler(ProvisioningError, provisioning_error_handler)
    app.add_exception_handler(UnexpectedError, unexpected_error_handler)

    # Include routes
    app.include_router(pages_router)
    app.include_router(router)

    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "roost.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
