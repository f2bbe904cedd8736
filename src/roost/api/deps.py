"""Request-scoped dependencies for the auth routes."""

import logging
from typing import Annotated

from fastapi import Depends, Request

from roost.auth.backend import RequestBackend
from roost.auth.cookies import RequestCookieJar
from roost.auth.gate import cookie_defaults
from roost.auth.provisioning import RoleBootstrapper
from roost.auth.session import SessionMaterializer
from roost.config import get_settings
from roost.exceptions import SessionError
from roost.models.identity import Session
from roost.models.profile import ProvisioningResult

logger = logging.getLogger(__name__)


def get_cookie_jar(request: Request) -> RequestCookieJar:
    """Cookie jar created by the route gate, or a fresh one for ungated paths."""
    jar = getattr(request.state, "cookie_jar", None)
    if jar is None:
        jar = RequestCookieJar(
            request.cookies, defaults=cookie_defaults(get_settings())
        )
        request.state.cookie_jar = jar
    return jar


def get_backend(
    request: Request,
    jar: Annotated[RequestCookieJar, Depends(get_cookie_jar)],
) -> RequestBackend:
    """Backend built once per request, reused from the route gate if it ran."""
    backend = getattr(request.state, "backend", None)
    if backend is None:
        backend = request.app.state.backend_factory(jar)
        request.state.backend = backend
    return backend


def get_session_materializer(
    backend: Annotated[RequestBackend, Depends(get_backend)],
    jar: Annotated[RequestCookieJar, Depends(get_cookie_jar)],
) -> SessionMaterializer:
    return SessionMaterializer(backend.identity, jar)


def get_role_bootstrapper(
    backend: Annotated[RequestBackend, Depends(get_backend)],
) -> RoleBootstrapper:
    return RoleBootstrapper(backend.db)


async def get_current_session(
    request: Request,
    backend: Annotated[RequestBackend, Depends(get_backend)],
) -> Session:
    """Session resolved by the route gate.

    Raises:
        SessionError: If the request carries no valid session
    """
    if hasattr(request.state, "session"):
        session = request.state.session
    else:
        session = await backend.identity.get_session()
        request.state.session = session

    if session is None or session.user is None:
        raise SessionError("Authentication required")
    return session


async def get_current_profile(
    session: Annotated[Session, Depends(get_current_session)],
    bootstrapper: Annotated[RoleBootstrapper, Depends(get_role_bootstrapper)],
) -> ProvisioningResult:
    """Profile and role record for the signed-in identity.

    Completes a partial provisioning pass before handing the profile out.

    Raises:
        SessionError: If the identity was never provisioned
    """
    result = await bootstrapper.reconcile(session.user)
    if result is None:
        logger.warning(f"No profile for signed-in user {session.user.id}")
        raise SessionError("No profile for this account", reason="profile_missing")
    return result


# Type aliases for dependency injection
Jar = Annotated[RequestCookieJar, Depends(get_cookie_jar)]
Backend = Annotated[RequestBackend, Depends(get_backend)]
Materializer = Annotated[SessionMaterializer, Depends(get_session_materializer)]
Bootstrapper = Annotated[RoleBootstrapper, Depends(get_role_bootstrapper)]
CurrentSession = Annotated[Session, Depends(get_current_session)]
CurrentProfile = Annotated[ProvisioningResult, Depends(get_current_profile)]
