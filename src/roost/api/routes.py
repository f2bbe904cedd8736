"""FastAPI routes for the authentication flow."""

import logging
from typing import Annotated

from fastapi import APIRouter, Form, Request
from starlette.responses import RedirectResponse

from roost.api.deps import Backend, Bootstrapper, CurrentProfile, Jar, Materializer
from roost.auth.gate import DASHBOARD_PATH, LOGIN_PATH, redirect_url
from roost.auth.provisioning import RoleBootstrapper, parse_role
from roost.auth.session import SessionMaterializer
from roost.auth.backend import RequestBackend
from roost.config import get_settings
from roost.exceptions import (
    RoleMismatchError,
    RoostError,
    SignUpFailed,
    UnexpectedError,
)
from roost.models.identity import (
    AuthorizationCode,
    EstablishedSession,
    IssuedSession,
    PasswordCredentials,
    Role,
)

logger = logging.getLogger(__name__)

router = APIRouter()

VERIFY_EMAIL_PATH = "/verify-email"
FORGOT_PASSWORD_PATH = "/forgot-password"
MIN_PASSWORD_LENGTH = 8


def _see_other(request: Request, path: str, **params: str | None) -> RedirectResponse:
    """Redirect answering a form post."""
    return RedirectResponse(redirect_url(request, path, params), status_code=303)


def _safe_redirect_target(target: str | None) -> str:
    """Only same-origin absolute paths are followed after login."""
    if target and target.startswith("/") and not target.startswith("//"):
        return target
    return DASHBOARD_PATH


async def _resolve_and_provision(
    established: EstablishedSession,
    backend: RequestBackend,
    bootstrapper: RoleBootstrapper,
    requested_role: Role | None,
) -> None:
    """Reject role conflicts before writing, then provision.

    A rejected attempt signs the identity out again so no session is left
    behind for an account the user did not ask for.
    """
    identity = established.identity
    try:
        role = await bootstrapper.resolve_role(identity, requested_role)
    except RoleMismatchError:
        await backend.identity.sign_out()
        raise
    await bootstrapper.provision(identity, role)


async def _complete_code_login(
    request: Request,
    backend: RequestBackend,
    materializer: SessionMaterializer,
    bootstrapper: RoleBootstrapper,
    code: str,
    requested_role: Role | None,
) -> RedirectResponse:
    try:
        established = await materializer.establish_session(AuthorizationCode(code=code))
        await _resolve_and_provision(established, backend, bootstrapper, requested_role)
    except RoostError:
        raise
    except Exception as e:
        logger.error(f"Callback error: {e}")
        raise UnexpectedError("Callback failed", reason="callback_failed") from e

    logger.info(f"Auth callback completed for {established.identity.id}")
    return RedirectResponse(redirect_url(request, DASHBOARD_PATH))


# ---------------------------------------------------------------------------
# OAuth / email confirmation callbacks
# ---------------------------------------------------------------------------

@router.get("/auth/callback")
async def auth_callback(
    request: Request,
    backend: Backend,
    materializer: Materializer,
    bootstrapper: Bootstrapper,
    code: str | None = None,
    error: str | None = None,
    error_description: str | None = None,
    role: str | None = None,
) -> RedirectResponse:
    """Complete an OAuth code exchange and provision the identity."""
    if error:
        logger.error(f"OAuth error: {error} {error_description or ''}")
        return RedirectResponse(
            redirect_url(request, LOGIN_PATH, {"error": error_description or error})
        )

    if not code:
        logger.error("Auth callback without code")
        return RedirectResponse(
            redirect_url(request, LOGIN_PATH, {"error": "missing_code"})
        )

    return await _complete_code_login(
        request, backend, materializer, bootstrapper, code, parse_role(role)
    )


@router.get("/auth/confirm")
async def confirm_email_code(
    request: Request,
    backend: Backend,
    materializer: Materializer,
    bootstrapper: Bootstrapper,
    code: str | None = None,
) -> RedirectResponse:
    """Confirmation link of the PKCE sign-up flow; role comes from metadata."""
    if not code:
        return RedirectResponse(
            redirect_url(request, LOGIN_PATH, {"error": "missing_code"})
        )
    return await _complete_code_login(
        request, backend, materializer, bootstrapper, code, None
    )


@router.post("/auth/confirm")
async def confirm_email_tokens(
    request: Request,
    backend: Backend,
    materializer: Materializer,
    bootstrapper: Bootstrapper,
    access_token: Annotated[str, Form()],
    refresh_token: Annotated[str, Form()],
    signup: Annotated[bool, Form()] = False,
) -> RedirectResponse:
    """Adopt tokens delivered in a confirmation link fragment."""
    established = await materializer.establish_session(
        IssuedSession(access_token=access_token, refresh_token=refresh_token)
    )
    if signup:
        await _resolve_and_provision(established, backend, bootstrapper, None)
    else:
        await bootstrapper.reconcile(established.identity)
    return _see_other(request, DASHBOARD_PATH)


# ---------------------------------------------------------------------------
# Password sign-in / sign-up
# ---------------------------------------------------------------------------

@router.post("/auth/login")
async def login(
    request: Request,
    backend: Backend,
    materializer: Materializer,
    bootstrapper: Bootstrapper,
    email: Annotated[str, Form()],
    password: Annotated[str, Form()],
    role: Annotated[str | None, Form()] = None,
    redirect_to: Annotated[str | None, Form(alias="redirectTo")] = None,
) -> RedirectResponse:
    """Sign in with email and password."""
    established = await materializer.establish_session(
        PasswordCredentials(email=email, password=password)
    )
    identity = established.identity

    try:
        effective_role = await bootstrapper.resolve_role(identity, parse_role(role))
    except RoleMismatchError:
        await backend.identity.sign_out()
        raise

    # Finish a sign-up whose provisioning never completed
    if await bootstrapper.reconcile(identity) is None:
        await bootstrapper.provision(identity, effective_role)

    return _see_other(request, _safe_redirect_target(redirect_to))


def _validate_signup(
    first_name: str, last_name: str, email: str, phone: str, password: str
) -> None:
    required = (
        (first_name, "First name is required"),
        (last_name, "Last name is required"),
        (email, "Email is required"),
        (phone, "Phone number is required"),
        (password, "Password is required"),
    )
    for value, message in required:
        if not value.strip():
            raise SignUpFailed(message)
    if len(password) < MIN_PASSWORD_LENGTH:
        raise SignUpFailed(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )


@router.post("/auth/signup")
async def signup(
    request: Request,
    backend: Backend,
    jar: Jar,
    bootstrapper: Bootstrapper,
    first_name: Annotated[str, Form()] = "",
    last_name: Annotated[str, Form()] = "",
    email: Annotated[str, Form()] = "",
    phone: Annotated[str, Form()] = "",
    password: Annotated[str, Form()] = "",
    company: Annotated[str, Form()] = "",
    role: Annotated[str | None, Form()] = None,
) -> RedirectResponse:
    """Register a new account and send the confirmation email."""
    _validate_signup(first_name, last_name, email, phone, password)
    settings = get_settings()
    requested_role = parse_role(role) or Role(settings.default_role)

    identity = await backend.identity.sign_up(
        email,
        password,
        metadata={
            "first_name": first_name,
            "last_name": last_name,
            "phone": phone,
            "role": requested_role.value,
            "company": company,
        },
        email_redirect_to=f"{settings.site_url}/auth/confirm",
    )

    # Projects without email confirmation sign the user in immediately
    if jar.written(settings.access_cookie_name):
        await bootstrapper.provision(identity, requested_role)
        return _see_other(request, DASHBOARD_PATH)

    return _see_other(request, VERIFY_EMAIL_PATH, email=email)


@router.post("/auth/oauth/{provider}")
async def oauth_sign_in(
    provider: str,
    backend: Backend,
    role: Annotated[str | None, Form()] = None,
) -> RedirectResponse:
    """Start a social sign-in; the callback URL carries the selected role."""
    settings = get_settings()
    requested_role = parse_role(role) or Role(settings.default_role)
    callback = f"{settings.site_url}/auth/callback?role={requested_role.value}"

    url = await backend.identity.sign_in_with_oauth(provider, callback)
    logger.info(f"Starting {provider} sign-in as {requested_role.value}")
    return RedirectResponse(url, status_code=303)


# ---------------------------------------------------------------------------
# Email helpers / sign out
# ---------------------------------------------------------------------------

@router.post("/auth/resend")
async def resend_confirmation(
    request: Request,
    backend: Backend,
    email: Annotated[str, Form()] = "",
) -> RedirectResponse:
    """Resend the sign-up confirmation email."""
    if not email.strip():
        return _see_other(
            request,
            VERIFY_EMAIL_PATH,
            error="Email address is required. Please try signing up again.",
        )

    settings = get_settings()
    try:
        await backend.identity.resend_confirmation(
            email, email_redirect_to=f"{settings.site_url}/auth/confirm"
        )
    except SignUpFailed as e:
        return _see_other(request, VERIFY_EMAIL_PATH, email=email, error=e.message)
    return _see_other(request, VERIFY_EMAIL_PATH, email=email, status="sent")


@router.post("/auth/forgot-password")
async def forgot_password(
    request: Request,
    backend: Backend,
    email: Annotated[str, Form()],
) -> RedirectResponse:
    """Send a password reset email."""
    settings = get_settings()
    await backend.identity.reset_password_email(
        email, redirect_to=f"{settings.site_url}/login"
    )
    return _see_other(request, FORGOT_PASSWORD_PATH, status="sent")


@router.post("/auth/logout")
async def logout(request: Request, backend: Backend) -> RedirectResponse:
    await backend.identity.sign_out()
    return _see_other(request, LOGIN_PATH)


# ---------------------------------------------------------------------------
# Authenticated landing
# ---------------------------------------------------------------------------

@router.get("/dashboard")
async def dashboard(current: CurrentProfile) -> dict:
    """Landing data for the signed-in user: profile and role record."""
    return {
        "profile": current.profile.model_dump(mode="json"),
        "role": current.profile.role.value,
        "role_record": (
            current.role_record.model_dump(mode="json")
            if current.role_record
            else None
        ),
        "state": current.state.value,
    }


@router.get("/health")
async def health(backend: Backend) -> dict:
    """Data store connectivity."""
    return await backend.db.health_check()
