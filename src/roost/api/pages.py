"""Page context for the public auth pages.

Rendering belongs to the frontend; these endpoints hand it the selected role
and a readable message for any ``error`` code the auth flow redirected with.
"""

from fastapi import APIRouter

from roost.auth.provisioning import parse_role
from roost.config import get_settings

router = APIRouter()

ERROR_MESSAGES = {
    "profile_write_failed": "Failed to create your profile. Please try signing up again.",
    "role_record_write_failed": "Failed to create your account. Please try signing up again.",
    "missing_code": "Verification failed. Please try signing up again.",
    "callback_failed": "Account creation failed. Please try again.",
    "no_user": "We could not find your account. Please sign in again.",
    "profile_missing": "Your account is not set up yet. Please sign in again.",
    "unexpected_error": "Something went wrong. Please sign in again.",
}


def error_message(error: str | None) -> str | None:
    """Readable message for an error code; provider messages pass through."""
    if not error:
        return None
    return ERROR_MESSAGES.get(error, error)


def _page(name: str, role: str | None, error: str | None, **extra) -> dict:
    selected = parse_role(role) or parse_role(get_settings().default_role)
    return {
        "page": name,
        "role": selected.value,
        "error": error,
        "message": error_message(error),
        **extra,
    }


@router.get("/")
async def landing() -> dict:
    return {"page": "landing"}


@router.get("/login")
async def login_page(
    role: str | None = None,
    error: str | None = None,
    redirectTo: str | None = None,
) -> dict:
    return _page("login", role, error, redirect_to=redirectTo)


@router.get("/signup")
async def signup_page(
    role: str | None = None,
    error: str | None = None,
    redirectTo: str | None = None,
) -> dict:
    return _page("signup", role, error, redirect_to=redirectTo)


@router.get("/verify-email")
async def verify_email_page(
    email: str | None = None,
    status: str | None = None,
    error: str | None = None,
) -> dict:
    return {
        "page": "verify-email",
        "email": email,
        "status": status,
        "error": error,
        "message": error_message(error),
    }


@router.get("/forgot-password")
async def forgot_password_page(status: str | None = None) -> dict:
    return {"page": "forgot-password", "status": status}
