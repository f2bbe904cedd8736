"""Custom exceptions for Roost.

Every error carries a short ``reason`` that the HTTP layer puts in the
``error`` query parameter of the redirect it issues.
"""


class RoostError(Exception):
    """Base class for errors raised by the auth core."""

    reason = "unexpected_error"

    def __init__(self, message: str | None = None, reason: str | None = None) -> None:
        if reason is not None:
            self.reason = reason
        self.message = message or self.reason
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# Authentication (provider rejected credentials or code)
# ---------------------------------------------------------------------------

class AuthError(RoostError):
    """The identity provider rejected the authentication attempt."""

    reason = "auth_failed"

    def __init__(self, message: str | None = None, reason: str | None = None) -> None:
        # Provider messages are human readable and surfaced as-is
        super().__init__(message, reason or message)


class InvalidCredentials(AuthError):
    """Email/password pair did not match."""

    reason = "invalid_credentials"


class ExchangeFailed(AuthError):
    """Authorization code was invalid, expired or already used."""

    reason = "exchange_failed"


class NoUserInSession(AuthError):
    """Provider reported success but the session has no principal."""

    reason = "no_user"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or "No user in session", reason="no_user")


class SignUpFailed(AuthError):
    """Sign-up was rejected by validation or by the provider."""

    reason = "signup_failed"


class RoleMismatchError(AuthError):
    """Requested role conflicts with the role already recorded for the identity."""

    reason = "role_mismatch"

    def __init__(self, recorded_role: str, requested_role: str) -> None:
        self.recorded_role = recorded_role
        self.requested_role = requested_role
        super().__init__(
            f"This account is registered as a {recorded_role}. "
            "Please sign in with the correct account type."
        )


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

class SessionError(RoostError):
    """No usable session where one is required."""

    reason = "session_required"


# ---------------------------------------------------------------------------
# Provisioning
# ---------------------------------------------------------------------------

class ProvisioningError(RoostError):
    """Profile or role record could not be written."""

    reason = "provisioning_failed"

    def __init__(self, identity_id: str, detail: str | None = None) -> None:
        self.identity_id = identity_id
        self.detail = detail
        super().__init__(
            f"Provisioning failed for {identity_id}: {detail or self.reason}"
        )


class ProfileWriteFailed(ProvisioningError):
    """Profile upsert failed."""

    reason = "profile_write_failed"


class RoleRecordWriteFailed(ProvisioningError):
    """Landlord or tenant record upsert failed."""

    reason = "role_record_write_failed"


# ---------------------------------------------------------------------------
# Anything else
# ---------------------------------------------------------------------------

class UnexpectedError(RoostError):
    """Unclassified failure; the HTTP layer fails closed on it."""

    reason = "unexpected_error"
