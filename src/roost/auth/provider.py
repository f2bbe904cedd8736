"""Identity provider client backed by Supabase auth."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol

from supabase import AuthError as SupabaseAuthError
from supabase import Client, ClientOptions, create_client

from roost.auth.cookies import CODE_VERIFIER_STORAGE_KEY, CookieJar, CookieStorage
from roost.config import Settings, get_settings
from roost.exceptions import ExchangeFailed, InvalidCredentials, SignUpFailed
from roost.models.identity import Identity, Session

if TYPE_CHECKING:
    from supabase_auth import SyncGoTrueClient

logger = logging.getLogger(__name__)

OAUTH_PROVIDERS = frozenset({"google", "apple"})


class IdentityProvider(Protocol):
    """Narrow interface the auth core uses to talk to the identity service."""

    async def sign_up(
        self,
        email: str,
        password: str,
        metadata: dict[str, Any],
        email_redirect_to: str | None = None,
    ) -> Identity: ...

    async def sign_in_with_password(self, email: str, password: str) -> Session: ...

    async def sign_in_with_oauth(
        self,
        provider: str,
        redirect_to: str,
        query_params: dict[str, str] | None = None,
    ) -> str: ...

    async def exchange_code_for_session(self, code: str) -> Session: ...

    async def set_session(self, access_token: str, refresh_token: str) -> Session: ...

    async def get_session(self) -> Session | None: ...

    async def get_user(self) -> Identity | None: ...

    async def resend_confirmation(
        self, email: str, email_redirect_to: str | None = None
    ) -> None: ...

    async def reset_password_email(self, email: str, redirect_to: str) -> None: ...

    async def sign_out(self) -> None: ...


def create_request_client(settings: Settings, jar: CookieJar) -> Client:
    """Build a Supabase client for a single request.

    PKCE state lives in the request's cookies; the session itself is kept in
    memory and written out as cookies by :class:`SupabaseIdentityProvider`.
    """
    return create_client(
        settings.supabase_url,
        settings.supabase_key,
        options=ClientOptions(
            storage=CookieStorage(jar),
            flow_type="pkce",
            auto_refresh_token=False,
            persist_session=False,
        ),
    )


def _to_identity(user: Any) -> Identity:
    return Identity(
        id=str(user.id),
        email=user.email,
        metadata=dict(user.user_metadata or {}),
    )


def _to_session(session: Any) -> Session:
    expires_at = None
    if session.expires_at:
        expires_at = datetime.fromtimestamp(session.expires_at, UTC)
    return Session(
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_at=expires_at,
        expires_in=session.expires_in,
        user=_to_identity(session.user) if session.user else None,
    )


class SupabaseIdentityProvider:
    """Supabase auth wrapped behind :class:`IdentityProvider`.

    Every successful authentication writes the access and refresh tokens
    to the request's cookie jar, and every token rotation observed while
    resolving a session rewrites them.
    """

    def __init__(
        self,
        client: Client,
        jar: CookieJar,
        settings: Settings | None = None,
    ) -> None:
        self.client = client
        self.jar = jar
        self.settings = settings or get_settings()

    @property
    def _auth(self) -> SyncGoTrueClient:
        return self.client.auth

    # -------------------------------------------------------------------------
    # Cookie persistence
    # -------------------------------------------------------------------------

    def _persist(self, session: Any) -> None:
        self.jar.write(
            self.settings.access_cookie_name,
            session.access_token,
            max_age=self.settings.refresh_cookie_max_age,
        )
        self.jar.write(
            self.settings.refresh_cookie_name,
            session.refresh_token,
            max_age=self.settings.refresh_cookie_max_age,
        )

    def clear_session_cookies(self) -> None:
        self.jar.clear(self.settings.access_cookie_name)
        self.jar.clear(self.settings.refresh_cookie_name)

    # -------------------------------------------------------------------------
    # Sign up / sign in
    # -------------------------------------------------------------------------

    async def sign_up(
        self,
        email: str,
        password: str,
        metadata: dict[str, Any],
        email_redirect_to: str | None = None,
    ) -> Identity:
        """Register a new identity; the provider emails a confirmation link.

        Raises:
            SignUpFailed: If the provider rejects the registration
        """
        options: dict[str, Any] = {"data": metadata}
        if email_redirect_to:
            options["email_redirect_to"] = email_redirect_to

        try:
            response = self._auth.sign_up(
                {"email": email, "password": password, "options": options}
            )
        except SupabaseAuthError as e:
            if getattr(e, "status", None) == 429:
                raise SignUpFailed(
                    "Too many signup attempts. Please try again in a few minutes."
                ) from e
            raise SignUpFailed(e.message) from e

        if not response.user:
            raise SignUpFailed("Sign up did not return a user")

        # Auto-confirmed projects hand back a session straight away
        if response.session:
            self._persist(response.session)

        logger.info(f"Signed up identity {response.user.id}")
        return _to_identity(response.user)

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        """Authenticate with email and password.

        Raises:
            InvalidCredentials: On mismatch or any provider rejection
        """
        try:
            response = self._auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except SupabaseAuthError as e:
            raise InvalidCredentials(e.message) from e

        if response.session:
            self._persist(response.session)
            return _to_session(response.session)
        raise InvalidCredentials("No session established")

    async def sign_in_with_oauth(
        self,
        provider: str,
        redirect_to: str,
        query_params: dict[str, str] | None = None,
    ) -> str:
        """Start a PKCE OAuth flow and return the provider's authorize URL.

        The code verifier is stored in a cookie through :class:`CookieStorage`.
        """
        if provider not in OAUTH_PROVIDERS:
            raise InvalidCredentials(f"Unsupported provider: {provider}")

        options: dict[str, Any] = {"redirect_to": redirect_to}
        if query_params:
            options["query_params"] = query_params

        try:
            response = self._auth.sign_in_with_oauth(
                {"provider": provider, "options": options}
            )
        except SupabaseAuthError as e:
            raise InvalidCredentials(e.message) from e

        return response.url

    async def exchange_code_for_session(self, code: str) -> Session:
        """Exchange a single-use authorization code for a session.

        Raises:
            ExchangeFailed: If the code is invalid, expired or already used
        """
        params: dict[str, str] = {"auth_code": code}
        code_verifier = CookieStorage(self.jar).get_item(CODE_VERIFIER_STORAGE_KEY)
        if code_verifier:
            params["code_verifier"] = code_verifier

        try:
            response = self._auth.exchange_code_for_session(params)
        except SupabaseAuthError as e:
            raise ExchangeFailed(e.message) from e
        finally:
            CookieStorage(self.jar).remove_item(CODE_VERIFIER_STORAGE_KEY)

        if not response.session:
            raise ExchangeFailed("Code exchange returned no session")

        self._persist(response.session)
        return _to_session(response.session)

    async def set_session(self, access_token: str, refresh_token: str) -> Session:
        """Adopt tokens the provider already issued.

        Raises:
            ExchangeFailed: If the tokens are rejected
        """
        try:
            response = self._auth.set_session(access_token, refresh_token)
        except SupabaseAuthError as e:
            raise ExchangeFailed(e.message) from e

        if not response.session:
            raise ExchangeFailed("Tokens did not yield a session")

        self._persist(response.session)
        return _to_session(response.session)

    # -------------------------------------------------------------------------
    # Session lookup
    # -------------------------------------------------------------------------

    async def get_session(self) -> Session | None:
        """Resolve the session carried by the request cookies.

        Expired access tokens are refreshed by the provider; rotated tokens
        are written back to the jar. A refresh token without an access token
        is exchanged for a new session. Provider failures propagate.
        """
        access_token = self.jar.read(self.settings.access_cookie_name)
        refresh_token = self.jar.read(self.settings.refresh_cookie_name)
        if not refresh_token:
            return None

        if access_token:
            response = self._auth.set_session(access_token, refresh_token)
        else:
            response = self._auth.refresh_session(refresh_token)
        if not response.session:
            return None

        session = response.session
        if (
            session.access_token != access_token
            or session.refresh_token != refresh_token
        ):
            logger.debug("Session tokens rotated, rewriting cookies")
            self._persist(session)

        return _to_session(session)

    async def get_user(self) -> Identity | None:
        """Fetch the identity for the current access token from the provider."""
        access_token = self.jar.read(self.settings.access_cookie_name)
        if not access_token:
            return None

        response = self._auth.get_user(access_token)
        if not response or not response.user:
            return None
        return _to_identity(response.user)

    # -------------------------------------------------------------------------
    # Email flows / sign out
    # -------------------------------------------------------------------------

    async def resend_confirmation(
        self, email: str, email_redirect_to: str | None = None
    ) -> None:
        """Resend the sign-up confirmation email.

        Raises:
            SignUpFailed: If the provider refuses
        """
        params: dict[str, Any] = {"type": "signup", "email": email}
        if email_redirect_to:
            params["options"] = {"email_redirect_to": email_redirect_to}

        try:
            self._auth.resend(params)
        except SupabaseAuthError as e:
            raise SignUpFailed(e.message) from e

    async def reset_password_email(self, email: str, redirect_to: str) -> None:
        try:
            self._auth.reset_password_email(email, {"redirect_to": redirect_to})
        except SupabaseAuthError as e:
            raise InvalidCredentials(e.message) from e

    async def sign_out(self) -> None:
        """Invalidate the session with the provider and clear its cookies."""
        try:
            self._auth.sign_out()
        except SupabaseAuthError as e:
            logger.warning(f"Provider sign out failed: {e.message}")
        finally:
            # Cleared regardless so the browser is logged out
            self.clear_session_cookies()
