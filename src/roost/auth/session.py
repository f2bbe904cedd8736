"""Turn authentication events into cookie-backed sessions."""

import logging

from roost.auth.cookies import RequestCookieJar
from roost.auth.provider import IdentityProvider
from roost.config import Settings, get_settings
from roost.exceptions import NoUserInSession, SessionError
from roost.models.identity import (
    AuthEvent,
    AuthorizationCode,
    EstablishedSession,
    IssuedSession,
    PasswordCredentials,
    Session,
)

logger = logging.getLogger(__name__)


class SessionMaterializer:
    """Establishes a session for an auth event and checks it reached the cookies.

    The provider writes the tokens into the request's cookie jar; the gate
    middleware copies the jar onto whatever response the handler returns.
    """

    def __init__(
        self,
        identity: IdentityProvider,
        jar: RequestCookieJar,
        settings: Settings | None = None,
    ) -> None:
        self.identity = identity
        self.jar = jar
        self.settings = settings or get_settings()

    async def establish_session(self, event: AuthEvent) -> EstablishedSession:
        """Authenticate ``event`` and persist the resulting session.

        Args:
            event: Password credentials, an authorization code, or tokens the
                provider already issued

        Returns:
            The resolved identity and session

        Raises:
            InvalidCredentials: Password mismatch
            ExchangeFailed: Code or tokens rejected (codes are single-use)
            NoUserInSession: Provider succeeded without a principal
            SessionError: Session was not written to the cookie jar
        """
        session = await self._authenticate(event)

        if session.user is None or not session.user.id:
            logger.error(f"No user in session after {type(event).__name__}")
            raise NoUserInSession()

        cookies_written = self.jar.written(
            self.settings.access_cookie_name
        ) and self.jar.written(self.settings.refresh_cookie_name)
        if not cookies_written:
            raise SessionError("Session cookies were not written")

        logger.info(
            f"Session established for user {session.user.id} "
            f"via {type(event).__name__}"
        )
        return EstablishedSession(
            identity=session.user,
            session=session,
            cookies_written=True,
        )

    async def _authenticate(self, event: AuthEvent) -> Session:
        if isinstance(event, AuthorizationCode):
            return await self.identity.exchange_code_for_session(event.code)
        if isinstance(event, PasswordCredentials):
            return await self.identity.sign_in_with_password(
                event.email, event.password
            )
        if isinstance(event, IssuedSession):
            return await self.identity.set_session(
                event.access_token, event.refresh_token
            )
        raise TypeError(f"Unsupported auth event: {type(event).__name__}")
