"""Tests for the session materializer."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from roost.auth.cookies import RequestCookieJar
from roost.auth.session import SessionMaterializer
from roost.exceptions import ExchangeFailed, InvalidCredentials, NoUserInSession, SessionError
from roost.models.identity import (
    AuthorizationCode,
    IssuedSession,
    PasswordCredentials,
    Session,
)
from tests.fakes import FakeAuthService, FakeIdentityProvider


@pytest.fixture
def service() -> FakeAuthService:
    return FakeAuthService()


@pytest.fixture
def jar() -> RequestCookieJar:
    return RequestCookieJar({})


@pytest.fixture
def materializer(service, jar) -> SessionMaterializer:
    return SessionMaterializer(FakeIdentityProvider(service, jar), jar)


class TestEstablishSession:

    @pytest.mark.asyncio
    async def test_code_exchange_writes_cookies(self, materializer, service, jar):
        identity = service.add_user()
        code = service.issue_code(identity)

        established = await materializer.establish_session(AuthorizationCode(code=code))

        assert established.identity.id == identity.id
        assert established.cookies_written is True
        assert jar.read("sb-access-token") == established.session.access_token
        assert jar.read("sb-refresh-token") == established.session.refresh_token

    @pytest.mark.asyncio
    async def test_code_is_single_use(self, materializer, service):
        code = service.issue_code(service.add_user())
        await materializer.establish_session(AuthorizationCode(code=code))

        with pytest.raises(ExchangeFailed):
            await materializer.establish_session(AuthorizationCode(code=code))

    @pytest.mark.asyncio
    async def test_password_sign_in(self, materializer, service):
        identity = service.add_user("a@example.com", "secret-pass")

        established = await materializer.establish_session(
            PasswordCredentials(email="a@example.com", password="secret-pass")
        )

        assert established.identity.id == identity.id

    @pytest.mark.asyncio
    async def test_wrong_password(self, materializer, service, jar):
        service.add_user("a@example.com", "secret-pass")

        with pytest.raises(InvalidCredentials):
            await materializer.establish_session(
                PasswordCredentials(email="a@example.com", password="nope")
            )
        assert jar.pending == {}

    @pytest.mark.asyncio
    async def test_issued_session(self, materializer, service):
        identity = service.add_user()
        issued = service.issue_session(identity)

        established = await materializer.establish_session(
            IssuedSession(access_token=issued.access_token, refresh_token=issued.refresh_token)
        )

        assert established.identity.id == identity.id

    @pytest.mark.asyncio
    async def test_session_without_user(self, jar):
        provider = MagicMock()
        provider.exchange_code_for_session = AsyncMock(
            return_value=Session(access_token="a", refresh_token="r", user=None)
        )
        materializer = SessionMaterializer(provider, jar)

        with pytest.raises(NoUserInSession) as exc_info:
            await materializer.establish_session(AuthorizationCode(code="c"))

        assert exc_info.value.reason == "no_user"

    @pytest.mark.asyncio
    async def test_cookies_not_written(self, jar, service):
        identity = service.add_user()
        provider = MagicMock()
        provider.exchange_code_for_session = AsyncMock(
            return_value=Session(access_token="a", refresh_token="r", user=identity)
        )
        materializer = SessionMaterializer(provider, jar)

        with pytest.raises(SessionError):
            await materializer.establish_session(AuthorizationCode(code="c"))
