"""Identity and session models."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Role(str, Enum):
    """Account type an identity is provisioned as."""

    TENANT = "tenant"
    LANDLORD = "landlord"


class Identity(BaseModel):
    """Authenticated principal, owned by the identity provider."""

    id: str
    email: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def first_name(self) -> str | None:
        return self.metadata.get("first_name")

    @property
    def last_name(self) -> str | None:
        return self.metadata.get("last_name")

    @property
    def phone(self) -> str | None:
        return self.metadata.get("phone")

    @property
    def company(self) -> str | None:
        return self.metadata.get("company") or None

    @property
    def role_hint(self) -> Role | None:
        """Role requested at sign-up, if it names a known role."""
        try:
            return Role(self.metadata.get("role"))
        except ValueError:
            return None


class Session(BaseModel):
    """Token pair proving an identity is currently authenticated."""

    access_token: str
    refresh_token: str
    expires_at: datetime | None = None
    expires_in: int | None = None
    user: Identity | None = None


# ---------------------------------------------------------------------------
# Authentication events
# ---------------------------------------------------------------------------

class PasswordCredentials(BaseModel):
    """Email/password sign-in."""

    email: str
    password: str


class AuthorizationCode(BaseModel):
    """OAuth / PKCE authorization code returned to the callback."""

    code: str


class IssuedSession(BaseModel):
    """Tokens already issued by the provider (email confirmation link)."""

    access_token: str
    refresh_token: str


AuthEvent = PasswordCredentials | AuthorizationCode | IssuedSession


class EstablishedSession(BaseModel):
    """Result of materializing a session onto the response."""

    identity: Identity
    session: Session
    cookies_written: bool = False
