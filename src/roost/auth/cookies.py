"""Cookie access bound to a single request/response pair."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol

from starlette.responses import Response

logger = logging.getLogger(__name__)

# Supabase auth keeps its PKCE verifier under "<storage key>-code-verifier"
_STORAGE_KEY_PREFIX = "supabase.auth.token"
CODE_VERIFIER_STORAGE_KEY = f"{_STORAGE_KEY_PREFIX}-code-verifier"
# Bounds how long the OAuth round trip may take before the exchange fails
CODE_VERIFIER_MAX_AGE = 60 * 60


class CookieJar(Protocol):
    """The only cookie surface the auth core depends on."""

    def read(self, name: str) -> str | None: ...

    def write(self, name: str, value: str, **attributes: Any) -> None: ...

    def clear(self, name: str) -> None: ...


@dataclass
class _PendingCookie:
    value: str | None
    attributes: dict[str, Any] = field(default_factory=dict)


class RequestCookieJar:
    """Reads cookies from the inbound request and queues writes for the response.

    Writes and clears are held until :meth:`apply` copies them onto the
    outgoing response. Every cookie is scoped to ``path=/`` so that each
    later request on the origin carries it.

    Args:
        request_cookies: Cookies sent by the browser
        defaults: Attributes applied to every write unless overridden
    """

    def __init__(
        self,
        request_cookies: Mapping[str, str],
        defaults: dict[str, Any] | None = None,
    ) -> None:
        self._request_cookies = dict(request_cookies)
        self._defaults = defaults or {}
        self._pending: dict[str, _PendingCookie] = {}

    def read(self, name: str) -> str | None:
        """Current value, including writes made earlier in this request."""
        if name in self._pending:
            return self._pending[name].value
        return self._request_cookies.get(name)

    def write(self, name: str, value: str, **attributes: Any) -> None:
        self._pending[name] = _PendingCookie(
            value=value,
            attributes={**self._defaults, **attributes},
        )

    def clear(self, name: str) -> None:
        self._pending[name] = _PendingCookie(value=None, attributes=dict(self._defaults))

    def written(self, name: str) -> bool:
        """Whether a non-empty value is queued for ``name``."""
        pending = self._pending.get(name)
        return pending is not None and pending.value is not None

    def cleared(self, name: str) -> bool:
        pending = self._pending.get(name)
        return pending is not None and pending.value is None

    @property
    def pending(self) -> dict[str, str | None]:
        return {name: cookie.value for name, cookie in self._pending.items()}

    def apply(self, response: Response) -> Response:
        """Copy queued writes and clears onto ``response``."""
        for name, cookie in self._pending.items():
            attrs = {k: v for k, v in cookie.attributes.items() if k != "path"}
            if cookie.value is None:
                response.delete_cookie(
                    name,
                    path="/",
                    secure=attrs.get("secure", False),
                    httponly=attrs.get("httponly", False),
                    samesite=attrs.get("samesite", "lax"),
                )
            else:
                response.set_cookie(name, cookie.value, path="/", **attrs)
        if self._pending:
            logger.debug(f"Applied cookies to response: {sorted(self._pending)}")
        return response


def storage_cookie_name(key: str) -> str:
    """Map a Supabase auth storage key to a cookie-safe name."""
    return key.replace(".", "-")


class CookieStorage:
    """Supabase auth storage backed by a :class:`CookieJar`.

    Only the PKCE code verifier goes through here; session tokens are written
    by the identity provider under their own cookie names.
    """

    def __init__(self, jar: CookieJar) -> None:
        self._jar = jar

    def get_item(self, key: str) -> str | None:
        return self._jar.read(storage_cookie_name(key))

    def set_item(self, key: str, value: str) -> None:
        self._jar.write(storage_cookie_name(key), value, max_age=CODE_VERIFIER_MAX_AGE)

    def remove_item(self, key: str) -> None:
        self._jar.clear(storage_cookie_name(key))
