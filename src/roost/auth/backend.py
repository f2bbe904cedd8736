"""Per-request construction of the identity provider and data store client."""

from dataclasses import dataclass
from typing import Callable

from roost.auth.cookies import CookieJar
from roost.auth.provider import (
    IdentityProvider,
    SupabaseIdentityProvider,
    create_request_client,
)
from roost.config import get_settings
from roost.db.client import DatabaseClient


@dataclass
class RequestBackend:
    """Collaborators for one request, sharing one Supabase client."""

    identity: IdentityProvider
    db: DatabaseClient


BackendFactory = Callable[[CookieJar], RequestBackend]


def supabase_backend(jar: CookieJar) -> RequestBackend:
    """Default factory: a fresh Supabase client bound to ``jar``."""
    settings = get_settings()
    client = create_request_client(settings, jar)
    return RequestBackend(
        identity=SupabaseIdentityProvider(client, jar, settings),
        db=DatabaseClient(client),
    )
