"""Authentication core: identity provider, sessions, provisioning, route gate."""

from roost.auth.backend import RequestBackend, supabase_backend
from roost.auth.cookies import CookieJar, CookieStorage, RequestCookieJar
from roost.auth.gate import RouteGate, classify_path, decide
from roost.auth.provider import IdentityProvider, SupabaseIdentityProvider
from roost.auth.provisioning import RoleBootstrapper, parse_role
from roost.auth.session import SessionMaterializer

__all__ = [
    "CookieJar",
    "CookieStorage",
    "IdentityProvider",
    "RequestBackend",
    "RequestCookieJar",
    "RoleBootstrapper",
    "RouteGate",
    "SessionMaterializer",
    "SupabaseIdentityProvider",
    "classify_path",
    "decide",
    "parse_role",
    "supabase_backend",
]
