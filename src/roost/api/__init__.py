"""FastAPI routes for Roost."""

from roost.api.deps import Backend, CurrentProfile, CurrentSession, Jar
from roost.api.pages import router as pages_router
from roost.api.routes import router

__all__ = ["Backend", "CurrentProfile", "CurrentSession", "Jar", "pages_router", "router"]
