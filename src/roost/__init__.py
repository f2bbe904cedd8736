"""Roost - authentication, session and role gating for rental management."""

__version__ = "0.1.0"

from roost.exceptions import (
    AuthError,
    ProvisioningError,
    RoostError,
    SessionError,
    UnexpectedError,
)

__all__ = [
    "__version__",
    "AuthError",
    "ProvisioningError",
    "RoostError",
    "SessionError",
    "UnexpectedError",
]
