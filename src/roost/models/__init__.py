"""Pydantic models for Roost - the contracts."""

from roost.models.identity import (
    AuthEvent,
    AuthorizationCode,
    EstablishedSession,
    Identity,
    IssuedSession,
    PasswordCredentials,
    Role,
    Session,
)
from roost.models.profile import (
    BackgroundCheckStatus,
    LandlordRecord,
    Profile,
    ProvisioningResult,
    ProvisioningState,
    RoleRecord,
    TenantRecord,
    VerificationStatus,
)

__all__ = [
    "AuthEvent",
    "AuthorizationCode",
    "BackgroundCheckStatus",
    "EstablishedSession",
    "Identity",
    "IssuedSession",
    "LandlordRecord",
    "PasswordCredentials",
    "Profile",
    "ProvisioningResult",
    "ProvisioningState",
    "Role",
    "RoleRecord",
    "Session",
    "TenantRecord",
    "VerificationStatus",
]
