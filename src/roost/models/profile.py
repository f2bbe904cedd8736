"""Application-owned records written at provisioning time."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel

from roost.models.identity import Role


class VerificationStatus(str, Enum):
    """Landlord verification status."""

    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class BackgroundCheckStatus(str, Enum):
    """Tenant background check status."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ProvisioningState(str, Enum):
    """How far provisioning got for an identity."""

    UNPROVISIONED = "unprovisioned"
    PARTIAL = "partial"  # Profile written, role record missing
    PROVISIONED = "provisioned"


class Profile(BaseModel):
    """One row in ``profiles``; carries the authoritative role."""

    id: str
    role: Role
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class LandlordRecord(BaseModel):
    """One row in ``landlords``."""

    id: str
    company_name: str | None = None
    verification_status: VerificationStatus = VerificationStatus.PENDING
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TenantRecord(BaseModel):
    """One row in ``tenants``."""

    id: str
    background_check_status: BackgroundCheckStatus = BackgroundCheckStatus.PENDING
    created_at: datetime | None = None
    updated_at: datetime | None = None


RoleRecord = LandlordRecord | TenantRecord


class ProvisioningResult(BaseModel):
    """Outcome of a provisioning pass."""

    profile: Profile
    role_record: LandlordRecord | TenantRecord | None = None
    state: ProvisioningState
