"""Supabase database client for profiles and role records."""

import logging
import time
from datetime import UTC, datetime
from typing import Any

from supabase import Client

from roost.models.identity import Role
from roost.models.profile import (
    BackgroundCheckStatus,
    LandlordRecord,
    Profile,
    TenantRecord,
    VerificationStatus,
)

logger = logging.getLogger(__name__)

PROFILES_TABLE = "profiles"
LANDLORDS_TABLE = "landlords"
TENANTS_TABLE = "tenants"


class DatabaseClient:
    """Client for Supabase database operations.

    Wraps the request-scoped Supabase client so writes run with the signed-in
    user's token and are subject to row level security.
    """

    def __init__(self, client: Client) -> None:
        self.client = client

    # -------------------------------------------------------------------------
    # Profiles
    # -------------------------------------------------------------------------

    async def get_profile(self, user_id: str) -> Profile | None:
        """Get profile by identity ID.

        Args:
            user_id: The identity ID

        Returns:
            Profile if found, None otherwise
        """
        result = (
            self.client.table(PROFILES_TABLE)
            .select("*")
            .eq("id", user_id)
            .execute()
        )
        if result.data:
            return Profile(**result.data[0])
        return None

    async def upsert_profile(
        self,
        user_id: str,
        role: Role,
        first_name: str | None,
        last_name: str | None,
        phone: str | None,
    ) -> Profile:
        """Insert or overwrite the profile keyed on ``id``.

        ``created_at`` is left out of the payload so the column default
        applies on first insert and later upserts leave it untouched.

        Args:
            user_id: The identity ID
            role: Role to record
            first_name: First name from identity metadata
            last_name: Last name from identity metadata
            phone: Phone from identity metadata

        Returns:
            The stored profile
        """
        data = {
            "id": user_id,
            "role": role.value,
            "first_name": first_name,
            "last_name": last_name,
            "phone": phone,
            "updated_at": datetime.now(UTC).isoformat(),
        }

        result = (
            self.client.table(PROFILES_TABLE)
            .upsert(data, on_conflict="id")
            .execute()
        )
        logger.debug(f"Upserted profile {user_id} as {role.value}")
        if result.data:
            return Profile(**result.data[0])
        return Profile(**data)

    # -------------------------------------------------------------------------
    # Role records
    # -------------------------------------------------------------------------

    async def get_landlord(self, user_id: str) -> LandlordRecord | None:
        """Get landlord record by identity ID."""
        result = (
            self.client.table(LANDLORDS_TABLE)
            .select("*")
            .eq("id", user_id)
            .execute()
        )
        if result.data:
            return LandlordRecord(**result.data[0])
        return None

    async def get_tenant(self, user_id: str) -> TenantRecord | None:
        """Get tenant record by identity ID."""
        result = (
            self.client.table(TENANTS_TABLE)
            .select("*")
            .eq("id", user_id)
            .execute()
        )
        if result.data:
            return TenantRecord(**result.data[0])
        return None

    async def get_role_record(
        self, user_id: str, role: Role
    ) -> LandlordRecord | TenantRecord | None:
        if role == Role.LANDLORD:
            return await self.get_landlord(user_id)
        return await self.get_tenant(user_id)

    async def insert_landlord_if_absent(
        self,
        user_id: str,
        company_name: str | None,
    ) -> LandlordRecord | None:
        """Create the landlord row with default status unless it exists.

        Uses ``ON CONFLICT DO NOTHING`` so an existing row, and its
        verification status, is never reset.

        Args:
            user_id: The identity ID
            company_name: Company from identity metadata

        Returns:
            The stored landlord record
        """
        now = datetime.now(UTC).isoformat()
        data = {
            "id": user_id,
            "company_name": company_name,
            "verification_status": VerificationStatus.PENDING.value,
            "created_at": now,
            "updated_at": now,
        }
        self._insert_if_absent(LANDLORDS_TABLE, data)
        return await self.get_landlord(user_id)

    async def insert_tenant_if_absent(self, user_id: str) -> TenantRecord | None:
        """Create the tenant row with default status unless it exists.

        Args:
            user_id: The identity ID

        Returns:
            The stored tenant record
        """
        now = datetime.now(UTC).isoformat()
        data = {
            "id": user_id,
            "background_check_status": BackgroundCheckStatus.PENDING.value,
            "created_at": now,
            "updated_at": now,
        }
        self._insert_if_absent(TENANTS_TABLE, data)
        return await self.get_tenant(user_id)

    def _insert_if_absent(self, table: str, data: dict[str, Any]) -> None:
        result = (
            self.client.table(table)
            .upsert(data, on_conflict="id", ignore_duplicates=True)
            .execute()
        )
        if result.data:
            logger.debug(f"Created {table} row {data['id']}")
        else:
            logger.debug(f"{table} row {data['id']} already present")

    # -------------------------------------------------------------------------
    # Health Check
    # -------------------------------------------------------------------------

    async def health_check(self) -> dict[str, Any]:
        """Check database connectivity and return health status.

        Returns:
            Dict with:
                - healthy: bool - whether the database is reachable
                - latency_ms: float - query latency in milliseconds
                - error: str | None - error message if unhealthy
        """
        start = time.perf_counter()
        try:
            self.client.table(PROFILES_TABLE).select("id").limit(1).execute()
            latency_ms = (time.perf_counter() - start) * 1000

            return {
                "healthy": True,
                "latency_ms": round(latency_ms, 2),
                "error": None,
            }
        except Exception as e:
            latency_ms = (time.perf_counter() - start) * 1000
            logger.error(f"Database health check failed: {e}")

            return {
                "healthy": False,
                "latency_ms": round(latency_ms, 2),
                "error": str(e),
            }
