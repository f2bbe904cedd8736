"""Tests for DatabaseClient query construction."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from roost.db.client import DatabaseClient
from roost.models.identity import Role
from roost.models.profile import VerificationStatus


def _table(data=None):
    """A query builder mock whose chained calls return itself."""
    table = MagicMock()
    for method in ("select", "eq", "upsert", "limit"):
        getattr(table, method).return_value = table
    table.execute.return_value = SimpleNamespace(data=data or [])
    return table


@pytest.fixture
def supabase_client():
    return MagicMock()


class TestProfiles:

    @pytest.mark.asyncio
    async def test_get_profile_found(self, supabase_client):
        table = _table([{"id": "u1", "role": "landlord", "first_name": "Lee"}])
        supabase_client.table.return_value = table

        profile = await DatabaseClient(supabase_client).get_profile("u1")

        assert profile.role == Role.LANDLORD
        supabase_client.table.assert_called_with("profiles")
        table.eq.assert_called_with("id", "u1")

    @pytest.mark.asyncio
    async def test_get_profile_missing(self, supabase_client):
        supabase_client.table.return_value = _table([])

        assert await DatabaseClient(supabase_client).get_profile("u1") is None

    @pytest.mark.asyncio
    async def test_upsert_profile_is_keyed_on_id(self, supabase_client):
        table = _table([])
        supabase_client.table.return_value = table

        profile = await DatabaseClient(supabase_client).upsert_profile(
            "u1", Role.TENANT, "Tia", "Tenant", "555"
        )

        data = table.upsert.call_args.args[0]
        assert table.upsert.call_args.kwargs == {"on_conflict": "id"}
        assert data["role"] == "tenant"
        assert data["first_name"] == "Tia"
        assert "created_at" not in data
        assert profile.id == "u1"


class TestRoleRecords:

    @pytest.mark.asyncio
    async def test_landlord_insert_ignores_duplicates(self, supabase_client):
        table = _table([{"id": "u1", "company_name": "Acme", "verification_status": "verified"}])
        supabase_client.table.return_value = table

        record = await DatabaseClient(supabase_client).insert_landlord_if_absent("u1", "Acme")

        data = table.upsert.call_args.args[0]
        assert data["verification_status"] == "pending"
        assert table.upsert.call_args.kwargs == {
            "on_conflict": "id",
            "ignore_duplicates": True,
        }
        # Existing status is what comes back
        assert record.verification_status == VerificationStatus.VERIFIED

    @pytest.mark.asyncio
    async def test_tenant_insert_targets_tenants(self, supabase_client):
        table = _table([{"id": "u1", "background_check_status": "pending"}])
        supabase_client.table.return_value = table

        await DatabaseClient(supabase_client).insert_tenant_if_absent("u1")

        assert supabase_client.table.call_args_list[0].args == ("tenants",)
        assert table.upsert.call_args.kwargs["ignore_duplicates"] is True

    @pytest.mark.asyncio
    async def test_role_record_lookup_by_role(self, supabase_client):
        supabase_client.table.return_value = _table([])
        db = DatabaseClient(supabase_client)

        await db.get_role_record("u1", Role.LANDLORD)

        supabase_client.table.assert_called_with("landlords")


class TestHealthCheck:

    @pytest.mark.asyncio
    async def test_healthy(self, supabase_client):
        supabase_client.table.return_value = _table([])

        result = await DatabaseClient(supabase_client).health_check()

        assert result["healthy"] is True
        assert result["error"] is None

    @pytest.mark.asyncio
    async def test_unhealthy(self, supabase_client):
        supabase_client.table.side_effect = Exception("Connection refused")

        result = await DatabaseClient(supabase_client).health_check()

        assert result["healthy"] is False
        assert "Connection refused" in result["error"]
