"""Profile and role record provisioning for authenticated identities."""

import logging

from roost.config import Settings, get_settings
from roost.db.client import DatabaseClient
from roost.exceptions import (
    ProfileWriteFailed,
    RoleMismatchError,
    RoleRecordWriteFailed,
)
from roost.models.identity import Identity, Role
from roost.models.profile import ProvisioningResult, ProvisioningState

logger = logging.getLogger(__name__)


def parse_role(value: str | None) -> Role | None:
    """Parse a client-supplied role, ignoring unknown values."""
    if not value:
        return None
    try:
        return Role(value.strip().lower())
    except ValueError:
        logger.warning(f"Ignoring unknown role {value!r}")
        return None


class RoleBootstrapper:
    """Ensures an identity has a Profile and exactly one matching role record.

    Both writes are idempotent: the profile is a full upsert on ``id`` and the
    role record is inserted only when absent, so repeated or concurrent calls
    converge on the same rows. The two writes are separate statements; a
    failure between them leaves a ``PARTIAL`` state that :meth:`reconcile`
    completes.
    """

    def __init__(self, db: DatabaseClient, settings: Settings | None = None) -> None:
        self.db = db
        self.settings = settings or get_settings()

    async def resolve_role(
        self,
        identity: Identity,
        requested_role: Role | None = None,
    ) -> Role:
        """Decide which role to provision ``identity`` with.

        A role already recorded on the profile wins. A request for a
        different role is rejected before anything is written; a client
        supplied role is only honoured for first-time provisioning.

        Raises:
            RoleMismatchError: If ``requested_role`` conflicts with the profile
        """
        profile = await self.db.get_profile(identity.id)
        if profile is not None:
            if requested_role is not None and requested_role != profile.role:
                logger.warning(
                    f"Role mismatch for {identity.id}: recorded={profile.role.value} "
                    f"requested={requested_role.value}"
                )
                raise RoleMismatchError(profile.role.value, requested_role.value)
            return profile.role

        if requested_role is not None:
            return requested_role
        if identity.role_hint is not None:
            return identity.role_hint
        return Role(self.settings.default_role)

    async def provision(self, identity: Identity, role: Role) -> ProvisioningResult:
        """Upsert the profile, then create the role record if missing.

        Args:
            identity: The authenticated identity
            role: Effective role, normally from :meth:`resolve_role`

        Returns:
            The stored profile and role record

        Raises:
            ProfileWriteFailed: If the profile upsert fails
            RoleRecordWriteFailed: If the role record write fails
        """
        try:
            profile = await self.db.upsert_profile(
                identity.id,
                role,
                first_name=identity.first_name,
                last_name=identity.last_name,
                phone=identity.phone,
            )
        except Exception as e:
            logger.error(f"Profile write failed for {identity.id}: {e}")
            raise ProfileWriteFailed(identity.id, str(e)) from e

        try:
            if role == Role.LANDLORD:
                record = await self.db.insert_landlord_if_absent(
                    identity.id, company_name=identity.company
                )
            else:
                record = await self.db.insert_tenant_if_absent(identity.id)
        except Exception as e:
            logger.error(f"{role.value} record write failed for {identity.id}: {e}")
            raise RoleRecordWriteFailed(identity.id, str(e)) from e

        logger.info(f"Provisioned {identity.id} as {role.value}")
        return ProvisioningResult(
            profile=profile,
            role_record=record,
            state=ProvisioningState.PROVISIONED,
        )

    async def state(self, identity: Identity) -> ProvisioningState:
        """Report how far provisioning got for ``identity``."""
        profile = await self.db.get_profile(identity.id)
        if profile is None:
            return ProvisioningState.UNPROVISIONED
        record = await self.db.get_role_record(identity.id, profile.role)
        if record is None:
            return ProvisioningState.PARTIAL
        return ProvisioningState.PROVISIONED

    async def reconcile(self, identity: Identity) -> ProvisioningResult | None:
        """Complete a partial provisioning pass.

        Returns:
            The provisioning result, or None if the identity has no profile
            yet (first-time provisioning needs a requested role)
        """
        profile = await self.db.get_profile(identity.id)
        if profile is None:
            return None

        record = await self.db.get_role_record(identity.id, profile.role)
        if record is not None:
            return ProvisioningResult(
                profile=profile,
                role_record=record,
                state=ProvisioningState.PROVISIONED,
            )

        logger.warning(
            f"Profile {identity.id} has no {profile.role.value} record, re-provisioning"
        )
        return await self.provision(identity, profile.role)
