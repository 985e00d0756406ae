"""Roommates, roles and invites."""

from datetime import timedelta
from uuid import UUID

from houseshare.flows.base import BaseFlow
from houseshare.flows.house import HouseSession
from houseshare.models.forms import RoommateView, UserAccount, member_label
from houseshare.models.household import (
    House,
    HouseMember,
    Invite,
    InviteStatus,
    MemberRole,
    utcnow,
)
from houseshare.services.storage import StorageError


def roommate_view(member: HouseMember, user: UserAccount) -> RoommateView:
    is_current_user = member.user_id == user.id
    return RoommateView(
        member_id=member.id,
        user_id=member.user_id,
        role=member.role,
        joined_at=member.joined_at,
        name="You" if is_current_user else member_label(member.user_id),
        is_current_user=is_current_user,
    )


class RoommateError(ValueError):
    """A roommate action that is not allowed."""
    pass


class RoommateFlow(BaseFlow):
    """
    Orchestrates roommate management.

    Member changes go through the HouseSession so its member list stays
    current; invites are written directly.
    """

    def list_roommates(self, session: HouseSession) -> list[RoommateView]:
        if session.user is None:
            return []
        return [roommate_view(m, session.user) for m in session.members]

    async def list_pending_invites(self, house: House) -> list[Invite]:
        """Pending invites, newest first. A failed load shows none."""
        try:
            return await self._storage.list_pending_invites(house.id)
        except StorageError as e:
            await self._storage_failed("list invites", e, house.id)
            return []

    async def send_invite(self, house: House, email: str) -> Invite:
        """
        Create a pending invite valid for the configured number of days.

        Raises:
            FormValidationError: Blank or malformed email, or a pending
                invite for this email already exists
            StorageError: The insert failed
        """
        await self._require_valid(await self._validator.validate_invite(house.id, email), house.id)

        invite = Invite(
            house_id=house.id,
            email=email.strip(),
            status=InviteStatus.PENDING,
            expires_at=utcnow() + timedelta(days=self._settings.invite_expiry_days),
        )
        try:
            invite = await self._storage.create_invite(invite)
        except StorageError as e:
            await self._storage_failed("send invite", e, house.id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_invite_sent(
                invite_id=invite.id,
                house_id=house.id,
                email=invite.email,
            )
        return invite

    async def cancel_invite(self, house: House, invite_id: UUID) -> None:
        """Cancelled invites are marked expired."""
        try:
            await self._storage.update_invite_status(invite_id, InviteStatus.EXPIRED)
        except StorageError as e:
            await self._storage_failed("cancel invite", e, house.id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_invite_cancelled(invite_id=invite_id, house_id=house.id)

    async def _require_admin(self, session: HouseSession) -> None:
        """Check the signed-in user's role as stored, not as cached in the session."""
        if session.user is None or session.house is None:
            raise RoommateError("Select a house first")
        try:
            membership = await self._storage.get_membership(session.house.id, session.user.id)
        except StorageError as e:
            await self._storage_failed("get membership", e, session.house.id)
            raise
        if membership is None or not membership.is_admin:
            raise RoommateError("Only admins can manage roommates")

    async def change_role(
        self,
        session: HouseSession,
        member_id: UUID,
        role: MemberRole,
    ) -> None:
        """
        Give a member another role. Admins only.

        Raises:
            RoommateError: The signed-in user is not an admin of the house
        """
        await self._require_admin(session)
        await session.update_member(member_id, {"role": role})

    async def remove_roommate(self, session: HouseSession, member_id: UUID) -> None:
        """
        Remove a member from the house.

        Raises:
            RoommateError: The member is the signed-in user, or the
                signed-in user is not an admin
        """
        member = next((m for m in session.members if m.id == member_id), None)
        if member is not None and session.user and member.user_id == session.user.id:
            raise RoommateError("You cannot remove yourself")
        await self._require_admin(session)
        await session.remove_member(member_id)
