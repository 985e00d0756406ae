"""
The signed-in user's view of their houses.

HouseSession holds the list of houses the user belongs to, the selected
house and its members. The UI keeps one session per signed-in user and
calls the refresh methods after writes.
"""

from typing import Any, Optional
from uuid import UUID

from houseshare.flows.base import BaseFlow
from houseshare.models.audit import AuditEventType
from houseshare.models.forms import UserAccount
from houseshare.models.household import House, HouseMember, MemberRole
from houseshare.services.storage import StorageError


class HouseSession(BaseFlow):
    """Selected house and member list, with optimistic updates."""

    def __init__(self, user: Optional[UserAccount], *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.user = user
        self.houses: list[House] = []
        self.house: Optional[House] = None
        self.members: list[HouseMember] = []

    @property
    def has_house(self) -> bool:
        return self.house is not None

    def _clear(self) -> None:
        self.houses = []
        self.house = None
        self.members = []

    async def refresh_houses(self) -> Optional[House]:
        """
        Reload the user's houses through their memberships.

        Keeps the current selection if that house is still listed,
        otherwise selects the first house. A failed load leaves the
        session empty.
        """
        if self.user is None:
            self._clear()
            return None

        current_id = self.house.id if self.house else None
        try:
            houses = await self._storage.list_houses_for_user(self.user.id)
        except StorageError as e:
            await self._storage_failed("list houses", e)
            self._clear()
            return None

        self.houses = houses
        selected = next((h for h in houses if h.id == current_id), None)
        self.house = selected or (houses[0] if houses else None)
        await self.refresh_members()
        return self.house

    async def refresh_members(self) -> list[HouseMember]:
        """Reload members of the selected house, oldest first."""
        if self.house is None:
            self.members = []
            return self.members

        try:
            self.members = await self._storage.list_members(self.house.id)
        except StorageError as e:
            await self._storage_failed("list house members", e, self.house.id)
            self.members = []
        return self.members

    async def select_house(self, house_id: Optional[UUID]) -> Optional[House]:
        """Switch to another of the user's houses; None clears the selection."""
        if house_id is None:
            self.house = None
            self.members = []
            return None

        selected = next((h for h in self.houses if h.id == house_id), None)
        if selected is not None:
            self.house = selected
            await self.refresh_members()
        return self.house

    def membership_of(self, user_id: UUID) -> Optional[HouseMember]:
        return next((m for m in self.members if m.user_id == user_id), None)

    def is_admin(self, user_id: Optional[UUID] = None) -> bool:
        user_id = user_id or (self.user.id if self.user else None)
        member = self.membership_of(user_id) if user_id else None
        return bool(member and member.role == MemberRole.ADMIN)

    async def update_house(self, updates: dict[str, Any]) -> Optional[House]:
        """
        Apply updates to the selected house.

        The local copy changes first; if the backend rejects the update,
        the previous state is restored and the error re-raised.
        """
        if self.house is None:
            return None

        previous_house = self.house
        previous_houses = list(self.houses)

        updated = House.model_validate({**previous_house.model_dump(), **updates})
        self.house = updated
        self.houses = [updated if h.id == updated.id else h for h in self.houses]

        try:
            await self._storage.update_house(updated.id, updates)
        except StorageError as e:
            self.house = previous_house
            self.houses = previous_houses
            await self._storage_failed("update house", e, updated.id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_house_updated(house_id=updated.id, fields=sorted(updates))
        return self.house

    async def update_member(self, member_id: UUID, updates: dict[str, Any]) -> None:
        """Update a membership, then reload members either way."""
        self.members = [
            m.model_copy(update=updates) if m.id == member_id else m
            for m in self.members
        ]
        house_id = self.house.id if self.house else None

        try:
            await self._storage.update_member(member_id, updates)
        except StorageError as e:
            await self.refresh_members()
            await self._storage_failed("update house member", e, house_id)
            raise

        if self._audit_logger and house_id:
            await self._audit_logger.log_member_changed(
                event_type=AuditEventType.MEMBER_UPDATED,
                member_id=member_id,
                house_id=house_id,
                details={k: str(v) for k, v in updates.items()},
            )
        await self.refresh_members()

    async def add_member(
        self,
        user_id: UUID,
        role: MemberRole = MemberRole.MEMBER,
        can_see_others_balances: bool = True,
    ) -> HouseMember:
        if self.house is None:
            raise StorageError("Failed to add house member: no house selected")

        member = HouseMember(
            house_id=self.house.id,
            user_id=user_id,
            role=role,
            can_see_others_balances=can_see_others_balances,
        )
        try:
            member = await self._storage.add_member(member)
        except StorageError as e:
            await self._storage_failed("add house member", e, self.house.id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_member_changed(
                event_type=AuditEventType.MEMBER_ADDED,
                member_id=member.id,
                house_id=self.house.id,
                details={"role": role.value},
            )
        await self.refresh_members()
        return member

    async def remove_member(self, member_id: UUID) -> None:
        house_id = self.house.id if self.house else None

        try:
            await self._storage.remove_member(member_id)
        except StorageError as e:
            await self.refresh_members()
            await self._storage_failed("remove house member", e, house_id)
            raise

        self.members = [m for m in self.members if m.id != member_id]
        if self._audit_logger and house_id:
            await self._audit_logger.log_member_changed(
                event_type=AuditEventType.MEMBER_REMOVED,
                member_id=member_id,
                house_id=house_id,
            )
        await self.refresh_members()
