"""
Dashboard data for one house.

Each collection is fetched separately. A failed fetch leaves that
collection empty and is reported in ``DashboardData.errors``; the rest
of the dashboard still renders.
"""

from typing import Awaitable, Callable, Optional, TypeVar
from uuid import UUID

from houseshare.flows.base import BaseFlow
from houseshare.ledger.balance import summarize_balances
from houseshare.models.forms import DashboardData, UserAccount
from houseshare.models.household import House, HouseMember
from houseshare.services.storage import StorageError


T = TypeVar("T")


class DashboardFlow(BaseFlow):
    """Loads charges, payments, categories and balances for the dashboard."""

    async def _fetch(
        self,
        name: str,
        house_id: UUID,
        fetch: Callable[[UUID], Awaitable[list[T]]],
        errors: list[str],
    ) -> list[T]:
        try:
            return await fetch(house_id)
        except StorageError as e:
            await self._storage_failed(f"load {name}", e, house_id)
            errors.append(name)
            return []

    async def load(
        self,
        user: UserAccount,
        house: House,
        members: Optional[list[HouseMember]] = None,
    ) -> DashboardData:
        """
        Load everything the dashboard shows.

        Args:
            user: The viewer
            house: The selected house
            members: Members already loaded by the HouseSession, if any
        """
        errors: list[str] = []

        charges = await self._fetch("charges", house.id, self._storage.list_charges, errors)
        payments = await self._fetch("payments", house.id, self._storage.list_payments, errors)
        categories = await self._fetch("categories", house.id, self._storage.list_categories, errors)
        if members is None:
            members = await self._fetch("members", house.id, self._storage.list_members, errors)

        viewer = next((m for m in members if m.user_id == user.id), None)
        balance = summarize_balances(
            viewer_id=user.id,
            charges=charges,
            payments=payments,
            members=members,
            viewer_membership=viewer,
        )

        return DashboardData(
            house=house,
            charges=charges,
            payments=payments,
            categories=categories,
            members=members,
            balance=balance,
            errors=errors,
        )
