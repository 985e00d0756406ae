"""
In-Memory Storage Implementation

Keeps every table in a dict keyed by row id. Used for offline mode and
tests. It mirrors the backend behavior the workflows rely on:
embedded relations on list calls, list ordering, the unique membership
constraint and cascading deletes of a category.
"""

from typing import Any, Optional
from uuid import UUID

from houseshare.models.household import (
    Category,
    Charge,
    ChargeShare,
    House,
    HouseMember,
    Invite,
    InviteStatus,
    Payment,
    PaymentChargeLink,
    Provider,
    RentConfiguration,
    Row,
    utcnow,
)
from houseshare.services.storage.interface import (
    DuplicateError,
    HouseStorageInterface,
    NotFoundError,
    StorageError,
)


class InMemoryHouseStorage(HouseStorageInterface):
    """Dict-backed implementation of house ledger storage."""

    def __init__(self):
        self.houses: dict[UUID, House] = {}
        self.members: dict[UUID, HouseMember] = {}
        self.categories: dict[UUID, Category] = {}
        self.providers: dict[UUID, Provider] = {}
        self.charges: dict[UUID, Charge] = {}
        self.charge_shares: dict[UUID, ChargeShare] = {}
        self.rent_configurations: dict[UUID, RentConfiguration] = {}
        self.payments: dict[UUID, Payment] = {}
        self.payment_charge_links: dict[UUID, PaymentChargeLink] = {}
        self.invites: dict[UUID, Invite] = {}

        # Set a table name here to make the next call touching it fail
        self.fail_tables: set[str] = set()

    def _check(self, table: str, operation: str) -> None:
        if table in self.fail_tables:
            raise StorageError(f"Failed to {operation}: table {table} unavailable")

    def _put(self, rows: dict, row: Row, operation: str):
        self._check(row.table, operation)
        if row.id in rows:
            raise DuplicateError(f"Failed to {operation}: id {row.id} already exists")
        stored = row.model_copy(deep=True)
        rows[row.id] = stored
        return stored.model_copy(deep=True)

    def _patch(self, rows: dict, row_id: UUID, updates: dict[str, Any], table: str, operation: str):
        self._check(table, operation)
        current = rows.get(row_id)
        if current is None:
            raise NotFoundError(f"Failed to {operation}: no row with id {row_id}")
        data = current.model_dump()
        data.update(updates)
        rows[row_id] = type(current).model_validate(data)

    # -------------------------------------------------------------------------
    # Houses
    # -------------------------------------------------------------------------

    async def create_house(self, house: House) -> House:
        return self._put(self.houses, house, "create house")

    async def list_houses_for_user(self, user_id: UUID) -> list[House]:
        self._check(HouseMember.table, "list houses")
        houses = []
        for member in self.members.values():
            if member.user_id == user_id and member.house_id in self.houses:
                houses.append(self.houses[member.house_id].model_copy(deep=True))
        return houses

    async def update_house(self, house_id: UUID, updates: dict[str, Any]) -> None:
        self._patch(self.houses, house_id, updates, House.table, "update house")

    # -------------------------------------------------------------------------
    # Members
    # -------------------------------------------------------------------------

    async def add_member(self, member: HouseMember) -> HouseMember:
        for existing in self.members.values():
            if existing.house_id == member.house_id and existing.user_id == member.user_id:
                raise DuplicateError(
                    "Failed to add house member: user is already a member of this house"
                )
        return self._put(self.members, member, "add house member")

    async def list_members(self, house_id: UUID) -> list[HouseMember]:
        self._check(HouseMember.table, "list house members")
        members = [m for m in self.members.values() if m.house_id == house_id]
        members.sort(key=lambda m: m.joined_at)
        return [m.model_copy(deep=True) for m in members]

    async def get_membership(
        self,
        house_id: UUID,
        user_id: UUID,
    ) -> Optional[HouseMember]:
        self._check(HouseMember.table, "get membership")
        for member in self.members.values():
            if member.house_id == house_id and member.user_id == user_id:
                return member.model_copy(deep=True)
        return None

    async def update_member(self, member_id: UUID, updates: dict[str, Any]) -> None:
        self._patch(self.members, member_id, updates, HouseMember.table, "update house member")

    async def remove_member(self, member_id: UUID) -> None:
        self._check(HouseMember.table, "remove house member")
        self.members.pop(member_id, None)

    # -------------------------------------------------------------------------
    # Categories and providers
    # -------------------------------------------------------------------------

    async def create_category(self, category: Category) -> Category:
        return self._put(self.categories, category, "create category")

    async def list_categories(self, house_id: UUID) -> list[Category]:
        self._check(Category.table, "list categories")
        categories = [c for c in self.categories.values() if c.house_id == house_id]
        categories.sort(key=lambda c: c.name)
        return [c.model_copy(deep=True) for c in categories]

    async def update_category(self, category_id: UUID, updates: dict[str, Any]) -> None:
        self._patch(self.categories, category_id, updates, Category.table, "update category")

    async def delete_category(self, category_id: UUID) -> None:
        self._check(Category.table, "delete category")
        self.categories.pop(category_id, None)

        # Cascades the backend schema declares
        self.providers = {
            k: p for k, p in self.providers.items() if p.category_id != category_id
        }
        self.rent_configurations = {
            k: r for k, r in self.rent_configurations.items() if r.category_id != category_id
        }
        removed = {k for k, c in self.charges.items() if c.category_id == category_id}
        for charge_id in removed:
            del self.charges[charge_id]
        self.charge_shares = {
            k: s for k, s in self.charge_shares.items() if s.charge_id not in removed
        }
        for payment_id, payment in self.payments.items():
            if payment.category_id == category_id:
                self.payments[payment_id] = payment.model_copy(update={"category_id": None})

    async def create_provider(self, provider: Provider) -> Provider:
        return self._put(self.providers, provider, "create provider")

    async def get_provider_for_category(self, category_id: UUID) -> Optional[Provider]:
        self._check(Provider.table, "get provider")
        for provider in self.providers.values():
            if provider.category_id == category_id:
                return provider.model_copy(deep=True)
        return None

    async def update_provider(self, provider_id: UUID, updates: dict[str, Any]) -> None:
        self._patch(self.providers, provider_id, updates, Provider.table, "update provider")

    async def delete_providers_for_category(self, category_id: UUID) -> None:
        self._check(Provider.table, "delete provider")
        self.providers = {
            k: p for k, p in self.providers.items() if p.category_id != category_id
        }

    # -------------------------------------------------------------------------
    # Charges
    # -------------------------------------------------------------------------

    async def create_charge(self, charge: Charge) -> Charge:
        stored = charge.model_copy(update={"category": None, "charge_shares": []})
        return self._put(self.charges, stored, "create charge")

    async def add_charge_shares(self, shares: list[ChargeShare]) -> list[ChargeShare]:
        if not shares:
            return []
        self._check(ChargeShare.table, "create charge shares")
        return [self._put(self.charge_shares, s, "create charge shares") for s in shares]

    async def list_charges(self, house_id: UUID) -> list[Charge]:
        self._check(Charge.table, "list charges")
        charges = sorted(
            (c for c in self.charges.values() if c.house_id == house_id),
            key=lambda c: c.due_date,
        )
        result = []
        for charge in charges:
            shares = [
                s.model_copy(deep=True)
                for s in self.charge_shares.values()
                if s.charge_id == charge.id
            ]
            category = self.categories.get(charge.category_id)
            result.append(charge.model_copy(
                update={
                    "category": category.model_copy(deep=True) if category else None,
                    "charge_shares": shares,
                },
                deep=True,
            ))
        return result

    async def save_rent_configuration(
        self,
        config: RentConfiguration,
    ) -> RentConfiguration:
        self._check(RentConfiguration.table, "save rent configuration")
        for existing in self.rent_configurations.values():
            if (
                existing.house_id == config.house_id
                and existing.category_id == config.category_id
                and existing.user_id == config.user_id
            ):
                updated = existing.model_copy(update={
                    "amount": config.amount,
                    "percentage": config.percentage,
                    "notes": config.notes,
                    "updated_at": utcnow(),
                })
                self.rent_configurations[existing.id] = updated
                return updated.model_copy(deep=True)
        return self._put(self.rent_configurations, config, "save rent configuration")

    async def list_rent_configurations(
        self,
        house_id: UUID,
        category_id: Optional[UUID] = None,
    ) -> list[RentConfiguration]:
        self._check(RentConfiguration.table, "list rent configurations")
        return [
            r.model_copy(deep=True)
            for r in self.rent_configurations.values()
            if r.house_id == house_id and (category_id is None or r.category_id == category_id)
        ]

    # -------------------------------------------------------------------------
    # Payments
    # -------------------------------------------------------------------------

    async def create_payment(self, payment: Payment) -> Payment:
        stored = payment.model_copy(update={"category": None})
        return self._put(self.payments, stored, "record payment")

    async def list_payments(self, house_id: UUID) -> list[Payment]:
        self._check(Payment.table, "list payments")
        payments = sorted(
            (p for p in self.payments.values() if p.house_id == house_id),
            key=lambda p: p.date,
            reverse=True,
        )
        result = []
        for payment in payments:
            category = self.categories.get(payment.category_id) if payment.category_id else None
            result.append(payment.model_copy(
                update={"category": category.model_copy(deep=True) if category else None},
                deep=True,
            ))
        return result

    async def link_payment_to_charges(
        self,
        links: list[PaymentChargeLink],
    ) -> list[PaymentChargeLink]:
        return [
            self._put(self.payment_charge_links, link, "link payment to charges")
            for link in links
        ]

    # -------------------------------------------------------------------------
    # Invites
    # -------------------------------------------------------------------------

    async def create_invite(self, invite: Invite) -> Invite:
        return self._put(self.invites, invite, "create invite")

    async def find_pending_invite(
        self,
        house_id: UUID,
        email: str,
    ) -> Optional[Invite]:
        self._check(Invite.table, "check existing invites")
        for invite in self.invites.values():
            if (
                invite.house_id == house_id
                and invite.email == email
                and invite.status == InviteStatus.PENDING
            ):
                return invite.model_copy(deep=True)
        return None

    async def list_pending_invites(self, house_id: UUID) -> list[Invite]:
        self._check(Invite.table, "list invites")
        invites = [
            i for i in self.invites.values()
            if i.house_id == house_id and i.status == InviteStatus.PENDING
        ]
        invites.sort(key=lambda i: i.created_at, reverse=True)
        return [i.model_copy(deep=True) for i in invites]

    async def update_invite_status(
        self,
        invite_id: UUID,
        status: InviteStatus,
    ) -> None:
        self._patch(self.invites, invite_id, {"status": status}, Invite.table, "update invite")
