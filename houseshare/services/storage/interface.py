"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Talk to the hosted Supabase tables in production
2. Use in-memory storage for tests and offline mode
3. Keep the workflows decoupled from the client library

The interface is intentionally thin - the backend owns the schema,
constraints, cascading deletes and row-level security. We only expose
the selects, inserts, updates and deletes the workflows actually issue.
"""

from abc import ABC, abstractmethod
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
)


class HouseStorageInterface(ABC):
    """
    Abstract interface for house ledger storage.

    Any storage implementation (Supabase, in-memory, ...)
    must implement these methods. Every method raises StorageError
    (or a subclass) when the backend rejects the call.
    """

    # -------------------------------------------------------------------------
    # Houses
    # -------------------------------------------------------------------------

    @abstractmethod
    async def create_house(self, house: House) -> House:
        """
        Insert a house.

        Returns:
            The house as stored
        """
        pass

    @abstractmethod
    async def list_houses_for_user(self, user_id: UUID) -> list[House]:
        """
        List the houses a user belongs to.

        Resolved through the user's house_members rows.
        """
        pass

    @abstractmethod
    async def update_house(self, house_id: UUID, updates: dict[str, Any]) -> None:
        """
        Apply a partial update to a house.

        Raises:
            NotFoundError: If the house doesn't exist
        """
        pass

    # -------------------------------------------------------------------------
    # Members
    # -------------------------------------------------------------------------

    @abstractmethod
    async def add_member(self, member: HouseMember) -> HouseMember:
        """
        Insert a house membership.

        Raises:
            DuplicateError: If the user is already a member of the house
        """
        pass

    @abstractmethod
    async def list_members(self, house_id: UUID) -> list[HouseMember]:
        """List members of a house, oldest membership first."""
        pass

    @abstractmethod
    async def get_membership(
        self,
        house_id: UUID,
        user_id: UUID,
    ) -> Optional[HouseMember]:
        """The membership of a user in a house, None if not a member."""
        pass

    @abstractmethod
    async def update_member(self, member_id: UUID, updates: dict[str, Any]) -> None:
        """Apply a partial update to a membership."""
        pass

    @abstractmethod
    async def remove_member(self, member_id: UUID) -> None:
        """Delete a membership."""
        pass

    # -------------------------------------------------------------------------
    # Categories and providers
    # -------------------------------------------------------------------------

    @abstractmethod
    async def create_category(self, category: Category) -> Category:
        pass

    @abstractmethod
    async def list_categories(self, house_id: UUID) -> list[Category]:
        """List categories of a house, ordered by name."""
        pass

    @abstractmethod
    async def update_category(self, category_id: UUID, updates: dict[str, Any]) -> None:
        pass

    @abstractmethod
    async def delete_category(self, category_id: UUID) -> None:
        """Delete a category. Related rows are cleaned up by the backend."""
        pass

    @abstractmethod
    async def create_provider(self, provider: Provider) -> Provider:
        pass

    @abstractmethod
    async def get_provider_for_category(self, category_id: UUID) -> Optional[Provider]:
        """The first provider attached to a category, if any."""
        pass

    @abstractmethod
    async def update_provider(self, provider_id: UUID, updates: dict[str, Any]) -> None:
        pass

    @abstractmethod
    async def delete_providers_for_category(self, category_id: UUID) -> None:
        pass

    # -------------------------------------------------------------------------
    # Charges
    # -------------------------------------------------------------------------

    @abstractmethod
    async def create_charge(self, charge: Charge) -> Charge:
        """Insert a charge (without its shares)."""
        pass

    @abstractmethod
    async def add_charge_shares(self, shares: list[ChargeShare]) -> list[ChargeShare]:
        """Insert the shares of a charge in one call."""
        pass

    @abstractmethod
    async def list_charges(self, house_id: UUID) -> list[Charge]:
        """
        List charges of a house with their category and shares embedded.

        Ordered by due date, earliest first.
        """
        pass

    @abstractmethod
    async def save_rent_configuration(
        self,
        config: RentConfiguration,
    ) -> RentConfiguration:
        """Insert or replace the rent configuration of one member."""
        pass

    @abstractmethod
    async def list_rent_configurations(
        self,
        house_id: UUID,
        category_id: Optional[UUID] = None,
    ) -> list[RentConfiguration]:
        pass

    # -------------------------------------------------------------------------
    # Payments
    # -------------------------------------------------------------------------

    @abstractmethod
    async def create_payment(self, payment: Payment) -> Payment:
        pass

    @abstractmethod
    async def list_payments(self, house_id: UUID) -> list[Payment]:
        """
        List payments of a house with their category embedded.

        Ordered by payment date, newest first.
        """
        pass

    @abstractmethod
    async def link_payment_to_charges(
        self,
        links: list[PaymentChargeLink],
    ) -> list[PaymentChargeLink]:
        pass

    # -------------------------------------------------------------------------
    # Invites
    # -------------------------------------------------------------------------

    @abstractmethod
    async def create_invite(self, invite: Invite) -> Invite:
        pass

    @abstractmethod
    async def find_pending_invite(
        self,
        house_id: UUID,
        email: str,
    ) -> Optional[Invite]:
        """A pending invite for this email in this house, if any."""
        pass

    @abstractmethod
    async def list_pending_invites(self, house_id: UUID) -> list[Invite]:
        """List pending invites, newest first."""
        pass

    @abstractmethod
    async def update_invite_status(
        self,
        invite_id: UUID,
        status: InviteStatus,
    ) -> None:
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
