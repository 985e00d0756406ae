"""
Supabase Storage Implementation

DESIGN DECISION: All durable state lives in the hosted Supabase project.
Its generated REST layer (PostgREST) already gives us typed tables,
filters, embedded relations, cascading deletes and row-level security,
so this module is a thin mapping between our row models and
``client.table(...)`` calls.

TRADEOFFS:
- No transactions across tables (a charge and its shares are two inserts)
- No retries: a failed call surfaces as StorageError and the user retries

The implementation follows the abstract interface, so the workflows can
run against the in-memory store without changing.
"""

from typing import Any, Optional, TypeVar
from uuid import UUID

import structlog
from pydantic import BaseModel, TypeAdapter
from supabase import Client, create_client

from houseshare.config import get_settings
from houseshare.config.settings import SupabaseSettings
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
    utcnow,
)
from houseshare.services.storage.interface import (
    DuplicateError,
    HouseStorageInterface,
    NotFoundError,
    StorageConnectionError,
    StorageError,
)


RowT = TypeVar("RowT", bound=BaseModel)

# Postgres error code for unique_violation
UNIQUE_VIOLATION = "23505"

CHARGE_SELECT = "*, category:categories(*), charge_shares(*)"
PAYMENT_SELECT = "*, category:categories(*)"
MEMBERSHIP_SELECT = "house_id, role, house:houses(*)"

_updates_adapter = TypeAdapter(dict[str, Any])

logger = structlog.get_logger(__name__)


def to_storage_error(error: Exception, operation: str) -> StorageError:
    """
    Translate a client library error into our exception hierarchy.

    PostgREST errors carry ``code`` and ``message`` attributes; anything
    else is reported by its string form.
    """
    if isinstance(error, StorageError):
        return error
    code = getattr(error, "code", None)
    message = getattr(error, "message", None) or str(error)
    if code == UNIQUE_VIOLATION:
        return DuplicateError(f"Failed to {operation}: {message}")
    return StorageError(f"Failed to {operation}: {message}")


class SupabaseClient:
    """
    Low-level Supabase client wrapper.

    Creates the client lazily so the app can render its settings page
    even when credentials are missing.
    """

    def __init__(
        self,
        settings: Optional[SupabaseSettings] = None,
        client: Optional[Client] = None,
    ):
        self._settings = settings
        self._client: Optional[Client] = client

    def connect(self) -> Client:
        """Create the Supabase client from settings on first use."""
        if self._client is None:
            try:
                settings = self._settings or get_settings().supabase
                self._client = create_client(settings.url, settings.key)
            except Exception as e:
                raise StorageConnectionError(f"Failed to connect to Supabase: {e}")
        return self._client

    def table(self, name: str):
        """Query builder for one table."""
        return self.connect().table(name)

    @property
    def auth(self):
        """The auth service of the project."""
        return self.connect().auth

    def check_table(self, name: str) -> Optional[str]:
        """
        Issue a zero-row select against a table.

        Returns None when the table answers, else the error message.
        """
        try:
            self.table(name).select("*").limit(0).execute()
            return None
        except Exception as e:
            return getattr(e, "message", None) or str(e)


class SupabaseHouseStorage(HouseStorageInterface):
    """
    Supabase implementation of house ledger storage.

    One backend table per row model; embedded relations are requested
    with PostgREST's ``alias:table(*)`` select syntax.
    """

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or SupabaseClient()

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _execute(self, query, operation: str):
        try:
            return query.execute()
        except Exception as e:
            raise to_storage_error(e, operation) from e

    def _build(self, build, operation: str):
        # Building a query needs a connected client, which can fail too
        try:
            return build()
        except Exception as e:
            raise to_storage_error(e, operation) from e

    def _insert(self, table: str, record: Any, operation: str) -> list[dict]:
        query = self._build(lambda: self._client.table(table).insert(record), operation)
        response = self._execute(query, operation)
        return response.data or []

    def _update(
        self,
        table: str,
        row_id: UUID,
        updates: dict[str, Any],
        operation: str,
    ) -> list[dict]:
        payload = _updates_adapter.dump_python(updates, mode="json")
        query = self._build(
            lambda: self._client.table(table).update(payload).eq("id", str(row_id)),
            operation,
        )
        response = self._execute(query, operation)
        if not response.data:
            raise NotFoundError(f"Failed to {operation}: no row with id {row_id}")
        return response.data

    def _parse(self, model: type[RowT], rows: list[dict]) -> list[RowT]:
        """Convert rows to models, skipping malformed ones."""
        parsed = []
        for row in rows:
            try:
                parsed.append(model.model_validate(row))
            except Exception as e:
                logger.warning(
                    "malformed_row_skipped",
                    model=model.__name__,
                    row_id=row.get("id"),
                    error=str(e),
                )
        return parsed

    def _first(self, model: type[RowT], rows: list[dict]) -> Optional[RowT]:
        parsed = self._parse(model, rows[:1])
        return parsed[0] if parsed else None

    # -------------------------------------------------------------------------
    # Houses
    # -------------------------------------------------------------------------

    async def create_house(self, house: House) -> House:
        rows = self._insert(House.table, house.to_record(), "create house")
        return self._first(House, rows) or house

    async def list_houses_for_user(self, user_id: UUID) -> list[House]:
        operation = "list houses"
        query = self._build(
            lambda: self._client.table(HouseMember.table)
            .select(MEMBERSHIP_SELECT)
            .eq("user_id", str(user_id)),
            operation,
        )
        response = self._execute(query, operation)
        houses = [row["house"] for row in (response.data or []) if row.get("house")]
        return self._parse(House, houses)

    async def update_house(self, house_id: UUID, updates: dict[str, Any]) -> None:
        self._update(House.table, house_id, updates, "update house")

    # -------------------------------------------------------------------------
    # Members
    # -------------------------------------------------------------------------

    async def add_member(self, member: HouseMember) -> HouseMember:
        rows = self._insert(HouseMember.table, member.to_record(), "add house member")
        return self._first(HouseMember, rows) or member

    async def list_members(self, house_id: UUID) -> list[HouseMember]:
        operation = "list house members"
        query = self._build(
            lambda: self._client.table(HouseMember.table)
            .select("*")
            .eq("house_id", str(house_id))
            .order("joined_at"),
            operation,
        )
        response = self._execute(query, operation)
        return self._parse(HouseMember, response.data or [])

    async def get_membership(
        self,
        house_id: UUID,
        user_id: UUID,
    ) -> Optional[HouseMember]:
        operation = "get membership"
        query = self._build(
            lambda: self._client.table(HouseMember.table)
            .select("*")
            .eq("house_id", str(house_id))
            .eq("user_id", str(user_id))
            .limit(1),
            operation,
        )
        response = self._execute(query, operation)
        return self._first(HouseMember, response.data or [])

    async def update_member(self, member_id: UUID, updates: dict[str, Any]) -> None:
        self._update(HouseMember.table, member_id, updates, "update house member")

    async def remove_member(self, member_id: UUID) -> None:
        operation = "remove house member"
        query = self._build(
            lambda: self._client.table(HouseMember.table).delete().eq("id", str(member_id)),
            operation,
        )
        self._execute(query, operation)

    # -------------------------------------------------------------------------
    # Categories and providers
    # -------------------------------------------------------------------------

    async def create_category(self, category: Category) -> Category:
        rows = self._insert(Category.table, category.to_record(), "create category")
        return self._first(Category, rows) or category

    async def list_categories(self, house_id: UUID) -> list[Category]:
        operation = "list categories"
        query = self._build(
            lambda: self._client.table(Category.table)
            .select("*")
            .eq("house_id", str(house_id))
            .order("name"),
            operation,
        )
        response = self._execute(query, operation)
        return self._parse(Category, response.data or [])

    async def update_category(self, category_id: UUID, updates: dict[str, Any]) -> None:
        self._update(Category.table, category_id, updates, "update category")

    async def delete_category(self, category_id: UUID) -> None:
        operation = "delete category"
        query = self._build(
            lambda: self._client.table(Category.table).delete().eq("id", str(category_id)),
            operation,
        )
        self._execute(query, operation)

    async def create_provider(self, provider: Provider) -> Provider:
        rows = self._insert(Provider.table, provider.to_record(), "create provider")
        return self._first(Provider, rows) or provider

    async def get_provider_for_category(self, category_id: UUID) -> Optional[Provider]:
        operation = "get provider"
        query = self._build(
            lambda: self._client.table(Provider.table)
            .select("*")
            .eq("category_id", str(category_id))
            .limit(1),
            operation,
        )
        response = self._execute(query, operation)
        return self._first(Provider, response.data or [])

    async def update_provider(self, provider_id: UUID, updates: dict[str, Any]) -> None:
        self._update(Provider.table, provider_id, updates, "update provider")

    async def delete_providers_for_category(self, category_id: UUID) -> None:
        operation = "delete provider"
        query = self._build(
            lambda: self._client.table(Provider.table)
            .delete()
            .eq("category_id", str(category_id)),
            operation,
        )
        self._execute(query, operation)

    # -------------------------------------------------------------------------
    # Charges
    # -------------------------------------------------------------------------

    async def create_charge(self, charge: Charge) -> Charge:
        rows = self._insert(Charge.table, charge.to_record(), "create charge")
        return self._first(Charge, rows) or charge

    async def add_charge_shares(self, shares: list[ChargeShare]) -> list[ChargeShare]:
        if not shares:
            return []
        records = [share.to_record() for share in shares]
        rows = self._insert(ChargeShare.table, records, "create charge shares")
        return self._parse(ChargeShare, rows) or shares

    async def list_charges(self, house_id: UUID) -> list[Charge]:
        operation = "list charges"
        query = self._build(
            lambda: self._client.table(Charge.table)
            .select(CHARGE_SELECT)
            .eq("house_id", str(house_id))
            .order("due_date"),
            operation,
        )
        response = self._execute(query, operation)
        return self._parse(Charge, response.data or [])

    async def save_rent_configuration(
        self,
        config: RentConfiguration,
    ) -> RentConfiguration:
        operation = "save rent configuration"
        query = self._build(
            lambda: self._client.table(RentConfiguration.table)
            .select("*")
            .eq("house_id", str(config.house_id))
            .eq("category_id", str(config.category_id))
            .eq("user_id", str(config.user_id))
            .limit(1),
            operation,
        )
        response = self._execute(query, operation)
        existing = self._first(RentConfiguration, response.data or [])

        if existing is None:
            rows = self._insert(RentConfiguration.table, config.to_record(), operation)
            return self._first(RentConfiguration, rows) or config

        updates = {
            "amount": config.amount,
            "percentage": config.percentage,
            "notes": config.notes,
            "updated_at": utcnow(),
        }
        rows = self._update(RentConfiguration.table, existing.id, updates, operation)
        return self._first(RentConfiguration, rows) or existing.model_copy(update=updates)

    async def list_rent_configurations(
        self,
        house_id: UUID,
        category_id: Optional[UUID] = None,
    ) -> list[RentConfiguration]:
        operation = "list rent configurations"

        def build():
            query = (
                self._client.table(RentConfiguration.table)
                .select("*")
                .eq("house_id", str(house_id))
            )
            if category_id is not None:
                query = query.eq("category_id", str(category_id))
            return query

        response = self._execute(self._build(build, operation), operation)
        return self._parse(RentConfiguration, response.data or [])

    # -------------------------------------------------------------------------
    # Payments
    # -------------------------------------------------------------------------

    async def create_payment(self, payment: Payment) -> Payment:
        rows = self._insert(Payment.table, payment.to_record(), "record payment")
        return self._first(Payment, rows) or payment

    async def list_payments(self, house_id: UUID) -> list[Payment]:
        operation = "list payments"
        query = self._build(
            lambda: self._client.table(Payment.table)
            .select(PAYMENT_SELECT)
            .eq("house_id", str(house_id))
            .order("date", desc=True),
            operation,
        )
        response = self._execute(query, operation)
        return self._parse(Payment, response.data or [])

    async def link_payment_to_charges(
        self,
        links: list[PaymentChargeLink],
    ) -> list[PaymentChargeLink]:
        if not links:
            return []
        records = [link.to_record() for link in links]
        rows = self._insert(PaymentChargeLink.table, records, "link payment to charges")
        return self._parse(PaymentChargeLink, rows) or links

    # -------------------------------------------------------------------------
    # Invites
    # -------------------------------------------------------------------------

    async def create_invite(self, invite: Invite) -> Invite:
        rows = self._insert(Invite.table, invite.to_record(), "create invite")
        return self._first(Invite, rows) or invite

    async def find_pending_invite(
        self,
        house_id: UUID,
        email: str,
    ) -> Optional[Invite]:
        operation = "check existing invites"
        query = self._build(
            lambda: self._client.table(Invite.table)
            .select("*")
            .eq("house_id", str(house_id))
            .eq("email", email)
            .eq("status", InviteStatus.PENDING.value)
            .limit(1),
            operation,
        )
        response = self._execute(query, operation)
        return self._first(Invite, response.data or [])

    async def list_pending_invites(self, house_id: UUID) -> list[Invite]:
        operation = "list invites"
        query = self._build(
            lambda: self._client.table(Invite.table)
            .select("*")
            .eq("house_id", str(house_id))
            .eq("status", InviteStatus.PENDING.value)
            .order("created_at", desc=True),
            operation,
        )
        response = self._execute(query, operation)
        return self._parse(Invite, response.data or [])

    async def update_invite_status(
        self,
        invite_id: UUID,
        status: InviteStatus,
    ) -> None:
        self._update(Invite.table, invite_id, {"status": status}, "update invite")
