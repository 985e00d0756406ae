"""
Row Models for houseshare

One model per backend table. The backend schema owns the data and its
constraints; these models only give rows a typed shape on our side of
the wire and catch obviously broken values before a round trip.

DESIGN DECISION: Ids and timestamps are generated client-side.
The backend accepts supplied ids, which lets us mirror a row locally
the moment we write it without waiting for the insert to echo back.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, ClassVar, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    model_validator,
)


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def _coerce_decimal(value: Any) -> Any:
    # PostgREST returns numeric columns as JSON numbers; go through str
    # so 33.33 stays 33.33 rather than its binary expansion.
    if isinstance(value, float):
        return Decimal(str(value))
    return value


Amount = Annotated[Decimal, BeforeValidator(_coerce_decimal)]


# =============================================================================
# ENUMS - mirror the check constraints of the backend schema
# =============================================================================

class MemberRole(str, Enum):
    """Role of a user within a house."""
    ADMIN = "admin"
    MEMBER = "member"


class CategoryType(str, Enum):
    """What kind of expense a category tracks."""
    RENT = "rent"
    UTILITY = "utility"
    OTHER = "other"


class BillingType(str, Enum):
    """How the provider bills the house."""
    FLAT = "flat"
    USAGE = "usage"
    MIXED = "mixed"


class Recurrence(str, Enum):
    """Recurrence of a category. A category with no recurrence is one-off."""
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class SplitMethod(str, Enum):
    """How a charge is divided into shares."""
    EQUAL = "equal"
    CUSTOM_FIXED = "custom_fixed"
    CUSTOM_PERCENTAGE = "custom_percentage"
    ONE_PERSON = "one_person"


class InviteStatus(str, Enum):
    """Lifecycle of a roommate invite."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"


# =============================================================================
# BASE
# =============================================================================

class Row(BaseModel):
    """
    Base for all persisted rows.

    Unknown keys are ignored because selects may embed related rows
    (e.g. ``category:categories(*)``) that a model does not declare.
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    # Name of the backend table
    table: ClassVar[str] = ""
    # Embedded relations that are never written back
    relations: ClassVar[frozenset[str]] = frozenset()

    def to_record(self) -> dict[str, Any]:
        """
        Convert to a JSON-safe dict suitable for an insert.

        Decimals become strings, dates and UUIDs become ISO strings.
        """
        return self.model_dump(mode="json", exclude=set(self.relations))


# =============================================================================
# HOUSES AND MEMBERS
# =============================================================================

class House(Row):
    """A shared living unit."""
    table: ClassVar[str] = "houses"

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="House nickname"
    )
    address: Optional[str] = Field(default=None, max_length=300)
    timezone: str = Field(default="America/Los_Angeles")
    created_by: UUID = Field(..., description="User who created the house")
    created_at: datetime = Field(default_factory=utcnow)


class HouseMember(Row):
    """Membership of a user in a house."""
    table: ClassVar[str] = "house_members"

    id: UUID = Field(default_factory=uuid4)
    house_id: UUID
    user_id: UUID
    role: MemberRole = MemberRole.MEMBER
    joined_at: datetime = Field(default_factory=utcnow)
    can_see_others_balances: bool = Field(
        default=True,
        description="Whether this member may see other members' balances"
    )

    @property
    def is_admin(self) -> bool:
        return self.role == MemberRole.ADMIN


# =============================================================================
# CATEGORIES AND PROVIDERS
# =============================================================================

class Category(Row):
    """An expense category of a house (rent, electricity, ...)."""
    table: ClassVar[str] = "categories"

    id: UUID = Field(default_factory=uuid4)
    house_id: UUID
    name: str = Field(..., min_length=1, max_length=100)
    type: CategoryType = CategoryType.UTILITY
    billing_type: BillingType = BillingType.FLAT
    recurrence: Optional[Recurrence] = Field(
        default=None,
        description="None means the category is not recurring"
    )
    is_free: bool = False
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def is_recurring(self) -> bool:
        return self.recurrence is not None


class Provider(Row):
    """The company or person a category is paid to."""
    table: ClassVar[str] = "providers"

    id: UUID = Field(default_factory=uuid4)
    house_id: UUID
    category_id: Optional[UUID] = None
    label: str = Field(..., min_length=1, max_length=200)
    external_link: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    created_at: datetime = Field(default_factory=utcnow)


# =============================================================================
# CHARGES
# =============================================================================

class ChargeShare(Row):
    """One member's portion of a charge."""
    table: ClassVar[str] = "charge_shares"

    id: UUID = Field(default_factory=uuid4)
    charge_id: UUID
    user_id: UUID
    amount: Amount = Field(..., ge=0)
    percentage: Optional[Amount] = Field(default=None, ge=0, le=100)
    created_at: datetime = Field(default_factory=utcnow)


class Charge(Row):
    """A billable expense of a house, split among members."""
    table: ClassVar[str] = "charges"
    relations: ClassVar[frozenset[str]] = frozenset({"category", "charge_shares"})

    id: UUID = Field(default_factory=uuid4)
    house_id: UUID
    category_id: UUID
    provider_id: Optional[UUID] = None
    created_by: UUID
    description: str = Field(..., min_length=1, max_length=200)
    total_amount: Amount = Field(..., ge=0)
    due_date: date
    bill_period_start: Optional[date] = None
    bill_period_end: Optional[date] = None
    split_method: SplitMethod = SplitMethod.EQUAL
    recurrence_id: Optional[UUID] = None
    created_at: datetime = Field(default_factory=utcnow)

    # Embedded when listed with ``category:categories(*), charge_shares(*)``
    category: Optional[Category] = None
    charge_shares: list[ChargeShare] = Field(default_factory=list)

    @model_validator(mode='after')
    def validate_bill_period(self) -> 'Charge':
        """Validate date relationships."""
        if self.bill_period_start and self.bill_period_end:
            if self.bill_period_end < self.bill_period_start:
                raise ValueError("Bill period end cannot be before start")
        return self

    def share_for(self, user_id: UUID) -> Optional[ChargeShare]:
        """The share of a given user, if any."""
        for share in self.charge_shares:
            if share.user_id == user_id:
                return share
        return None


# =============================================================================
# PAYMENTS
# =============================================================================

class Payment(Row):
    """A recorded transfer from a payer to a recipient (or a provider)."""
    table: ClassVar[str] = "payments"
    relations: ClassVar[frozenset[str]] = frozenset({"category"})

    id: UUID = Field(default_factory=uuid4)
    house_id: UUID
    created_by: UUID
    payer_id: UUID
    recipient_id: Optional[UUID] = Field(
        default=None,
        description="None when the payment went to an outside provider"
    )
    category_id: Optional[UUID] = None
    date: date
    amount: Amount = Field(..., gt=0)
    payment_method_label: Optional[str] = Field(default=None, max_length=100)
    link_to_external_payment_page: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=1000)
    created_at: datetime = Field(default_factory=utcnow)

    category: Optional[Category] = None

    @model_validator(mode='after')
    def validate_parties(self) -> 'Payment':
        if self.recipient_id is not None and self.recipient_id == self.payer_id:
            raise ValueError("Payer and recipient cannot be the same person")
        return self


class PaymentChargeLink(Row):
    """Records which charges a payment settles."""
    table: ClassVar[str] = "payment_charge_links"

    id: UUID = Field(default_factory=uuid4)
    payment_id: UUID
    charge_id: UUID
    created_at: datetime = Field(default_factory=utcnow)


# =============================================================================
# INVITES AND RENT
# =============================================================================

class Invite(Row):
    """An invitation for someone to join a house."""
    table: ClassVar[str] = "invites"

    id: UUID = Field(default_factory=uuid4)
    house_id: UUID
    email: Optional[str] = Field(default=None, max_length=254)
    token: str = Field(default_factory=lambda: str(uuid4()))
    status: InviteStatus = InviteStatus.PENDING
    expires_at: datetime = Field(
        ...,
        description="Set from the configured invite expiry when the invite is sent"
    )
    created_at: datetime = Field(default_factory=utcnow)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """True once the invite is past its expiry or was cancelled."""
        if self.status == InviteStatus.EXPIRED:
            return True
        return (now or utcnow()) >= self.expires_at


class RentConfiguration(Row):
    """A member's fixed portion of the rent category."""
    table: ClassVar[str] = "rent_configurations"

    id: UUID = Field(default_factory=uuid4)
    house_id: UUID
    category_id: UUID
    user_id: UUID
    amount: Amount = Field(..., ge=0)
    percentage: Optional[Amount] = Field(default=None, ge=0, le=100)
    notes: Optional[str] = Field(default=None, max_length=1000)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


ALL_TABLES: tuple[str, ...] = (
    House.table,
    HouseMember.table,
    Category.table,
    Provider.table,
    Charge.table,
    ChargeShare.table,
    Payment.table,
    PaymentChargeLink.table,
    Invite.table,
    RentConfiguration.table,
)
