"""
Form, View and Result Models

Forms are what the user typed. Every field is optional because the user
may leave things blank; the validator reports what is missing instead of
pydantic raising on the first gap. Only after validation do the flows
build the strict row models from ``houseshare.models.household``.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from houseshare.models.household import (
    Amount,
    BillingType,
    Category,
    CategoryType,
    Charge,
    House,
    HouseMember,
    MemberRole,
    Payment,
    Recurrence,
    SplitMethod,
    utcnow,
)


# =============================================================================
# ACCOUNTS
# =============================================================================

def member_label(user_id: UUID) -> str:
    """How another member is shown. Profiles of other users are not readable."""
    return f"User {str(user_id)[:8]}"


class UserAccount(BaseModel):
    """The authenticated user, as returned by the auth service."""

    id: UUID
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    name: Optional[str] = None

    @property
    def display_name(self) -> str:
        """First name, else the local part of the email, else "You"."""
        if self.first_name:
            return self.first_name
        if self.email:
            return self.email.split("@")[0]
        return "You"

    def profile_names(self) -> tuple[str, str]:
        """
        First and last name for the profile form.

        Falls back to splitting the full name, then to the email local part.
        """
        first = self.first_name or ""
        last = self.last_name or ""
        if not first and not last and self.name:
            parts = self.name.split()
            first = parts[0] if parts else ""
            last = " ".join(parts[1:])
        if not first and self.email:
            first = self.email.split("@")[0]
        return first, last


class AuthSession(BaseModel):
    """An established auth session."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    user: UserAccount


# =============================================================================
# FORMS
# =============================================================================

class UtilityChoice(BaseModel):
    """One utility offered during onboarding."""
    model_config = ConfigDict(str_strip_whitespace=True)

    key: str
    name: str
    selected: bool = False
    is_free: bool = False
    is_recurring: bool = True
    billing_type: BillingType = BillingType.FLAT
    provider: str = ""
    recurrence: Recurrence = Recurrence.MONTHLY

    @property
    def category_type(self) -> CategoryType:
        return CategoryType.RENT if self.key == "rent" else CategoryType.UTILITY


class CategoryForm(BaseModel):
    """Add/edit category form."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = ""
    type: CategoryType = CategoryType.UTILITY
    billing_type: BillingType = BillingType.FLAT
    is_free: bool = False
    is_recurring: bool = True
    recurrence: Recurrence = Recurrence.MONTHLY
    provider_label: str = ""

    @property
    def effective_recurrence(self) -> Optional[Recurrence]:
        return self.recurrence if self.is_recurring else None


class ChargeForm(BaseModel):
    """Add charge form."""
    model_config = ConfigDict(str_strip_whitespace=True)

    category_id: Optional[UUID] = None
    description: str = ""
    total_amount: Optional[Amount] = None
    due_date: Optional[date] = None
    bill_period_start: Optional[date] = None
    bill_period_end: Optional[date] = None
    provider_id: Optional[UUID] = None
    split_method: SplitMethod = SplitMethod.EQUAL

    # Only read for the matching split method
    custom_amounts: dict[UUID, Amount] = Field(default_factory=dict)
    percentages: dict[UUID, Amount] = Field(default_factory=dict)
    assignee_id: Optional[UUID] = None
    use_rent_configuration: bool = False


class PaymentForm(BaseModel):
    """Record payment form."""
    model_config = ConfigDict(str_strip_whitespace=True)

    payer_id: Optional[UUID] = None
    recipient_id: Optional[UUID] = None
    category_id: Optional[UUID] = None
    amount: Optional[Amount] = None
    payment_date: Optional[date] = None
    payment_method_label: str = ""
    link_to_external_payment_page: str = ""
    notes: str = ""
    charge_ids: list[UUID] = Field(default_factory=list)


class HouseForm(BaseModel):
    """House details, as entered during onboarding or in settings."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = ""
    address: str = ""
    timezone: str = "America/Los_Angeles"


# =============================================================================
# VIEWS
# =============================================================================

class PaymentParty(BaseModel):
    """A member as offered in the payer/recipient pickers."""

    id: UUID
    name: str


class RoommateView(BaseModel):
    """A house member as shown in the roommate list."""

    member_id: UUID
    user_id: UUID
    role: MemberRole
    joined_at: datetime
    name: str
    is_current_user: bool = False


class MemberBalance(BaseModel):
    """
    Balance of one member.

    A positive net balance means the member owes money.
    """

    user_id: UUID
    total_owed: Decimal = Decimal("0")
    total_owed_to: Decimal = Decimal("0")
    total_paid: Decimal = Decimal("0")
    net_balance: Decimal = Decimal("0")

    @property
    def is_owed_to(self) -> bool:
        return self.net_balance < 0

    @property
    def is_settled(self) -> bool:
        return self.net_balance == 0


class BalanceSummary(MemberBalance):
    """Balance of the viewing user plus, when allowed, everyone else's."""

    member_balances: list[MemberBalance] = Field(default_factory=list)


class DashboardData(BaseModel):
    """Everything the dashboard shows for one house."""

    house: House
    charges: list[Charge] = Field(default_factory=list)
    payments: list[Payment] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=list)
    members: list[HouseMember] = Field(default_factory=list)
    balance: BalanceSummary
    errors: list[str] = Field(
        default_factory=list,
        description="Collections that failed to load"
    )
    loaded_at: datetime = Field(default_factory=utcnow)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'inconsistent')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="What the user can do about it"
    )


class ValidationResult(BaseModel):
    """Result of validating one submitted form."""

    form: str = Field(
        ...,
        description="Name of the form that was validated"
    )
    validated_at: datetime = Field(
        default_factory=utcnow
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    @property
    def is_valid(self) -> bool:
        """Valid when there are no error-level issues."""
        return not self.has_errors

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]

    @property
    def first_error(self) -> Optional[str]:
        for issue in self.issues:
            if issue.severity == "error":
                return issue.message
        return None
