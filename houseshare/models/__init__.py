"""
Data Models Package

This package contains all Pydantic models used in houseshare.
Rows read from or written to the backend must conform to these schemas.
"""

from houseshare.models.household import (
    ALL_TABLES,
    BillingType,
    Category,
    CategoryType,
    Charge,
    ChargeShare,
    House,
    HouseMember,
    Invite,
    InviteStatus,
    MemberRole,
    Payment,
    PaymentChargeLink,
    Provider,
    Recurrence,
    RentConfiguration,
    Row,
    SplitMethod,
    utcnow,
)
from houseshare.models.forms import (
    AuthSession,
    BalanceSummary,
    CategoryForm,
    ChargeForm,
    DashboardData,
    HouseForm,
    MemberBalance,
    PaymentForm,
    PaymentParty,
    RoommateView,
    UserAccount,
    UtilityChoice,
    ValidationIssue,
    ValidationResult,
    member_label,
)
from houseshare.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Row models
    "ALL_TABLES",
    "BillingType",
    "Category",
    "CategoryType",
    "Charge",
    "ChargeShare",
    "House",
    "HouseMember",
    "Invite",
    "InviteStatus",
    "MemberRole",
    "Payment",
    "PaymentChargeLink",
    "Provider",
    "Recurrence",
    "RentConfiguration",
    "Row",
    "SplitMethod",
    "utcnow",
    # Forms, views and results
    "AuthSession",
    "BalanceSummary",
    "CategoryForm",
    "ChargeForm",
    "DashboardData",
    "HouseForm",
    "MemberBalance",
    "PaymentForm",
    "PaymentParty",
    "RoommateView",
    "UserAccount",
    "UtilityChoice",
    "ValidationIssue",
    "ValidationResult",
    "member_label",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
