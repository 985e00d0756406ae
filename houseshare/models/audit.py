"""
Audit Models for houseshare

Every user action that writes to the backend is logged for audit purposes.
This provides:
1. Traceability of who changed what in a shared house
2. Debugging information when a backend call fails
3. The ability to reconstruct the order of writes in one workflow

DESIGN DECISION: Audit events are append-only. We never modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from houseshare.models.household import utcnow


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every workflow step that touches the backend has its own event type.
    """
    # Accounts
    USER_SIGNED_UP = "user_signed_up"
    USER_SIGNED_IN = "user_signed_in"
    USER_SIGNED_OUT = "user_signed_out"
    PROFILE_UPDATED = "profile_updated"
    AUTH_FAILED = "auth_failed"

    # Houses and members
    HOUSE_CREATED = "house_created"
    HOUSE_UPDATED = "house_updated"
    MEMBER_ADDED = "member_added"
    MEMBER_UPDATED = "member_updated"
    MEMBER_REMOVED = "member_removed"

    # Categories and providers
    CATEGORY_CREATED = "category_created"
    CATEGORY_UPDATED = "category_updated"
    CATEGORY_DELETED = "category_deleted"
    PROVIDER_SAVED = "provider_saved"
    PROVIDER_FAILED = "provider_failed"

    # Charges
    CHARGE_CREATED = "charge_created"
    CHARGE_SHARES_CREATED = "charge_shares_created"
    RENT_CONFIGURATION_SAVED = "rent_configuration_saved"

    # Payments
    PAYMENT_RECORDED = "payment_recorded"
    PAYMENT_LINKED = "payment_linked"

    # Invites
    INVITE_SENT = "invite_sent"
    INVITE_CANCELLED = "invite_cancelled"

    # Validation
    FORM_REJECTED = "form_rejected"

    # System events
    STORAGE_ERROR = "storage_error"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    One entry in the audit trail of a house.

    Flows emit one per write and one per rejected form or failed call.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'house', 'charge', 'payment')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )
    house_id: Optional[UUID] = Field(
        default=None,
        description="House the event happened in"
    )
    actor_id: Optional[UUID] = Field(
        default=None,
        description="User who triggered the event"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all writes of one onboarding)"
    )

    # Event details
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    # User action tracking
    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "house_id": str(self.house_id) if self.house_id else None,
            "actor_id": str(self.actor_id) if self.actor_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.charge_created(charge_id, house_id, ...)
        event = AuditEventBuilder.invite_sent(invite_id, house_id, ...)
    """

    @staticmethod
    def user_signed_up(
        user_id: UUID,
        email: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_SIGNED_UP,
            entity_type="user",
            entity_id=user_id,
            actor_id=user_id,
            description=f"New account: {email}",
            details={"email": email},
            is_user_action=True,
        )

    @staticmethod
    def user_signed_in(user_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_SIGNED_IN,
            entity_type="user",
            entity_id=user_id,
            actor_id=user_id,
            description="User signed in",
            is_user_action=True,
        )

    @staticmethod
    def auth_failed(
        action: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUTH_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="user",
            description=f"Auth {action} failed",
            error_message=error_message,
            details={"action": action},
        )

    @staticmethod
    def house_created(
        house_id: UUID,
        name: str,
        actor_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.HOUSE_CREATED,
            entity_type="house",
            entity_id=house_id,
            house_id=house_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
            description=f"House created: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def member_changed(
        event_type: AuditEventType,
        member_id: UUID,
        house_id: UUID,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        verb = {
            AuditEventType.MEMBER_ADDED: "added",
            AuditEventType.MEMBER_UPDATED: "updated",
            AuditEventType.MEMBER_REMOVED: "removed",
        }.get(event_type, "changed")
        return AuditEvent(
            event_type=event_type,
            entity_type="house_member",
            entity_id=member_id,
            house_id=house_id,
            correlation_id=correlation_id,
            description=f"House member {verb}",
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def category_changed(
        event_type: AuditEventType,
        category_id: UUID,
        house_id: UUID,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type="category",
            entity_id=category_id,
            house_id=house_id,
            correlation_id=correlation_id,
            description=f"Category {event_type.value.split('_')[-1]}: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def provider_failed(
        category_id: UUID,
        house_id: UUID,
        label: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROVIDER_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="category",
            entity_id=category_id,
            house_id=house_id,
            description=f"Provider '{label}' could not be saved",
            error_message=error_message,
            details={"label": label},
        )

    @staticmethod
    def charge_created(
        charge_id: UUID,
        house_id: UUID,
        description: str,
        amount: str,
        actor_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHARGE_CREATED,
            entity_type="charge",
            entity_id=charge_id,
            house_id=house_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
            description=f"Charge created: {description} - ${amount}",
            details={
                "description": description,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def charge_shares_created(
        charge_id: UUID,
        house_id: UUID,
        split_method: str,
        share_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHARGE_SHARES_CREATED,
            entity_type="charge",
            entity_id=charge_id,
            house_id=house_id,
            correlation_id=correlation_id,
            description=f"{share_count} shares created ({split_method})",
            details={
                "split_method": split_method,
                "share_count": share_count,
            },
        )

    @staticmethod
    def payment_recorded(
        payment_id: UUID,
        house_id: UUID,
        payer_id: UUID,
        recipient_id: Optional[UUID],
        amount: str,
        actor_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_RECORDED,
            entity_type="payment",
            entity_id=payment_id,
            house_id=house_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
            description=f"Payment recorded: ${amount}",
            details={
                "payer_id": str(payer_id),
                "recipient_id": str(recipient_id) if recipient_id else None,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def invite_sent(
        invite_id: UUID,
        house_id: UUID,
        email: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INVITE_SENT,
            entity_type="invite",
            entity_id=invite_id,
            house_id=house_id,
            correlation_id=correlation_id,
            description=f"Invite created for {email}",
            details={"email": email},
            is_user_action=True,
        )

    @staticmethod
    def form_rejected(
        form: str,
        issues: list[dict],
        house_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FORM_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="form",
            house_id=house_id,
            description=f"{form.capitalize()} form rejected with {len(issues)} issues",
            details={
                "form": form,
                "issues": issues,
            },
            is_user_action=True,
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        house_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            house_id=house_id,
            correlation_id=correlation_id,
            description=f"Backend error during {operation}",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def entity_event(
        event_type: AuditEventType,
        entity_type: str,
        entity_id: Optional[UUID],
        description: str,
        house_id: Optional[UUID] = None,
        actor_id: Optional[UUID] = None,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        """Any user action on one entity that has no dedicated builder."""
        return AuditEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            house_id=house_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
            description=description,
            details=details or {},
            is_user_action=True,
        )
