"""
Audit Logger

DESIGN DECISION: Every write a workflow makes is logged.
This provides:
1. Traceability of who changed what in a shared house
2. Debugging capability when a backend call fails
3. Correlation of the writes that belong to one user action

The audit logger:
- Logs structured JSON locally through structlog
- Never raises: a logging problem must not break a workflow
- Supports correlation IDs to trace related events
"""

import logging
from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from houseshare.models.audit import AuditEvent, AuditEventBuilder, AuditEventType, AuditSeverity


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structlog for local JSON logging at the given level."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, log_level.upper(), logging.INFO))
    logging.getLogger().setLevel(log_level.upper())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Events are rendered as JSON lines on the local log at the level
    matching their severity.
    """

    def __init__(self, logger: Optional[Any] = None):
        """
        Initialize audit logger.

        Args:
            logger: structlog-compatible logger. Defaults to the
                    ``houseshare.audit`` logger.
        """
        self._logger = logger or structlog.get_logger("houseshare.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if the event could not be written.
        """
        log_dict = event.to_log_dict()

        try:
            if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception:
            return False

        return True

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    async def log_user_signed_up(self, user_id: UUID, email: str) -> None:
        await self.log(AuditEventBuilder.user_signed_up(user_id=user_id, email=email))

    async def log_user_signed_in(self, user_id: UUID) -> None:
        await self.log(AuditEventBuilder.user_signed_in(user_id=user_id))

    async def log_user_signed_out(self, user_id: Optional[UUID]) -> None:
        await self.log(AuditEventBuilder.entity_event(
            event_type=AuditEventType.USER_SIGNED_OUT,
            entity_type="user",
            entity_id=user_id,
            actor_id=user_id,
            description="User signed out",
        ))

    async def log_profile_updated(self, user_id: UUID, fields: list[str]) -> None:
        await self.log(AuditEventBuilder.entity_event(
            event_type=AuditEventType.PROFILE_UPDATED,
            entity_type="user",
            entity_id=user_id,
            actor_id=user_id,
            description="Profile updated",
            details={"fields": fields},
        ))

    async def log_auth_failed(self, action: str, error_message: str) -> None:
        await self.log(AuditEventBuilder.auth_failed(action=action, error_message=error_message))

    # -------------------------------------------------------------------------
    # Houses and members
    # -------------------------------------------------------------------------

    async def log_house_created(
        self,
        house_id: UUID,
        name: str,
        actor_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.house_created(
            house_id=house_id,
            name=name,
            actor_id=actor_id,
            correlation_id=correlation_id,
        ))

    async def log_house_updated(self, house_id: UUID, fields: list[str]) -> None:
        await self.log(AuditEventBuilder.entity_event(
            event_type=AuditEventType.HOUSE_UPDATED,
            entity_type="house",
            entity_id=house_id,
            house_id=house_id,
            description="House details updated",
            details={"fields": fields},
        ))

    async def log_member_changed(
        self,
        event_type: AuditEventType,
        member_id: UUID,
        house_id: UUID,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.member_changed(
            event_type=event_type,
            member_id=member_id,
            house_id=house_id,
            details=details,
            correlation_id=correlation_id,
        ))

    # -------------------------------------------------------------------------
    # Categories and providers
    # -------------------------------------------------------------------------

    async def log_category_changed(
        self,
        event_type: AuditEventType,
        category_id: UUID,
        house_id: UUID,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.category_changed(
            event_type=event_type,
            category_id=category_id,
            house_id=house_id,
            name=name,
            correlation_id=correlation_id,
        ))

    async def log_provider_saved(
        self,
        provider_id: UUID,
        house_id: UUID,
        label: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.entity_event(
            event_type=AuditEventType.PROVIDER_SAVED,
            entity_type="provider",
            entity_id=provider_id,
            house_id=house_id,
            correlation_id=correlation_id,
            description=f"Provider saved: {label}",
            details={"label": label},
        ))

    async def log_provider_failed(
        self,
        category_id: UUID,
        house_id: UUID,
        label: str,
        error_message: str,
    ) -> None:
        await self.log(AuditEventBuilder.provider_failed(
            category_id=category_id,
            house_id=house_id,
            label=label,
            error_message=error_message,
        ))

    # -------------------------------------------------------------------------
    # Charges and payments
    # -------------------------------------------------------------------------

    async def log_charge_created(
        self,
        charge_id: UUID,
        house_id: UUID,
        description: str,
        amount: str,
        actor_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.charge_created(
            charge_id=charge_id,
            house_id=house_id,
            description=description,
            amount=amount,
            actor_id=actor_id,
            correlation_id=correlation_id,
        ))

    async def log_charge_shares_created(
        self,
        charge_id: UUID,
        house_id: UUID,
        split_method: str,
        share_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.charge_shares_created(
            charge_id=charge_id,
            house_id=house_id,
            split_method=split_method,
            share_count=share_count,
            correlation_id=correlation_id,
        ))

    async def log_rent_configuration_saved(
        self,
        config_id: UUID,
        house_id: UUID,
        user_id: UUID,
        amount: str,
    ) -> None:
        await self.log(AuditEventBuilder.entity_event(
            event_type=AuditEventType.RENT_CONFIGURATION_SAVED,
            entity_type="rent_configuration",
            entity_id=config_id,
            house_id=house_id,
            description=f"Rent configuration saved: ${amount}",
            details={"user_id": str(user_id), "amount": amount},
        ))

    async def log_payment_recorded(
        self,
        payment_id: UUID,
        house_id: UUID,
        payer_id: UUID,
        recipient_id: Optional[UUID],
        amount: str,
        actor_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.payment_recorded(
            payment_id=payment_id,
            house_id=house_id,
            payer_id=payer_id,
            recipient_id=recipient_id,
            amount=amount,
            actor_id=actor_id,
            correlation_id=correlation_id,
        ))

    async def log_payment_linked(
        self,
        payment_id: UUID,
        house_id: UUID,
        charge_ids: list[UUID],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.entity_event(
            event_type=AuditEventType.PAYMENT_LINKED,
            entity_type="payment",
            entity_id=payment_id,
            house_id=house_id,
            correlation_id=correlation_id,
            description=f"Payment linked to {len(charge_ids)} charges",
            details={"charge_ids": [str(c) for c in charge_ids]},
        ))

    # -------------------------------------------------------------------------
    # Invites
    # -------------------------------------------------------------------------

    async def log_invite_sent(
        self,
        invite_id: UUID,
        house_id: UUID,
        email: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.invite_sent(
            invite_id=invite_id,
            house_id=house_id,
            email=email,
            correlation_id=correlation_id,
        ))

    async def log_invite_cancelled(self, invite_id: UUID, house_id: UUID) -> None:
        await self.log(AuditEventBuilder.entity_event(
            event_type=AuditEventType.INVITE_CANCELLED,
            entity_type="invite",
            entity_id=invite_id,
            house_id=house_id,
            description="Invite cancelled",
        ))

    # -------------------------------------------------------------------------
    # Failures
    # -------------------------------------------------------------------------

    async def log_form_rejected(
        self,
        form: str,
        issues: list[dict],
        house_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.form_rejected(
            form=form,
            issues=issues,
            house_id=house_id,
        ))

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        house_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            house_id=house_id,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., completing onboarding).
    Pass it through all subsequent writes.
    """
    return uuid4()
