"""
Shared plumbing for the workflow classes.

Every flow takes its services through the constructor so tests can pass
the in-memory implementations. The audit logger is optional; when it is
missing the flow simply does not log.
"""

from typing import Optional
from uuid import UUID

from houseshare.audit import AuditLogger
from houseshare.config import get_settings
from houseshare.config.settings import AppSettings
from houseshare.models.forms import ValidationResult
from houseshare.services.storage import HouseStorageInterface, StorageError
from houseshare.validation import FormValidationError, FormValidator


class BaseFlow:
    """Holds the injected services and the failure logging helpers."""

    def __init__(
        self,
        storage: HouseStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[FormValidator] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().app
        self._validator = validator or FormValidator(storage, self._settings)

    async def _require_valid(
        self,
        result: ValidationResult,
        house_id: Optional[UUID] = None,
    ) -> ValidationResult:
        """Raise FormValidationError (after auditing it) unless the form is valid."""
        if result.is_valid:
            return result

        if self._audit_logger:
            await self._audit_logger.log_form_rejected(
                form=result.form,
                issues=[issue.model_dump() for issue in result.issues],
                house_id=house_id,
            )
        raise FormValidationError(result)

    async def _storage_failed(
        self,
        operation: str,
        error: StorageError,
        house_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_storage_error(
                operation=operation,
                error_message=str(error),
                house_id=house_id,
                correlation_id=correlation_id,
            )
