"""Validation Package"""

from houseshare.validation.validator import (
    EMAIL_PATTERN,
    FormValidationError,
    FormValidator,
    is_valid_email,
    require_valid,
)

__all__ = [
    "EMAIL_PATTERN",
    "FormValidationError",
    "FormValidator",
    "is_valid_email",
    "require_valid",
]
