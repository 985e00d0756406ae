"""
Two-Stage Form Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Required field presence
- Format validation (emails, positive amounts)
- This catches blank or malformed input

STAGE 2 - SEMANTIC VALIDATION:
- Consistency checks (bill period order, payer vs recipient)
- Split checks (amounts and percentages add up, assignee is a member)
- Suspicious values (due date in the past, payment dated in the future)
- Duplicate pending invites (needs storage)

Stage 2 only runs when stage 1 passes.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them back to the form.
"""

import re
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

from houseshare.config import get_settings
from houseshare.config.settings import AppSettings
from houseshare.ledger.splitting import HUNDRED, to_cents
from houseshare.models.forms import (
    CategoryForm,
    ChargeForm,
    HouseForm,
    PaymentForm,
    UtilityChoice,
    ValidationIssue,
    ValidationResult,
)
from houseshare.models.household import SplitMethod
from houseshare.services.storage import HouseStorageInterface


EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

REQUIRED_FIELDS_MESSAGE = "Please fill in all required fields"


class FormValidationError(ValueError):
    """A submitted form failed validation."""

    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__(result.first_error or f"{result.form} form is invalid")


def _error(field: str, issue_type: str, message: str, fix: Optional[str] = None) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type=issue_type,
        message=message,
        severity="error",
        suggested_fix=fix,
    )


def _warning(field: str, issue_type: str, message: str, fix: Optional[str] = None) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type=issue_type,
        message=message,
        severity="warning",
        suggested_fix=fix,
    )


def _has_errors(issues: list[ValidationIssue]) -> bool:
    return any(issue.severity == "error" for issue in issues)


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email.strip()))


class FormValidator:
    """
    Validates submitted forms through a two-stage pipeline.

    Stage 1: Schema validation (no storage needed)
    Stage 2: Semantic validation (storage only for duplicate invites)
    """

    def __init__(
        self,
        storage: Optional[HouseStorageInterface] = None,
        settings: Optional[AppSettings] = None,
    ):
        """
        Initialize validator.

        Args:
            storage: Storage interface for duplicate invite checks.
                     If None, those checks are skipped.
            settings: App settings, loaded from the environment if omitted
        """
        self._storage = storage
        self._settings = settings or get_settings().app

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    def validate_sign_up(
        self,
        email: str,
        password: str,
        first_name: str = "",
        last_name: str = "",
    ) -> ValidationResult:
        issues = []

        if not email.strip():
            issues.append(_error("email", "missing", "Please enter an email address"))
        elif not is_valid_email(email):
            issues.append(_error("email", "invalid_format", "Please enter a valid email address"))

        issues.extend(self.validate_password(password).issues)

        if not first_name.strip() and not last_name.strip():
            issues.append(_warning(
                "name",
                "missing",
                "No name given",
                "Your email will be shown to roommates instead",
            ))

        return ValidationResult(form="sign_up", issues=issues)

    def validate_password(self, password: str) -> ValidationResult:
        minimum = self._settings.min_password_length
        issues = []
        if len(password) < minimum:
            issues.append(_error(
                "password",
                "too_short",
                f"Password must be at least {minimum} characters",
            ))
        return ValidationResult(form="password", issues=issues)

    # -------------------------------------------------------------------------
    # Houses and onboarding
    # -------------------------------------------------------------------------

    def validate_house(self, form: HouseForm) -> ValidationResult:
        issues = []

        if not form.name:
            issues.append(_error("name", "missing", "Please enter a house nickname"))
        elif len(form.name) > 100:
            issues.append(_error(
                "name",
                "too_long",
                "House nickname must be 100 characters or fewer",
            ))

        if form.timezone not in self._settings.timezones_list:
            issues.append(_warning(
                "timezone",
                "unknown_value",
                f"Timezone {form.timezone} is not in the supported list",
                "Pick one of the listed timezones",
            ))

        return ValidationResult(form="house", issues=issues)

    def validate_utilities(self, utilities: Iterable[UtilityChoice]) -> ValidationResult:
        issues = []
        selected = [u for u in utilities if u.selected]

        if not selected:
            issues.append(_error("utilities", "missing", "Please select at least one utility"))

        for utility in selected:
            if not utility.name:
                issues.append(_error(
                    f"utilities.{utility.key}",
                    "missing",
                    "Every selected utility needs a name",
                ))

        return ValidationResult(form="utilities", issues=issues)

    def validate_roommate_emails(self, emails: Iterable[str]) -> ValidationResult:
        issues = []
        seen: set[str] = set()

        for email in emails:
            email = email.strip()
            if not email:
                continue
            if not is_valid_email(email):
                issues.append(_error(
                    "roommate_emails",
                    "invalid_format",
                    f"{email} is not a valid email address",
                ))
            elif email.lower() in seen:
                issues.append(_warning(
                    "roommate_emails",
                    "duplicate",
                    f"{email} is listed more than once",
                    "Only one invite will be sent",
                ))
            seen.add(email.lower())

        return ValidationResult(form="roommates", issues=issues)

    def validate_onboarding(
        self,
        house: HouseForm,
        utilities: Iterable[UtilityChoice],
        roommate_emails: Iterable[str] = (),
    ) -> ValidationResult:
        """Validate every onboarding step at once."""
        issues = []
        issues.extend(self.validate_house(house).issues)
        issues.extend(self.validate_utilities(utilities).issues)
        issues.extend(self.validate_roommate_emails(roommate_emails).issues)
        return ValidationResult(form="onboarding", issues=issues)

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    def validate_category(self, form: CategoryForm) -> ValidationResult:
        issues = []

        if not form.name:
            issues.append(_error("name", "missing", "Please enter a category name"))
        elif len(form.name) > 100:
            issues.append(_error(
                "name",
                "too_long",
                "Category name must be 100 characters or fewer",
            ))

        if form.provider_label and len(form.provider_label) > 200:
            issues.append(_error(
                "provider_label",
                "too_long",
                "Provider must be 200 characters or fewer",
            ))

        return ValidationResult(form="category", issues=issues)

    # -------------------------------------------------------------------------
    # Charges
    # -------------------------------------------------------------------------

    def _validate_charge_schema(self, form: ChargeForm) -> list[ValidationIssue]:
        issues = []

        for field, value in (
            ("category_id", form.category_id),
            ("description", form.description),
            ("total_amount", form.total_amount),
            ("due_date", form.due_date),
        ):
            if not value:
                issues.append(_error(field, "missing", REQUIRED_FIELDS_MESSAGE))

        if form.total_amount is not None and form.total_amount < 0:
            issues.append(_error(
                "total_amount",
                "invalid_value",
                "Total amount cannot be negative",
            ))

        if len(form.description) > 200:
            issues.append(_error(
                "description",
                "too_long",
                "Description must be 200 characters or fewer",
            ))

        return issues

    def _validate_charge_semantic(
        self,
        form: ChargeForm,
        member_ids: Optional[set[UUID]],
    ) -> list[ValidationIssue]:
        issues = []

        if (
            form.bill_period_start
            and form.bill_period_end
            and form.bill_period_end < form.bill_period_start
        ):
            issues.append(_error(
                "bill_period_end",
                "inconsistent",
                "Bill period end cannot be before start",
                "Please verify the billing period",
            ))

        if form.due_date and form.due_date < date.today():
            issues.append(_warning(
                "due_date",
                "past_date",
                f"Due date ({form.due_date}) is in the past",
                "Please verify the date is correct",
            ))

        total = to_cents(form.total_amount)

        if form.split_method == SplitMethod.CUSTOM_FIXED and not form.use_rent_configuration:
            if not form.custom_amounts:
                issues.append(_error(
                    "custom_amounts",
                    "missing",
                    "Enter an amount for each member",
                ))
            else:
                assigned = sum(
                    (to_cents(amount) for amount in form.custom_amounts.values()),
                    Decimal("0"),
                )
                if assigned != total:
                    issues.append(_error(
                        "custom_amounts",
                        "inconsistent",
                        f"Share amounts add up to ${assigned} but the charge total is ${total}",
                    ))
                if any(amount < 0 for amount in form.custom_amounts.values()):
                    issues.append(_error(
                        "custom_amounts",
                        "invalid_value",
                        "Share amounts cannot be negative",
                    ))

        if form.split_method == SplitMethod.CUSTOM_PERCENTAGE:
            percent_sum = sum(form.percentages.values(), Decimal("0"))
            if not form.percentages:
                issues.append(_error(
                    "percentages",
                    "missing",
                    "Enter a percentage for each member",
                ))
            elif percent_sum != HUNDRED:
                issues.append(_error(
                    "percentages",
                    "inconsistent",
                    f"Percentages add up to {percent_sum}%, not 100%",
                ))

        if form.split_method == SplitMethod.ONE_PERSON and form.assignee_id is None:
            issues.append(_error("assignee_id", "missing", "Choose who pays this charge"))

        if member_ids is not None:
            named = set(form.custom_amounts) | set(form.percentages)
            if form.split_method == SplitMethod.ONE_PERSON and form.assignee_id:
                named.add(form.assignee_id)
            if named - member_ids:
                issues.append(_error(
                    "split",
                    "unknown_member",
                    "The split names someone who is not a member of this house",
                ))

        return issues

    def validate_charge(
        self,
        form: ChargeForm,
        member_ids: Optional[Iterable[UUID]] = None,
    ) -> ValidationResult:
        """
        Validate the add charge form.

        Args:
            form: The submitted form
            member_ids: Current house members; when given, split targets
                        must be among them
        """
        issues = self._validate_charge_schema(form)
        if not _has_errors(issues):
            members = set(member_ids) if member_ids is not None else None
            issues.extend(self._validate_charge_semantic(form, members))
        return ValidationResult(form="charge", issues=issues)

    # -------------------------------------------------------------------------
    # Payments
    # -------------------------------------------------------------------------

    def validate_payment(self, form: PaymentForm) -> ValidationResult:
        issues = []

        for field, value in (
            ("payer_id", form.payer_id),
            ("amount", form.amount),
            ("payment_date", form.payment_date),
        ):
            if not value:
                issues.append(_error(field, "missing", REQUIRED_FIELDS_MESSAGE))

        if form.amount is not None and form.amount < 0:
            issues.append(_error("amount", "invalid_value", "Amount cannot be negative"))

        if not _has_errors(issues):
            if form.recipient_id is not None and form.recipient_id == form.payer_id:
                issues.append(_error(
                    "recipient_id",
                    "inconsistent",
                    "Payer and recipient cannot be the same person",
                ))

            if form.payment_date > date.today():
                issues.append(_warning(
                    "payment_date",
                    "future_date",
                    f"Payment date ({form.payment_date}) is in the future",
                    "Please verify the date is correct",
                ))

        return ValidationResult(form="payment", issues=issues)

    # -------------------------------------------------------------------------
    # Invites
    # -------------------------------------------------------------------------

    async def validate_invite(self, house_id: UUID, email: str) -> ValidationResult:
        """
        Validate an invite email, and that no pending invite exists for it.

        A storage failure during the duplicate check propagates; the
        invite is not sent blind.
        """
        issues = []
        email = email.strip()

        if not email:
            issues.append(_error("email", "missing", "Please enter an email address"))
        elif not is_valid_email(email):
            issues.append(_error("email", "invalid_format", "Please enter a valid email address"))

        if not _has_errors(issues) and self._storage is not None:
            existing = await self._storage.find_pending_invite(house_id, email)
            if existing is not None:
                issues.append(_error(
                    "email",
                    "duplicate",
                    "An invite has already been sent to this email",
                ))

        return ValidationResult(form="invite", issues=issues)

    # -------------------------------------------------------------------------
    # Presentation
    # -------------------------------------------------------------------------

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what the forms show above the submit button.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed!"

        lines = []

        if result.has_errors:
            lines.append("❌ Please fix the following:")
            seen = set()
            for issue in result.issues:
                if issue.severity == "error" and issue.message not in seen:
                    seen.add(issue.message)
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)


def require_valid(result: ValidationResult) -> ValidationResult:
    """Raise FormValidationError unless the result has no errors."""
    if not result.is_valid:
        raise FormValidationError(result)
    return result
