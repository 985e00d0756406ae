"""
Tests for houseshare

Test strategy:
1. Unit tests for individual components (models, splitting, validators)
2. Integration tests for flows (against in-memory storage and auth)
3. No real backend calls in tests (fake clients only)
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

from houseshare.models import (
    ALL_TABLES,
    Category,
    Charge,
    ChargeShare,
    House,
    HouseMember,
    Invite,
    InviteStatus,
    MemberRole,
    Payment,
    Recurrence,
    SplitMethod,
    UserAccount,
    UtilityChoice,
    ValidationIssue,
    ValidationResult,
    CategoryType,
    utcnow,
)
from houseshare.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestHouseModels:
    """Tests for house and membership rows."""

    def test_house_defaults(self):
        """Test House defaults to the Pacific timezone."""
        house = House(name="  Berkeley Ave  ", created_by=uuid4())
        assert house.name == "Berkeley Ave"
        assert house.timezone == "America/Los_Angeles"
        assert house.address is None

    def test_house_rejects_blank_name(self):
        """Test that an empty house name is rejected."""
        with pytest.raises(ValueError):
            House(name="", created_by=uuid4())

    def test_house_rejects_long_name(self):
        with pytest.raises(ValueError):
            House(name="x" * 101, created_by=uuid4())

    def test_member_defaults(self):
        """Test HouseMember defaults to a member who may see balances."""
        member = HouseMember(house_id=uuid4(), user_id=uuid4())
        assert member.role == MemberRole.MEMBER
        assert member.can_see_others_balances is True
        assert not member.is_admin

    def test_admin_member(self):
        member = HouseMember(house_id=uuid4(), user_id=uuid4(), role="admin")
        assert member.is_admin


class TestChargeModels:
    """Tests for charges, shares and payments."""

    def _charge(self, **overrides):
        data = dict(
            house_id=uuid4(),
            category_id=uuid4(),
            created_by=uuid4(),
            description="PG&E March",
            total_amount=Decimal("120.00"),
            due_date=date(2025, 4, 1),
        )
        data.update(overrides)
        return Charge(**data)

    def test_charge_defaults_to_equal_split(self):
        charge = self._charge()
        assert charge.split_method == SplitMethod.EQUAL
        assert charge.charge_shares == []

    def test_charge_billing_period_validation(self):
        """Test that the bill period must not end before it starts."""
        with pytest.raises(ValueError, match="Bill period end cannot be before start"):
            self._charge(
                bill_period_start=date(2025, 3, 31),
                bill_period_end=date(2025, 3, 1),
            )

    def test_charge_rejects_negative_total(self):
        with pytest.raises(ValueError):
            self._charge(total_amount=Decimal("-1"))

    def test_charge_parses_embedded_relations(self):
        """Test a row as returned with category and shares embedded."""
        user_id = uuid4()
        house_id = uuid4()
        category_id = uuid4()
        charge_id = uuid4()
        row = {
            "id": str(charge_id),
            "house_id": str(house_id),
            "category_id": str(category_id),
            "created_by": str(user_id),
            "description": "Water",
            "total_amount": 60.5,
            "due_date": "2025-04-01",
            "split_method": "equal",
            "created_at": "2025-03-20T10:00:00+00:00",
            "category": {"id": str(category_id), "house_id": str(house_id), "name": "Water"},
            "charge_shares": [
                {"charge_id": str(charge_id), "user_id": str(user_id), "amount": 30.25},
            ],
            "some_new_column": "ignored",
        }
        charge = Charge.model_validate(row)
        assert charge.total_amount == Decimal("60.5")
        assert charge.category.name == "Water"
        assert charge.share_for(user_id).amount == Decimal("30.25")
        assert charge.share_for(uuid4()) is None

    def test_charge_record_excludes_relations(self):
        """Test that embedded relations are never written back."""
        charge = self._charge()
        record = charge.to_record()
        assert "category" not in record
        assert "charge_shares" not in record
        assert record["total_amount"] == "120.00"
        assert record["due_date"] == "2025-04-01"
        assert record["split_method"] == "equal"

    def test_share_percentage_bounds(self):
        with pytest.raises(ValueError):
            ChargeShare(
                charge_id=uuid4(),
                user_id=uuid4(),
                amount=Decimal("10"),
                percentage=Decimal("101"),
            )

    def test_payment_rejects_same_payer_and_recipient(self):
        person = uuid4()
        with pytest.raises(ValueError, match="Payer and recipient cannot be the same person"):
            Payment(
                house_id=uuid4(),
                created_by=person,
                payer_id=person,
                recipient_id=person,
                date=date(2025, 4, 1),
                amount=Decimal("50"),
            )

    def test_payment_to_outside_provider(self):
        payment = Payment(
            house_id=uuid4(),
            created_by=uuid4(),
            payer_id=uuid4(),
            date=date(2025, 4, 1),
            amount=Decimal("50"),
        )
        assert payment.recipient_id is None


class TestCategoryAndInviteModels:

    def test_category_without_recurrence_is_one_off(self):
        category = Category(house_id=uuid4(), name="Furniture")
        assert not category.is_recurring
        category = Category(house_id=uuid4(), name="Rent", recurrence=Recurrence.MONTHLY)
        assert category.is_recurring

    def test_invite_defaults(self):
        """Test that an invite is pending and has a UUID token."""
        invite = Invite(house_id=uuid4(), email="sam@example.com", expires_at=utcnow() + timedelta(days=3))
        assert invite.status == InviteStatus.PENDING
        assert len(invite.token) == 36
        assert not invite.is_expired()

    def test_invite_requires_expiry(self):
        with pytest.raises(ValueError):
            Invite(house_id=uuid4(), email="sam@example.com")

    def test_invite_expiry(self):
        invite = Invite(house_id=uuid4(), email="sam@example.com", expires_at=utcnow() + timedelta(days=7))
        assert invite.is_expired(now=invite.expires_at + timedelta(seconds=1))
        cancelled = invite.model_copy(update={"status": InviteStatus.EXPIRED})
        assert cancelled.is_expired()

    def test_all_tables_listed(self):
        assert len(ALL_TABLES) == 10
        assert "charge_shares" in ALL_TABLES
        assert "rent_configurations" in ALL_TABLES


class TestAccountModels:

    def test_display_name_prefers_first_name(self):
        user = UserAccount(id=uuid4(), email="alex@example.com", first_name="Alex")
        assert user.display_name == "Alex"

    def test_display_name_falls_back_to_email(self):
        user = UserAccount(id=uuid4(), email="alex@example.com")
        assert user.display_name == "alex"
        assert UserAccount(id=uuid4()).display_name == "You"

    def test_profile_names_split_full_name(self):
        user = UserAccount(id=uuid4(), email="a@b.co", name="Mary Ann Smith")
        assert user.profile_names() == ("Mary", "Ann Smith")

    def test_utility_choice_category_type(self):
        assert UtilityChoice(key="rent", name="Rent").category_type == CategoryType.RENT
        assert UtilityChoice(key="wifi", name="WiFi").category_type == CategoryType.UTILITY


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent creation."""
        event = AuditEvent(
            event_type=AuditEventType.HOUSE_CREATED,
            description="House created",
        )
        assert event.event_type == AuditEventType.HOUSE_CREATED
        assert event.severity == AuditSeverity.INFO
        assert event.event_id is not None

    def test_audit_event_to_log_dict(self):
        """Test AuditEvent conversion to log dict."""
        house_id = uuid4()
        event = AuditEvent(
            event_type=AuditEventType.CHARGE_CREATED,
            house_id=house_id,
            description="Charge created",
            details={"amount": "100.00"},
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "charge_created"
        assert log_dict["house_id"] == str(house_id)
        assert log_dict["details"] == {"amount": "100.00"}

    def test_audit_event_builder_charge_created(self):
        """Test AuditEventBuilder for charge creation."""
        charge_id = uuid4()
        event = AuditEventBuilder.charge_created(
            charge_id=charge_id,
            house_id=uuid4(),
            description="Rent",
            amount="1800.00",
            actor_id=uuid4(),
        )
        assert event.event_type == AuditEventType.CHARGE_CREATED
        assert event.entity_id == charge_id
        assert event.is_user_action is True
        assert "1800.00" in event.description

    def test_audit_event_builder_provider_failed(self):
        event = AuditEventBuilder.provider_failed(
            category_id=uuid4(),
            house_id=uuid4(),
            label="PG&E",
            error_message="permission denied",
        )
        assert event.severity == AuditSeverity.WARNING
        assert event.error_message == "permission denied"


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test ValidationResult with errors."""
        result = ValidationResult(
            form="charge",
            issues=[
                ValidationIssue(
                    field="description",
                    issue_type="missing",
                    message="Please fill in all required fields",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors
        assert not result.is_valid
        assert result.error_count == 1
        assert result.first_error == "Please fill in all required fields"

    def test_validation_result_warnings_only(self):
        """Test ValidationResult with only warnings."""
        result = ValidationResult(
            form="charge",
            issues=[
                ValidationIssue(
                    field="due_date",
                    issue_type="past_date",
                    message="Due date is in the past",
                    severity="warning",
                ),
            ],
        )
        assert result.is_valid
        assert result.warnings == ["Due date is in the past"]
        assert result.first_error is None

    def test_validation_issue_severity_pattern(self):
        with pytest.raises(ValueError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")
