"""Tests for the two-stage form validator."""

import pytest
from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

from houseshare.models import (
    CategoryForm,
    ChargeForm,
    HouseForm,
    Invite,
    PaymentForm,
    SplitMethod,
    UtilityChoice,
    utcnow,
)
from houseshare.validation import FormValidationError, FormValidator, require_valid


@pytest.fixture
def validator(storage, settings):
    return FormValidator(storage, settings)


def _charge_form(**overrides):
    data = dict(
        category_id=uuid4(),
        description="Electricity",
        total_amount=Decimal("100.00"),
        due_date=date.today() + timedelta(days=7),
    )
    data.update(overrides)
    return ChargeForm(**data)


class TestAccountValidation:

    def test_valid_sign_up(self, validator):
        result = validator.validate_sign_up("alex@example.com", "secret1", "Alex", "")
        assert result.is_valid
        assert result.issues == []

    def test_short_password(self, validator):
        """Test that passwords shorter than six characters are rejected."""
        result = validator.validate_sign_up("alex@example.com", "abc", "Alex")
        assert result.first_error == "Password must be at least 6 characters"

    def test_bad_email(self, validator):
        result = validator.validate_sign_up("not-an-email", "secret1", "Alex")
        assert result.first_error == "Please enter a valid email address"

    def test_missing_name_is_only_a_warning(self, validator):
        result = validator.validate_sign_up("alex@example.com", "secret1")
        assert result.is_valid
        assert result.warnings == ["No name given"]


class TestOnboardingValidation:

    def test_house_name_required(self, validator):
        result = validator.validate_house(HouseForm(name="   "))
        assert result.first_error == "Please enter a house nickname"

    def test_unknown_timezone_warns(self, validator):
        result = validator.validate_house(HouseForm(name="Home", timezone="Europe/Oslo"))
        assert result.is_valid
        assert len(result.warnings) == 1

    def test_at_least_one_utility(self, validator):
        utilities = [UtilityChoice(key="rent", name="Rent")]
        result = validator.validate_utilities(utilities)
        assert result.first_error == "Please select at least one utility"

        utilities[0].selected = True
        assert validator.validate_utilities(utilities).is_valid

    def test_roommate_emails(self, validator):
        result = validator.validate_roommate_emails(
            ["sam@example.com", "", "SAM@example.com", "bad"]
        )
        assert result.error_count == 1
        assert result.warnings == ["SAM@example.com is listed more than once"]

    def test_onboarding_collects_every_step(self, validator):
        result = validator.validate_onboarding(HouseForm(), [], ["bad"])
        assert result.form == "onboarding"
        assert result.error_count == 3


class TestChargeValidation:
    """Tests for the add charge form."""

    def test_valid_equal_charge(self, validator):
        result = validator.validate_charge(_charge_form())
        assert result.is_valid
        assert result.warnings == []

    def test_required_fields(self, validator):
        """Test that blanks produce the required fields message."""
        result = validator.validate_charge(ChargeForm())
        assert result.error_count == 4
        assert result.first_error == "Please fill in all required fields"

    def test_semantic_checks_skipped_when_schema_fails(self, validator):
        form = _charge_form(
            description="",
            bill_period_start=date(2025, 3, 31),
            bill_period_end=date(2025, 3, 1),
        )
        result = validator.validate_charge(form)
        assert [i.field for i in result.issues] == ["description"]

    def test_bill_period_order(self, validator):
        form = _charge_form(
            bill_period_start=date(2025, 3, 31),
            bill_period_end=date(2025, 3, 1),
        )
        result = validator.validate_charge(form)
        assert result.first_error == "Bill period end cannot be before start"

    def test_past_due_date_warns(self, validator):
        result = validator.validate_charge(_charge_form(due_date=date(2020, 1, 1)))
        assert result.is_valid
        assert "in the past" in result.warnings[0]

    def test_fixed_amounts_must_match_total(self, validator):
        a, b = uuid4(), uuid4()
        form = _charge_form(
            split_method=SplitMethod.CUSTOM_FIXED,
            custom_amounts={a: Decimal("60"), b: Decimal("30")},
        )
        result = validator.validate_charge(form)
        assert "add up to $90.00" in result.first_error

    def test_percentages_must_total_100(self, validator):
        form = _charge_form(
            split_method=SplitMethod.CUSTOM_PERCENTAGE,
            percentages={uuid4(): Decimal("50"), uuid4(): Decimal("50")},
        )
        assert validator.validate_charge(form).is_valid

        form.percentages = {uuid4(): Decimal("70")}
        assert validator.validate_charge(form).first_error == "Percentages add up to 70%, not 100%"

    def test_one_person_needs_assignee(self, validator):
        form = _charge_form(split_method=SplitMethod.ONE_PERSON)
        assert validator.validate_charge(form).first_error == "Choose who pays this charge"

    def test_split_targets_must_be_members(self, validator):
        member, stranger = uuid4(), uuid4()
        form = _charge_form(split_method=SplitMethod.ONE_PERSON, assignee_id=stranger)
        result = validator.validate_charge(form, member_ids=[member])
        assert result.issues[0].issue_type == "unknown_member"

        form.assignee_id = member
        assert validator.validate_charge(form, member_ids=[member]).is_valid


class TestPaymentValidation:

    def test_required_fields(self, validator):
        result = validator.validate_payment(PaymentForm())
        assert result.error_count == 3

    def test_payer_is_not_recipient(self, validator):
        person = uuid4()
        form = PaymentForm(
            payer_id=person,
            recipient_id=person,
            amount=Decimal("25"),
            payment_date=date.today(),
        )
        result = validator.validate_payment(form)
        assert result.first_error == "Payer and recipient cannot be the same person"

    def test_future_date_warns(self, validator):
        form = PaymentForm(
            payer_id=uuid4(),
            amount=Decimal("25"),
            payment_date=date.today() + timedelta(days=3),
        )
        result = validator.validate_payment(form)
        assert result.is_valid
        assert len(result.warnings) == 1


class TestCategoryAndInviteValidation:

    def test_category_name_required(self, validator):
        result = validator.validate_category(CategoryForm(name=" "))
        assert result.first_error == "Please enter a category name"

    @pytest.mark.asyncio
    async def test_invite_email_checks(self, validator):
        house_id = uuid4()
        result = await validator.validate_invite(house_id, "")
        assert result.first_error == "Please enter an email address"

        result = await validator.validate_invite(house_id, "sam@")
        assert result.first_error == "Please enter a valid email address"

    @pytest.mark.asyncio
    async def test_duplicate_pending_invite(self, validator, storage):
        """Test that a second invite to the same email is rejected."""
        house_id = uuid4()
        await storage.create_invite(Invite(
            house_id=house_id,
            email="sam@example.com",
            expires_at=utcnow() + timedelta(days=7),
        ))

        result = await validator.validate_invite(house_id, "sam@example.com")
        assert result.first_error == "An invite has already been sent to this email"

        other_house = await validator.validate_invite(uuid4(), "sam@example.com")
        assert other_house.is_valid


class TestSummary:

    def test_require_valid_raises(self, validator):
        result = validator.validate_category(CategoryForm())
        with pytest.raises(FormValidationError) as excinfo:
            require_valid(result)
        assert excinfo.value.result is result
        assert str(excinfo.value) == "Please enter a category name"

    def test_user_friendly_summary(self, validator):
        result = validator.validate_charge(ChargeForm())
        summary = validator.get_user_friendly_summary(result)
        assert summary.startswith("❌ Please fix the following:")
        # Four missing fields, one message
        assert summary.count("Please fill in all required fields") == 1

    def test_summary_all_passed(self, validator):
        result = validator.validate_category(CategoryForm(name="Water"))
        assert validator.get_user_friendly_summary(result) == "✅ All checks passed!"
