"""
First-run setup of a house.

One submission creates the house, the creator's admin membership, a
category per selected utility (with its provider) and a pending invite
per roommate email. Writes are issued one after another; there is no
rollback if a later write fails.
"""

from datetime import timedelta
from typing import Iterable, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from houseshare.audit import create_correlation_id
from houseshare.flows.base import BaseFlow
from houseshare.models.audit import AuditEventType
from houseshare.models.forms import HouseForm, UserAccount, UtilityChoice
from houseshare.models.household import (
    Category,
    House,
    HouseMember,
    Invite,
    MemberRole,
    Provider,
    utcnow,
)
from houseshare.services.storage import StorageError


UTILITY_OPTIONS: tuple[tuple[str, str], ...] = (
    ("rent", "Rent"),
    ("electricity", "Electricity"),
    ("water", "Water & Sewage"),
    ("trash", "Trash"),
    ("wifi", "WiFi"),
    ("other", "Custom"),
)


class OnboardingResult(BaseModel):
    """Everything created by a completed onboarding."""

    house: House
    membership: HouseMember
    categories: list[Category] = Field(default_factory=list)
    providers: list[Provider] = Field(default_factory=list)
    invites: list[Invite] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class OnboardingFlow(BaseFlow):
    """
    Orchestrates onboarding.

    Flow:
    1. Validate → house name, at least one utility, roommate emails
    2. House → insert, then add the creator as admin
    3. Categories → one per selected utility, plus provider when labelled
    4. Invites → one pending invite per non-blank email

    Provider and invite failures do not stop onboarding; they come back
    as warnings.
    """

    @staticmethod
    def default_utilities() -> list[UtilityChoice]:
        """The utilities offered on the utilities step, none selected."""
        return [UtilityChoice(key=key, name=name) for key, name in UTILITY_OPTIONS]

    def default_house_form(self) -> HouseForm:
        return HouseForm(timezone=self._settings.default_timezone)

    async def complete(
        self,
        user: UserAccount,
        house_form: HouseForm,
        utilities: Iterable[UtilityChoice],
        roommate_emails: Iterable[str] = (),
        can_see_others_balances: bool = True,
    ) -> OnboardingResult:
        """
        Create the house and everything chosen during onboarding.

        Raises:
            FormValidationError: Missing house name or no utility selected
            StorageError: The house, membership or a category could not be created
        """
        utilities = list(utilities)
        roommate_emails = list(roommate_emails)
        correlation_id = create_correlation_id()

        await self._require_valid(
            self._validator.validate_onboarding(house_form, utilities, roommate_emails)
        )

        house = House(
            name=house_form.name,
            address=house_form.address or None,
            timezone=house_form.timezone or self._settings.default_timezone,
            created_by=user.id,
        )
        try:
            house = await self._storage.create_house(house)
        except StorageError as e:
            await self._storage_failed("create house", e, correlation_id=correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_house_created(
                house_id=house.id,
                name=house.name,
                actor_id=user.id,
                correlation_id=correlation_id,
            )

        membership = HouseMember(
            house_id=house.id,
            user_id=user.id,
            role=MemberRole.ADMIN,
            can_see_others_balances=can_see_others_balances,
        )
        try:
            membership = await self._storage.add_member(membership)
        except StorageError as e:
            await self._storage_failed("add house member", e, house.id, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_member_changed(
                event_type=AuditEventType.MEMBER_ADDED,
                member_id=membership.id,
                house_id=house.id,
                details={"role": MemberRole.ADMIN.value},
                correlation_id=correlation_id,
            )

        result = OnboardingResult(house=house, membership=membership)

        for utility in utilities:
            if not utility.selected:
                continue
            category, provider, warning = await self._create_utility(
                house.id, utility, correlation_id
            )
            result.categories.append(category)
            if provider:
                result.providers.append(provider)
            if warning:
                result.warnings.append(warning)

        seen: set[str] = set()
        for email in roommate_emails:
            email = email.strip()
            if not email or email.lower() in seen:
                continue
            seen.add(email.lower())
            invite, warning = await self._create_invite(house.id, email, correlation_id)
            if invite:
                result.invites.append(invite)
            if warning:
                result.warnings.append(warning)

        return result

    async def _create_utility(
        self,
        house_id: UUID,
        utility: UtilityChoice,
        correlation_id: UUID,
    ) -> tuple[Category, Optional[Provider], Optional[str]]:
        category = Category(
            house_id=house_id,
            name=utility.name,
            type=utility.category_type,
            billing_type=utility.billing_type,
            recurrence=utility.recurrence if utility.is_recurring else None,
            is_free=utility.is_free,
        )
        try:
            category = await self._storage.create_category(category)
        except StorageError as e:
            await self._storage_failed("create category", e, house_id, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_category_changed(
                event_type=AuditEventType.CATEGORY_CREATED,
                category_id=category.id,
                house_id=house_id,
                name=category.name,
                correlation_id=correlation_id,
            )

        if not utility.provider:
            return category, None, None

        try:
            provider = await self._storage.create_provider(Provider(
                house_id=house_id,
                category_id=category.id,
                label=utility.provider,
            ))
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_provider_failed(
                    category_id=category.id,
                    house_id=house_id,
                    label=utility.provider,
                    error_message=str(e),
                )
            return category, None, f"{category.name} was created but its provider could not be saved: {e}"

        if self._audit_logger:
            await self._audit_logger.log_provider_saved(
                provider_id=provider.id,
                house_id=house_id,
                label=provider.label,
                correlation_id=correlation_id,
            )
        return category, provider, None

    async def _create_invite(
        self,
        house_id: UUID,
        email: str,
        correlation_id: UUID,
    ) -> tuple[Optional[Invite], Optional[str]]:
        invite = Invite(
            house_id=house_id,
            email=email,
            expires_at=utcnow() + timedelta(days=self._settings.invite_expiry_days),
        )
        try:
            invite = await self._storage.create_invite(invite)
        except StorageError as e:
            await self._storage_failed("create invite", e, house_id, correlation_id)
            return None, f"Invite for {email} could not be created: {e}"

        if self._audit_logger:
            await self._audit_logger.log_invite_sent(
                invite_id=invite.id,
                house_id=house_id,
                email=email,
                correlation_id=correlation_id,
            )
        return invite, None
