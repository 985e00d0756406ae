"""
Charges and how they are split.

A charge is stored as one ``charges`` row followed by one
``charge_shares`` row per member. The two inserts are separate calls;
if the shares insert fails the charge row remains.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from houseshare.audit import create_correlation_id
from houseshare.flows.base import BaseFlow
from houseshare.ledger.splitting import (
    ShareAllocation,
    SplitError,
    assign_to_one,
    shares_from_rent_configuration,
    split_by_percentage,
    split_equally,
    split_fixed,
    to_charge_shares,
)
from houseshare.models.forms import ChargeForm, UserAccount
from houseshare.models.household import (
    Charge,
    ChargeShare,
    House,
    RentConfiguration,
    SplitMethod,
)
from houseshare.services.storage import StorageError


class ChargeResult(BaseModel):
    """A created charge and the shares inserted for it."""

    charge: Charge
    shares: list[ChargeShare] = Field(default_factory=list)


class ChargeFlow(BaseFlow):
    """
    Orchestrates charge creation.

    Flow:
    1. Validate → required fields, bill period, split consistency
    2. Members → load the house's members
    3. Split → compute one allocation per member
    4. Rows → build the charge and share rows; nothing is written on failure
    5. Charge → insert the charge row
    6. Shares → insert the share rows in one call
    """

    def default_due_date(self, today: Optional[date] = None) -> date:
        """Due date preselected in the add charge form."""
        return (today or date.today()) + timedelta(days=self._settings.default_due_in_days)

    async def list_charges(self, house: House) -> list[Charge]:
        try:
            return await self._storage.list_charges(house.id)
        except StorageError as e:
            await self._storage_failed("list charges", e, house.id)
            raise

    async def _allocate(
        self,
        user: UserAccount,
        house: House,
        form: ChargeForm,
        member_ids: list[UUID],
    ) -> tuple[SplitMethod, list[ShareAllocation]]:
        total = form.total_amount

        if form.use_rent_configuration:
            configs = await self.list_rent_configurations(house, form.category_id)
            return SplitMethod.CUSTOM_FIXED, shares_from_rent_configuration(total, configs)

        if form.split_method == SplitMethod.CUSTOM_FIXED:
            return form.split_method, split_fixed(total, form.custom_amounts)
        if form.split_method == SplitMethod.CUSTOM_PERCENTAGE:
            return form.split_method, split_by_percentage(total, form.percentages)
        if form.split_method == SplitMethod.ONE_PERSON:
            return form.split_method, assign_to_one(total, form.assignee_id)

        # No member rows: the creator carries the whole charge rather than
        # leaving it with no shares at all
        return SplitMethod.EQUAL, split_equally(total, member_ids or [user.id])

    async def add_charge(
        self,
        user: UserAccount,
        house: House,
        form: ChargeForm,
    ) -> ChargeResult:
        """
        Create a charge and its shares.

        Raises:
            FormValidationError: Missing fields or an inconsistent split
            SplitError: Rent configuration missing or not matching the total,
                or a share would be negative
            StorageError: An insert failed
        """
        correlation_id = create_correlation_id()

        try:
            members = await self._storage.list_members(house.id)
        except StorageError as e:
            await self._storage_failed("list house members", e, house.id, correlation_id)
            raise
        member_ids = [m.user_id for m in members]

        await self._require_valid(
            self._validator.validate_charge(form, member_ids or None),
            house.id,
        )

        try:
            split_method, allocations = await self._allocate(user, house, form, member_ids)
            charge = Charge(
                house_id=house.id,
                category_id=form.category_id,
                provider_id=form.provider_id,
                created_by=user.id,
                description=form.description,
                total_amount=form.total_amount,
                due_date=form.due_date,
                bill_period_start=form.bill_period_start,
                bill_period_end=form.bill_period_end,
                split_method=split_method,
            )
            share_rows = to_charge_shares(charge.id, allocations)
        except SplitError as e:
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type="split_failed",
                    error_message=str(e),
                    details={"house_id": str(house.id)},
                    correlation_id=correlation_id,
                )
            raise

        try:
            charge = await self._storage.create_charge(charge)
        except StorageError as e:
            await self._storage_failed("create charge", e, house.id, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_charge_created(
                charge_id=charge.id,
                house_id=house.id,
                description=charge.description,
                amount=str(charge.total_amount),
                actor_id=user.id,
                correlation_id=correlation_id,
            )

        try:
            shares = await self._storage.add_charge_shares(share_rows)
        except StorageError as e:
            await self._storage_failed("create charge shares", e, house.id, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_charge_shares_created(
                charge_id=charge.id,
                house_id=house.id,
                split_method=split_method.value,
                share_count=len(shares),
                correlation_id=correlation_id,
            )

        return ChargeResult(charge=charge, shares=shares)

    async def save_rent_configuration(
        self,
        house: House,
        category_id: UUID,
        user_id: UUID,
        amount: Decimal,
        percentage: Optional[Decimal] = None,
        notes: Optional[str] = None,
    ) -> RentConfiguration:
        """Set one member's fixed portion of the rent."""
        config = RentConfiguration(
            house_id=house.id,
            category_id=category_id,
            user_id=user_id,
            amount=amount,
            percentage=percentage,
            notes=notes or None,
        )
        try:
            config = await self._storage.save_rent_configuration(config)
        except StorageError as e:
            await self._storage_failed("save rent configuration", e, house.id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_rent_configuration_saved(
                config_id=config.id,
                house_id=house.id,
                user_id=user_id,
                amount=str(config.amount),
            )
        return config

    async def list_rent_configurations(
        self,
        house: House,
        category_id: Optional[UUID] = None,
    ) -> list[RentConfiguration]:
        try:
            return await self._storage.list_rent_configurations(house.id, category_id)
        except StorageError as e:
            await self._storage_failed("list rent configurations", e, house.id)
            raise
