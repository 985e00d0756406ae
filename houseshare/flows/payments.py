"""Recording payments between members."""

from typing import Optional

from pydantic import BaseModel, Field

from houseshare.audit import create_correlation_id
from houseshare.flows.base import BaseFlow
from houseshare.models.forms import PaymentForm, PaymentParty, UserAccount, member_label
from houseshare.models.household import House, HouseMember, Payment, PaymentChargeLink
from houseshare.services.storage import StorageError


def party_name(member: HouseMember, user: UserAccount) -> str:
    """How a member is labelled in the payer and recipient pickers."""
    if member.user_id == user.id:
        return user.display_name
    return member_label(member.user_id)


class PaymentResult(BaseModel):
    payment: Payment
    links: list[PaymentChargeLink] = Field(default_factory=list)


class PaymentFlow(BaseFlow):
    """
    Orchestrates payment recording.

    Flow:
    1. Validate → payer, amount and date present; payer is not the recipient
    2. Payment → insert the payment row
    3. Links → when charges were picked, link the payment to each
    """

    async def list_members_for_payment(
        self,
        user: UserAccount,
        house: House,
    ) -> list[PaymentParty]:
        try:
            members = await self._storage.list_members(house.id)
        except StorageError as e:
            await self._storage_failed("list house members", e, house.id)
            raise
        return [PaymentParty(id=m.user_id, name=party_name(m, user)) for m in members]

    def default_form(self, user: UserAccount) -> PaymentForm:
        """An empty form with the current user preselected as payer."""
        return PaymentForm(payer_id=user.id)

    async def list_payments(self, house: House) -> list[Payment]:
        try:
            return await self._storage.list_payments(house.id)
        except StorageError as e:
            await self._storage_failed("list payments", e, house.id)
            raise

    async def record_payment(
        self,
        user: UserAccount,
        house: House,
        form: PaymentForm,
    ) -> PaymentResult:
        """
        Record a payment.

        Raises:
            FormValidationError: Missing payer, amount or date, or payer == recipient
            StorageError: An insert failed
        """
        await self._require_valid(self._validator.validate_payment(form), house.id)
        correlation_id = create_correlation_id()

        payment = Payment(
            house_id=house.id,
            created_by=user.id,
            payer_id=form.payer_id,
            recipient_id=form.recipient_id,
            category_id=form.category_id,
            date=form.payment_date,
            amount=form.amount,
            payment_method_label=form.payment_method_label or None,
            link_to_external_payment_page=form.link_to_external_payment_page or None,
            notes=form.notes or None,
        )
        try:
            payment = await self._storage.create_payment(payment)
        except StorageError as e:
            await self._storage_failed("record payment", e, house.id, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_payment_recorded(
                payment_id=payment.id,
                house_id=house.id,
                payer_id=payment.payer_id,
                recipient_id=payment.recipient_id,
                amount=str(payment.amount),
                actor_id=user.id,
                correlation_id=correlation_id,
            )

        result = PaymentResult(payment=payment)
        charge_ids = list(dict.fromkeys(form.charge_ids))
        if not charge_ids:
            return result

        links = [PaymentChargeLink(payment_id=payment.id, charge_id=c) for c in charge_ids]
        try:
            result.links = await self._storage.link_payment_to_charges(links)
        except StorageError as e:
            await self._storage_failed("link payment to charges", e, house.id, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_payment_linked(
                payment_id=payment.id,
                house_id=house.id,
                charge_ids=charge_ids,
                correlation_id=correlation_id,
            )
        return result
