"""
Charge Splitting

Turns a charge total into one share per member.

DESIGN DECISION: All arithmetic is done in Decimal cents.
Shares always sum exactly to the charge total; leftover cents from an
uneven division go one each to the first members in the order given,
so the result is deterministic for a given member order. Percentage
splits hand leftover cents to the shares with the largest rounding
remainder, so a 0% share stays at zero.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional
from uuid import UUID

from pydantic import BaseModel

from houseshare.models.household import ChargeShare, RentConfiguration


CENT = Decimal("0.01")
PERCENT_PLACES = Decimal("0.0001")
HUNDRED = Decimal("100")


class SplitError(ValueError):
    """The requested split cannot produce valid shares."""
    pass


class ShareAllocation(BaseModel):
    """One member's computed portion, before it becomes a ChargeShare row."""

    user_id: UUID
    amount: Decimal
    percentage: Optional[Decimal] = None


def to_cents(amount: Decimal) -> Decimal:
    """Round an amount to cents, half up."""
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def _percentage_of(amount: Decimal, total: Decimal) -> Optional[Decimal]:
    if total == 0:
        return None
    return (amount / total * HUNDRED).quantize(PERCENT_PLACES, rounding=ROUND_HALF_UP)


def _check_total(total: Decimal) -> Decimal:
    if total is None:
        raise SplitError("Total amount is required")
    total = to_cents(total)
    if total < 0:
        raise SplitError("Total amount cannot be negative")
    return total


def split_equally(total: Decimal, user_ids: Iterable[UUID]) -> list[ShareAllocation]:
    """
    Divide a total evenly among members.

    Example:
        100.00 among three members -> 33.34, 33.33, 33.33
    """
    total = _check_total(total)
    user_ids = list(dict.fromkeys(user_ids))
    if not user_ids:
        raise SplitError("At least one member is required to split a charge")

    count = len(user_ids)
    cents = int(total * 100)
    base, leftover = divmod(cents, count)
    percentage = (HUNDRED / count).quantize(PERCENT_PLACES, rounding=ROUND_HALF_UP)

    return [
        ShareAllocation(
            user_id=user_id,
            amount=Decimal(base + (1 if index < leftover else 0)) * CENT,
            percentage=percentage,
        )
        for index, user_id in enumerate(user_ids)
    ]


def split_fixed(
    total: Decimal,
    amounts_by_user: dict[UUID, Decimal],
) -> list[ShareAllocation]:
    """Use explicit amounts per member. They must add up to the total."""
    total = _check_total(total)
    if not amounts_by_user:
        raise SplitError("Enter an amount for at least one member")

    allocations = []
    for user_id, amount in amounts_by_user.items():
        if amount is None:
            raise SplitError("Every member needs an amount")
        amount = to_cents(amount)
        if amount < 0:
            raise SplitError("Share amounts cannot be negative")
        allocations.append(ShareAllocation(
            user_id=user_id,
            amount=amount,
            percentage=_percentage_of(amount, total),
        ))

    assigned = sum((a.amount for a in allocations), Decimal("0"))
    if assigned != total:
        raise SplitError(
            f"Share amounts add up to ${assigned} but the charge total is ${total}"
        )
    return allocations


def split_by_percentage(
    total: Decimal,
    percentages_by_user: dict[UUID, Decimal],
) -> list[ShareAllocation]:
    """
    Divide a total by percentage per member.

    Percentages must add up to 100. Each amount is rounded down to cents
    and the leftover cents go one each to the shares with the largest
    rounding remainder (ties in the order given).

    Example:
        10.05 at 0/50/50 -> 0.00, 5.03, 5.02
    """
    total = _check_total(total)
    if not percentages_by_user:
        raise SplitError("Enter a percentage for at least one member")

    for percentage in percentages_by_user.values():
        if percentage is None or percentage < 0 or percentage > HUNDRED:
            raise SplitError("Percentages must be between 0 and 100")

    percent_sum = sum(percentages_by_user.values(), Decimal("0"))
    if percent_sum.quantize(PERCENT_PLACES) != HUNDRED.quantize(PERCENT_PLACES):
        raise SplitError(f"Percentages add up to {percent_sum}%, not 100%")

    total_cents = int(total * 100)
    exact = [total_cents * Decimal(p) / HUNDRED for p in percentages_by_user.values()]
    cents = [int(value) for value in exact]

    # Percentages that sum to 100 only after rounding can leave the floors
    # a cent over the total; take it back from the largest shares.
    leftover = total_cents - sum(cents)
    if leftover >= 0:
        order = sorted(range(len(cents)), key=lambda i: exact[i] - cents[i], reverse=True)
        step = 1
    else:
        order = sorted(range(len(cents)), key=lambda i: cents[i], reverse=True)
        step = -1
    for index in range(abs(leftover)):
        cents[order[index % len(order)]] += step

    if any(c < 0 for c in cents):
        raise SplitError("Share amounts cannot be negative")

    return [
        ShareAllocation(
            user_id=user_id,
            amount=Decimal(share_cents) * CENT,
            percentage=Decimal(percentage).quantize(PERCENT_PLACES, rounding=ROUND_HALF_UP),
        )
        for (user_id, percentage), share_cents in zip(percentages_by_user.items(), cents)
    ]


def assign_to_one(total: Decimal, user_id: UUID) -> list[ShareAllocation]:
    """Put the whole charge on one member."""
    total = _check_total(total)
    if user_id is None:
        raise SplitError("Choose who pays this charge")
    return [ShareAllocation(user_id=user_id, amount=total, percentage=HUNDRED)]


def shares_from_rent_configuration(
    total: Decimal,
    configs: list[RentConfiguration],
) -> list[ShareAllocation]:
    """Split rent by each member's configured portion."""
    if not configs:
        raise SplitError("No rent configuration saved for this house")
    return split_fixed(total, {config.user_id: config.amount for config in configs})


def to_charge_shares(
    charge_id: UUID,
    allocations: list[ShareAllocation],
) -> list[ChargeShare]:
    """
    Build the rows to insert for a charge.

    Raises:
        SplitError: An allocation has a negative amount
    """
    if any(allocation.amount < 0 for allocation in allocations):
        raise SplitError("Share amounts cannot be negative")
    return [
        ChargeShare(
            charge_id=charge_id,
            user_id=allocation.user_id,
            amount=allocation.amount,
            percentage=allocation.percentage,
        )
        for allocation in allocations
    ]
