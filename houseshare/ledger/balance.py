"""
Balance Computation

A member's balance is a pure reduction over the house's charges and
payments:

    total_owed    = sum of the member's charge shares
    total_owed_to = sum of payments received by the member
    total_paid    = sum of payments made by the member
    net_balance   = total_owed - total_paid - total_owed_to

A positive net balance means the member owes money, a negative one means
the member is owed money.
"""

from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

from houseshare.models.forms import BalanceSummary, MemberBalance
from houseshare.models.household import Charge, HouseMember, Payment


ZERO = Decimal("0")


def compute_balance(
    user_id: UUID,
    charges: Iterable[Charge],
    payments: Iterable[Payment],
) -> MemberBalance:
    """Reduce charges and payments to one member's balance."""
    payments = list(payments)

    total_owed = sum(
        (
            share.amount
            for charge in charges
            for share in charge.charge_shares
            if share.user_id == user_id
        ),
        ZERO,
    )
    total_owed_to = sum(
        (p.amount for p in payments if p.recipient_id == user_id),
        ZERO,
    )
    total_paid = sum(
        (p.amount for p in payments if p.payer_id == user_id),
        ZERO,
    )

    return MemberBalance(
        user_id=user_id,
        total_owed=total_owed,
        total_owed_to=total_owed_to,
        total_paid=total_paid,
        net_balance=total_owed - total_paid - total_owed_to,
    )


def member_balances(
    user_ids: Iterable[UUID],
    charges: Iterable[Charge],
    payments: Iterable[Payment],
) -> list[MemberBalance]:
    """Balances of several members, leaving out those who are settled."""
    charges = list(charges)
    payments = list(payments)
    balances = [compute_balance(user_id, charges, payments) for user_id in user_ids]
    return [balance for balance in balances if not balance.is_settled]


def summarize_balances(
    viewer_id: UUID,
    charges: Iterable[Charge],
    payments: Iterable[Payment],
    members: Iterable[HouseMember] = (),
    viewer_membership: Optional[HouseMember] = None,
) -> BalanceSummary:
    """
    The viewer's balance, plus everyone else's when the viewer's
    membership allows seeing other balances.
    """
    charges = list(charges)
    payments = list(payments)
    own = compute_balance(viewer_id, charges, payments)

    others: list[MemberBalance] = []
    if viewer_membership is not None and viewer_membership.can_see_others_balances:
        others = member_balances(
            (m.user_id for m in members if m.user_id != viewer_id),
            charges,
            payments,
        )

    return BalanceSummary(**own.model_dump(), member_balances=others)
