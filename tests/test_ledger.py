"""Tests for charge splitting and balances."""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from houseshare.ledger import (
    ShareAllocation,
    SplitError,
    assign_to_one,
    compute_balance,
    member_balances,
    shares_from_rent_configuration,
    split_by_percentage,
    split_equally,
    split_fixed,
    summarize_balances,
    to_charge_shares,
)
from houseshare.models import (
    Charge,
    ChargeShare,
    HouseMember,
    Payment,
    RentConfiguration,
)


def _total(allocations):
    return sum((a.amount for a in allocations), Decimal("0"))


class TestSplitEqually:

    def test_even_split(self):
        a, b = uuid4(), uuid4()
        shares = split_equally(Decimal("100.00"), [a, b])
        assert [s.amount for s in shares] == [Decimal("50.00"), Decimal("50.00")]
        assert all(s.percentage == Decimal("50.0000") for s in shares)

    def test_leftover_cents_go_to_first_members(self):
        """Test that 100 among three is 33.34, 33.33, 33.33."""
        ids = [uuid4(), uuid4(), uuid4()]
        shares = split_equally(Decimal("100"), ids)
        assert [s.amount for s in shares] == [
            Decimal("33.34"),
            Decimal("33.33"),
            Decimal("33.33"),
        ]
        assert [s.user_id for s in shares] == ids
        assert _total(shares) == Decimal("100.00")
        assert shares[0].percentage == Decimal("33.3333")

    def test_shares_always_sum_to_total(self):
        ids = [uuid4() for _ in range(7)]
        for total in ("0.01", "0.05", "99.99", "1234.56", "10"):
            shares = split_equally(Decimal(total), ids)
            assert _total(shares) == Decimal(total)

    def test_duplicate_members_counted_once(self):
        a = uuid4()
        shares = split_equally(Decimal("10"), [a, a])
        assert len(shares) == 1
        assert shares[0].amount == Decimal("10.00")

    def test_zero_total(self):
        shares = split_equally(Decimal("0"), [uuid4(), uuid4()])
        assert all(s.amount == Decimal("0") for s in shares)

    def test_requires_members(self):
        with pytest.raises(SplitError):
            split_equally(Decimal("10"), [])

    def test_rejects_negative_total(self):
        with pytest.raises(SplitError):
            split_equally(Decimal("-10"), [uuid4()])


class TestOtherSplits:

    def test_fixed_split(self):
        a, b = uuid4(), uuid4()
        shares = split_fixed(Decimal("90"), {a: Decimal("60"), b: Decimal("30")})
        assert shares[0].amount == Decimal("60.00")
        assert shares[0].percentage == Decimal("66.6667")

    def test_fixed_split_must_match_total(self):
        with pytest.raises(SplitError, match="add up to"):
            split_fixed(Decimal("90"), {uuid4(): Decimal("50"), uuid4(): Decimal("30")})

    def test_fixed_split_rejects_negative_amount(self):
        with pytest.raises(SplitError):
            split_fixed(Decimal("10"), {uuid4(): Decimal("20"), uuid4(): Decimal("-10")})

    def test_percentage_split_gives_leftover_to_largest_remainder(self):
        ids = [uuid4(), uuid4(), uuid4()]
        percentages = dict(zip(ids, [Decimal("33.33"), Decimal("33.33"), Decimal("33.34")]))
        shares = split_by_percentage(Decimal("10.00"), percentages)
        assert _total(shares) == Decimal("10.00")
        assert [s.amount for s in shares] == [Decimal("3.33"), Decimal("3.33"), Decimal("3.34")]

    def test_percentage_split_keeps_zero_share_at_zero(self):
        """A member at 0% never absorbs the rounding cent."""
        ids = [uuid4(), uuid4(), uuid4()]
        percentages = dict(zip(ids, [Decimal("0"), Decimal("50"), Decimal("50")]))
        shares = split_by_percentage(Decimal("10.05"), percentages)
        assert [s.amount for s in shares] == [Decimal("0.00"), Decimal("5.03"), Decimal("5.02")]
        assert all(s.amount >= 0 for s in shares)
        assert _total(shares) == Decimal("10.05")

    def test_negative_allocation_rejected_as_split_error(self):
        allocation = ShareAllocation(user_id=uuid4(), amount=Decimal("-0.01"))
        with pytest.raises(SplitError, match="cannot be negative"):
            to_charge_shares(uuid4(), [allocation])

    def test_percentage_split_must_total_100(self):
        with pytest.raises(SplitError, match="not 100%"):
            split_by_percentage(Decimal("10"), {uuid4(): Decimal("50"), uuid4(): Decimal("40")})

    def test_assign_to_one(self):
        person = uuid4()
        shares = assign_to_one(Decimal("42.5"), person)
        assert len(shares) == 1
        assert shares[0].user_id == person
        assert shares[0].amount == Decimal("42.50")
        assert shares[0].percentage == Decimal("100")

    def test_rent_configuration_split(self):
        house_id, category_id = uuid4(), uuid4()
        configs = [
            RentConfiguration(house_id=house_id, category_id=category_id, user_id=uuid4(), amount=Decimal("1100")),
            RentConfiguration(house_id=house_id, category_id=category_id, user_id=uuid4(), amount=Decimal("900")),
        ]
        shares = shares_from_rent_configuration(Decimal("2000"), configs)
        assert [s.amount for s in shares] == [Decimal("1100.00"), Decimal("900.00")]

    def test_rent_configuration_required(self):
        with pytest.raises(SplitError, match="No rent configuration"):
            shares_from_rent_configuration(Decimal("2000"), [])

    def test_to_charge_shares(self):
        charge_id = uuid4()
        rows = to_charge_shares(charge_id, split_equally(Decimal("9"), [uuid4(), uuid4()]))
        assert all(isinstance(r, ChargeShare) for r in rows)
        assert all(r.charge_id == charge_id for r in rows)


class TestBalance:
    """The balance reduction: owed - paid - owed_to."""

    def setup_method(self):
        self.house_id = uuid4()
        self.alex, self.sam, self.jo = uuid4(), uuid4(), uuid4()

    def _charge(self, shares):
        charge = Charge(
            house_id=self.house_id,
            category_id=uuid4(),
            created_by=self.alex,
            description="Utilities",
            total_amount=sum(shares.values(), Decimal("0")),
            due_date=date(2025, 4, 1),
        )
        return charge.model_copy(update={"charge_shares": [
            ChargeShare(charge_id=charge.id, user_id=user_id, amount=amount)
            for user_id, amount in shares.items()
        ]})

    def _payment(self, payer, recipient, amount):
        return Payment(
            house_id=self.house_id,
            created_by=payer,
            payer_id=payer,
            recipient_id=recipient,
            date=date(2025, 4, 2),
            amount=Decimal(amount),
        )

    def test_balance_formula(self):
        charges = [
            self._charge({self.alex: Decimal("50"), self.sam: Decimal("50")}),
            self._charge({self.alex: Decimal("20"), self.jo: Decimal("20")}),
        ]
        payments = [
            self._payment(self.alex, self.sam, "30"),
            self._payment(self.jo, self.alex, "5"),
        ]
        balance = compute_balance(self.alex, charges, payments)
        assert balance.total_owed == Decimal("70")
        assert balance.total_paid == Decimal("30")
        assert balance.total_owed_to == Decimal("5")
        assert balance.net_balance == Decimal("35")
        assert not balance.is_owed_to

    def test_negative_balance_means_owed(self):
        payments = [self._payment(self.alex, self.sam, "40")]
        balance = compute_balance(self.alex, [], payments)
        assert balance.net_balance == Decimal("-40")
        assert balance.is_owed_to

    def test_no_history_is_settled(self):
        balance = compute_balance(self.alex, [], [])
        assert balance.is_settled

    def test_member_balances_skip_settled(self):
        charges = [self._charge({self.sam: Decimal("25")})]
        balances = member_balances([self.sam, self.jo], charges, [])
        assert [b.user_id for b in balances] == [self.sam]

    def test_summary_respects_visibility(self):
        charges = [self._charge({self.alex: Decimal("10"), self.sam: Decimal("10")})]
        members = [
            HouseMember(house_id=self.house_id, user_id=self.alex, can_see_others_balances=False),
            HouseMember(house_id=self.house_id, user_id=self.sam),
        ]
        hidden = summarize_balances(self.alex, charges, [], members, members[0])
        assert hidden.net_balance == Decimal("10")
        assert hidden.member_balances == []

        visible = summarize_balances(self.sam, charges, [], members, members[1])
        assert [b.user_id for b in visible.member_balances] == [self.alex]
