"""
Ledger Package

Pure computations over charges and payments: splitting a charge into
shares and reducing a house's history to balances. Nothing here talks
to storage.
"""

from houseshare.ledger.balance import (
    compute_balance,
    member_balances,
    summarize_balances,
)
from houseshare.ledger.splitting import (
    ShareAllocation,
    SplitError,
    assign_to_one,
    shares_from_rent_configuration,
    split_by_percentage,
    split_equally,
    split_fixed,
    to_cents,
    to_charge_shares,
)

__all__ = [
    "ShareAllocation",
    "SplitError",
    "assign_to_one",
    "compute_balance",
    "member_balances",
    "shares_from_rent_configuration",
    "split_by_percentage",
    "split_equally",
    "split_fixed",
    "summarize_balances",
    "to_cents",
    "to_charge_shares",
]
