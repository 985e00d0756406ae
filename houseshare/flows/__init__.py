"""
Workflows

One class per area of the app. Each takes its storage (and optionally
the audit logger, validator and settings) through the constructor and
exposes the actions the UI offers.
"""

from houseshare.flows.account import AccountFlow
from houseshare.flows.categories import CategoryFlow, CategoryResult
from houseshare.flows.charges import ChargeFlow, ChargeResult
from houseshare.flows.dashboard import DashboardFlow
from houseshare.flows.house import HouseSession
from houseshare.flows.onboarding import UTILITY_OPTIONS, OnboardingFlow, OnboardingResult
from houseshare.flows.payments import PaymentFlow, PaymentResult, party_name
from houseshare.flows.roommates import RoommateError, RoommateFlow, roommate_view

__all__ = [
    "AccountFlow",
    "CategoryFlow",
    "CategoryResult",
    "ChargeFlow",
    "ChargeResult",
    "DashboardFlow",
    "HouseSession",
    "OnboardingFlow",
    "OnboardingResult",
    "PaymentFlow",
    "PaymentResult",
    "RoommateError",
    "RoommateFlow",
    "UTILITY_OPTIONS",
    "party_name",
    "roommate_view",
]
