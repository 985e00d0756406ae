"""
Main Orchestrator for houseshare

This module wires the services into the workflows the UI drives:
accounts, onboarding, the house session, categories, charges,
payments, roommates and the dashboard.

DESIGN DECISION: The workflows never construct their own backends.
They receive storage and auth from here, so the same flows run against
Supabase in production and against the in-memory services in tests
and offline mode.
"""

from typing import Optional

import structlog

from houseshare.audit import AuditLogger, configure_logging
from houseshare.config import get_settings
from houseshare.config.settings import AppSettings
from houseshare.flows import (
    AccountFlow,
    CategoryFlow,
    ChargeFlow,
    DashboardFlow,
    HouseSession,
    OnboardingFlow,
    PaymentFlow,
    RoommateFlow,
)
from houseshare.models.forms import UserAccount
from houseshare.services.auth import AuthInterface, InMemoryAuthService, SupabaseAuthService
from houseshare.services.storage import (
    HouseStorageInterface,
    InMemoryHouseStorage,
    SupabaseClient,
    SupabaseHouseStorage,
)
from houseshare.validation import FormValidator


logger = structlog.get_logger(__name__)


class AppComponents:
    """
    Every workflow of the app, sharing one storage, auth and audit logger.

    Auth is per user, so one AppComponents serves one browser session.
    """

    def __init__(
        self,
        storage: HouseStorageInterface,
        auth: AuthInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
        supabase_client: Optional[SupabaseClient] = None,
    ):
        self.storage = storage
        self.auth = auth
        self.audit_logger = audit_logger
        self.settings = settings or get_settings().app
        self.supabase_client = supabase_client

        self.validator = FormValidator(storage, self.settings)
        shared = dict(
            storage=storage,
            audit_logger=audit_logger,
            validator=self.validator,
            settings=self.settings,
        )

        self.accounts = AccountFlow(auth, audit_logger, self.validator)
        self.onboarding = OnboardingFlow(**shared)
        self.categories = CategoryFlow(**shared)
        self.charges = ChargeFlow(**shared)
        self.payments = PaymentFlow(**shared)
        self.roommates = RoommateFlow(**shared)
        self.dashboard = DashboardFlow(**shared)

    @property
    def is_online(self) -> bool:
        return self.supabase_client is not None

    def session_for(self, user: Optional[UserAccount]) -> HouseSession:
        """A fresh house session for the signed-in user."""
        return HouseSession(
            user,
            storage=self.storage,
            audit_logger=self.audit_logger,
            validator=self.validator,
            settings=self.settings,
        )


def create_app_components(
    use_storage: bool = True,
    offline_storage: Optional[InMemoryHouseStorage] = None,
    offline_accounts: Optional[dict] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Call it once per browser session: the Supabase client carries the
    signed-in user's auth session, and every query runs as that user.

    Args:
        use_storage: Whether to connect to Supabase.
                    Set to False for offline mode and tests; the
                    in-memory storage and auth are used instead.
        offline_storage: In-memory tables to use in offline mode, so
                    several sessions can see the same data
        offline_accounts: Registered offline users, shared the same way

    If Supabase is not configured the app falls back to offline mode
    instead of failing to start.
    """
    settings = get_settings().app
    configure_logging(settings.log_level)
    audit_logger = AuditLogger()

    if use_storage:
        try:
            client = SupabaseClient(get_settings().supabase)
            client.connect()
            return AppComponents(
                storage=SupabaseHouseStorage(client),
                auth=SupabaseAuthService(client),
                audit_logger=audit_logger,
                settings=settings,
                supabase_client=client,
            )
        except Exception as e:
            # Backend not configured - continue offline
            logger.warning("supabase_unavailable", error=str(e))

    return AppComponents(
        storage=offline_storage if offline_storage is not None else InMemoryHouseStorage(),
        auth=InMemoryAuthService(accounts=offline_accounts),
        audit_logger=audit_logger,
        settings=settings,
    )
