"""
Shared fixtures.

Every test runs against the in-memory storage and auth services; no test
talks to a real backend.
"""

from datetime import date
from typing import Any, Optional
from uuid import uuid4

import pytest
import pytest_asyncio

from houseshare.audit import AuditLogger
from houseshare.config.settings import AppSettings
from houseshare.models import (
    Category,
    CategoryType,
    House,
    HouseMember,
    MemberRole,
    UserAccount,
)
from houseshare.orchestrator import AppComponents
from houseshare.services import InMemoryAuthService, InMemoryHouseStorage


class RecordingLogger:
    """Stands in for a structlog logger and keeps every call."""

    def __init__(self):
        self.records: list[tuple[str, str, dict[str, Any]]] = []

    def _record(self, level: str, event: str, **kwargs) -> None:
        self.records.append((level, event, kwargs))

    def debug(self, event: str, **kwargs) -> None:
        self._record("debug", event, **kwargs)

    def info(self, event: str, **kwargs) -> None:
        self._record("info", event, **kwargs)

    def warning(self, event: str, **kwargs) -> None:
        self._record("warning", event, **kwargs)

    def error(self, event: str, **kwargs) -> None:
        self._record("error", event, **kwargs)

    def event_types(self) -> list[str]:
        return [kwargs.get("event_type") for _, _, kwargs in self.records]


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(
        invite_expiry_days=7,
        default_due_in_days=7,
        min_password_length=6,
        default_timezone="America/Los_Angeles",
    )


@pytest.fixture
def storage() -> InMemoryHouseStorage:
    return InMemoryHouseStorage()


@pytest.fixture
def auth() -> InMemoryAuthService:
    return InMemoryAuthService()


@pytest.fixture
def recorder() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture
def audit_logger(recorder: RecordingLogger) -> AuditLogger:
    return AuditLogger(logger=recorder)


@pytest.fixture
def components(storage, auth, audit_logger, settings) -> AppComponents:
    return AppComponents(
        storage=storage,
        auth=auth,
        audit_logger=audit_logger,
        settings=settings,
    )


@pytest.fixture
def user() -> UserAccount:
    return UserAccount(
        id=uuid4(),
        email="alex@example.com",
        first_name="Alex",
        last_name="Rivera",
        name="Alex Rivera",
    )


@pytest.fixture
def roommates() -> list[UserAccount]:
    return [
        UserAccount(id=uuid4(), email="sam@example.com"),
        UserAccount(id=uuid4(), email="jo@example.com"),
    ]


async def make_house(
    storage: InMemoryHouseStorage,
    owner: UserAccount,
    others: Optional[list[UserAccount]] = None,
    can_see_others_balances: bool = True,
) -> House:
    """Create a house with the owner as admin and the others as members."""
    house = await storage.create_house(House(name="Berkeley Ave", created_by=owner.id))
    await storage.add_member(HouseMember(
        house_id=house.id,
        user_id=owner.id,
        role=MemberRole.ADMIN,
        can_see_others_balances=can_see_others_balances,
    ))
    for other in others or []:
        await storage.add_member(HouseMember(house_id=house.id, user_id=other.id))
    return house


@pytest_asyncio.fixture
async def house(storage, user, roommates) -> House:
    return await make_house(storage, user, roommates)


@pytest_asyncio.fixture
async def rent_category(storage, house) -> Category:
    return await storage.create_category(Category(
        house_id=house.id,
        name="Rent",
        type=CategoryType.RENT,
    ))


@pytest.fixture
def next_week() -> date:
    return date.fromordinal(date.today().toordinal() + 7)


@pytest.fixture
def house_factory(storage):
    """Build extra houses in a test: ``await house_factory(owner, others)``."""
    async def factory(owner, others=None, can_see_others_balances=True):
        return await make_house(storage, owner, others, can_see_others_balances)
    return factory
