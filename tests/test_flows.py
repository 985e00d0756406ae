"""
Tests for account, onboarding, house session and roommate workflows.

All flows run against the in-memory storage and auth. Failures are
injected through ``storage.fail_tables``.
"""

import pytest
from datetime import timedelta
from uuid import uuid4

from houseshare.flows import RoommateError
from houseshare.models import (
    CategoryType,
    HouseForm,
    InviteStatus,
    MemberRole,
    UtilityChoice,
    utcnow,
)
from houseshare.services import AuthError, DuplicateError, StorageError
from houseshare.validation import FormValidationError


def _utilities(**providers):
    """Onboarding utilities with rent and electricity selected."""
    choices = []
    for key, name in (("rent", "Rent"), ("electricity", "Electricity"), ("wifi", "WiFi")):
        choices.append(UtilityChoice(
            key=key,
            name=name,
            selected=key in ("rent", "electricity"),
            provider=providers.get(key, ""),
        ))
    return choices


class TestAccountFlow:
    """Sign up, sign in and profile updates."""

    @pytest.mark.asyncio
    async def test_sign_up_stores_name_metadata(self, components, recorder):
        user = await components.accounts.sign_up("alex@example.com", "secret1", "Alex", "Rivera")
        assert user.first_name == "Alex"
        assert user.name == "Alex Rivera"
        assert "user_signed_up" in recorder.event_types()

        current = await components.accounts.current_user()
        assert current.id == user.id

    @pytest.mark.asyncio
    async def test_sign_up_rejects_short_password(self, components, recorder):
        with pytest.raises(FormValidationError, match="at least 6 characters"):
            await components.accounts.sign_up("alex@example.com", "abc")
        assert "form_rejected" in recorder.event_types()

    @pytest.mark.asyncio
    async def test_duplicate_sign_up(self, components):
        await components.accounts.sign_up("alex@example.com", "secret1", "Alex")
        with pytest.raises(AuthError):
            await components.accounts.sign_up("ALEX@example.com", "secret1", "Alex")

    @pytest.mark.asyncio
    async def test_sign_in_and_out(self, components, recorder):
        await components.accounts.sign_up("alex@example.com", "secret1", "Alex")
        await components.accounts.sign_out()
        assert await components.accounts.current_user() is None

        session = await components.accounts.sign_in("alex@example.com", "secret1")
        assert session.access_token
        assert session.user.email == "alex@example.com"
        assert "user_signed_in" in recorder.event_types()

    @pytest.mark.asyncio
    async def test_sign_in_bad_password(self, components, recorder):
        await components.accounts.sign_up("alex@example.com", "secret1", "Alex")
        with pytest.raises(AuthError, match="Invalid login credentials"):
            await components.accounts.sign_in("alex@example.com", "wrong-one")
        assert "auth_failed" in recorder.event_types()

    @pytest.mark.asyncio
    async def test_sign_in_requires_both_fields(self, components):
        with pytest.raises(AuthError):
            await components.accounts.sign_in("", "")

    @pytest.mark.asyncio
    async def test_update_profile(self, components):
        await components.accounts.sign_up("alex@example.com", "secret1", "Alex")
        user = await components.accounts.update_profile(" Alexandra ", "Rivera")
        assert user.first_name == "Alexandra"
        assert user.name == "Alexandra Rivera"
        assert user.profile_names() == ("Alexandra", "Rivera")

    @pytest.mark.asyncio
    async def test_update_profile_signed_out(self, components):
        with pytest.raises(AuthError):
            await components.accounts.update_profile("Alex", "Rivera")


class TestOnboardingFlow:
    """First-run house setup."""

    def test_default_utilities(self, components):
        utilities = components.onboarding.default_utilities()
        assert len(utilities) == 6
        assert not any(u.selected for u in utilities)
        assert components.onboarding.default_house_form().timezone == "America/Los_Angeles"

    @pytest.mark.asyncio
    async def test_complete_creates_everything(self, components, storage, user, recorder):
        result = await components.onboarding.complete(
            user,
            HouseForm(name="Berkeley Ave", address="12 Berkeley Ave"),
            _utilities(electricity="PG&E"),
            ["sam@example.com", "SAM@example.com", "", "jo@example.com"],
        )

        assert result.house.name == "Berkeley Ave"
        assert result.membership.role == MemberRole.ADMIN
        assert result.membership.user_id == user.id
        assert [c.name for c in result.categories] == ["Rent", "Electricity"]
        assert result.categories[0].type == CategoryType.RENT
        assert [p.label for p in result.providers] == ["PG&E"]
        assert [i.email for i in result.invites] == ["sam@example.com", "jo@example.com"]
        assert result.warnings == []

        assert len(storage.houses) == 1
        assert len(storage.members) == 1
        assert len(storage.categories) == 2
        assert len(storage.invites) == 2
        assert "house_created" in recorder.event_types()

    @pytest.mark.asyncio
    async def test_writes_share_a_correlation_id(self, components, user, recorder):
        await components.onboarding.complete(user, HouseForm(name="Home"), _utilities())
        correlation_ids = {kwargs["correlation_id"] for _, _, kwargs in recorder.records}
        assert len(correlation_ids) == 1
        assert None not in correlation_ids

    @pytest.mark.asyncio
    async def test_requires_a_utility(self, components, storage, user):
        with pytest.raises(FormValidationError, match="Please select at least one utility"):
            await components.onboarding.complete(user, HouseForm(name="Home"), [])
        assert storage.houses == {}

    @pytest.mark.asyncio
    async def test_provider_failure_is_a_warning(self, components, storage, user):
        storage.fail_tables = {"providers"}
        result = await components.onboarding.complete(
            user,
            HouseForm(name="Home"),
            _utilities(electricity="PG&E"),
        )
        assert len(result.categories) == 2
        assert result.providers == []
        assert len(result.warnings) == 1
        assert result.warnings[0].startswith("Electricity was created")

    @pytest.mark.asyncio
    async def test_invite_failure_is_a_warning(self, components, storage, user):
        storage.fail_tables = {"invites"}
        result = await components.onboarding.complete(
            user,
            HouseForm(name="Home"),
            _utilities(),
            ["sam@example.com"],
        )
        assert result.invites == []
        assert "sam@example.com" in result.warnings[0]

    @pytest.mark.asyncio
    async def test_house_failure_raises(self, components, storage, user, recorder):
        storage.fail_tables = {"houses"}
        with pytest.raises(StorageError):
            await components.onboarding.complete(user, HouseForm(name="Home"), _utilities())
        assert "storage_error" in recorder.event_types()
        assert storage.members == {}


class TestHouseSession:
    """The signed-in user's houses and members."""

    @pytest.mark.asyncio
    async def test_refresh_selects_first_house(self, components, house, user):
        session = components.session_for(user)
        assert not session.has_house

        selected = await session.refresh_houses()
        assert selected.id == house.id
        assert len(session.members) == 3
        assert session.members[0].user_id == user.id
        assert session.is_admin()

    @pytest.mark.asyncio
    async def test_refresh_keeps_selection(self, components, house, user, house_factory):
        second = await house_factory(user)
        session = components.session_for(user)
        await session.refresh_houses()
        await session.select_house(second.id)

        await session.refresh_houses()
        assert session.house.id == second.id
        assert len(session.members) == 1

    @pytest.mark.asyncio
    async def test_no_user_means_no_house(self, components, house):
        session = components.session_for(None)
        assert await session.refresh_houses() is None
        assert session.houses == []

    @pytest.mark.asyncio
    async def test_failed_refresh_clears_state(self, components, storage, house, user):
        session = components.session_for(user)
        await session.refresh_houses()

        storage.fail_tables = {"house_members"}
        assert await session.refresh_houses() is None
        assert session.house is None
        assert session.members == []

    @pytest.mark.asyncio
    async def test_select_unknown_house_keeps_current(self, components, house, user):
        session = components.session_for(user)
        await session.refresh_houses()
        assert (await session.select_house(uuid4())).id == house.id
        assert await session.select_house(None) is None

    @pytest.mark.asyncio
    async def test_update_house(self, components, storage, house, user):
        session = components.session_for(user)
        await session.refresh_houses()

        await session.update_house({"name": "Oak Street"})
        assert session.house.name == "Oak Street"
        assert session.houses[0].name == "Oak Street"
        assert storage.houses[house.id].name == "Oak Street"

    @pytest.mark.asyncio
    async def test_failed_update_rolls_back(self, components, storage, house, user):
        """Test that the optimistic house update is undone on failure."""
        session = components.session_for(user)
        await session.refresh_houses()

        storage.fail_tables = {"houses"}
        with pytest.raises(StorageError):
            await session.update_house({"name": "Oak Street"})
        assert session.house.name == "Berkeley Ave"
        assert session.houses[0].name == "Berkeley Ave"

    @pytest.mark.asyncio
    async def test_update_member(self, components, storage, house, user):
        session = components.session_for(user)
        await session.refresh_houses()
        member = session.membership_of(user.id)

        await session.update_member(member.id, {"can_see_others_balances": False})
        assert session.membership_of(user.id).can_see_others_balances is False
        assert storage.members[member.id].can_see_others_balances is False

    @pytest.mark.asyncio
    async def test_add_member_twice(self, components, house, user):
        session = components.session_for(user)
        await session.refresh_houses()
        newcomer = uuid4()

        await session.add_member(newcomer)
        assert session.membership_of(newcomer).role == MemberRole.MEMBER
        with pytest.raises(DuplicateError):
            await session.add_member(newcomer)

    @pytest.mark.asyncio
    async def test_add_member_without_house(self, components, user):
        session = components.session_for(user)
        with pytest.raises(StorageError):
            await session.add_member(uuid4())


class TestRoommateFlow:
    """Roommate list, roles and invites."""

    @pytest.mark.asyncio
    async def test_list_roommates(self, components, house, user, roommates):
        session = components.session_for(user)
        await session.refresh_houses()

        views = components.roommates.list_roommates(session)
        assert views[0].name == "You"
        assert views[0].is_current_user
        assert views[1].name == f"User {str(roommates[0].id)[:8]}"

    @pytest.mark.asyncio
    async def test_send_and_cancel_invite(self, components, house, recorder):
        invite = await components.roommates.send_invite(house, " sam@example.com ")
        assert invite.email == "sam@example.com"
        assert invite.status == InviteStatus.PENDING
        remaining = invite.expires_at - utcnow()
        assert timedelta(days=6, hours=23) < remaining <= timedelta(days=7)
        assert "invite_sent" in recorder.event_types()

        pending = await components.roommates.list_pending_invites(house)
        assert [i.id for i in pending] == [invite.id]

        await components.roommates.cancel_invite(house, invite.id)
        assert await components.roommates.list_pending_invites(house) == []

    @pytest.mark.asyncio
    async def test_duplicate_invite_rejected(self, components, house):
        await components.roommates.send_invite(house, "sam@example.com")
        with pytest.raises(FormValidationError, match="already been sent"):
            await components.roommates.send_invite(house, "sam@example.com")

    @pytest.mark.asyncio
    async def test_pending_invites_degrade_to_empty(self, components, storage, house):
        await components.roommates.send_invite(house, "sam@example.com")
        storage.fail_tables = {"invites"}
        assert await components.roommates.list_pending_invites(house) == []

    @pytest.mark.asyncio
    async def test_change_role(self, components, house, user, roommates):
        session = components.session_for(user)
        await session.refresh_houses()
        member = session.membership_of(roommates[0].id)

        await components.roommates.change_role(session, member.id, MemberRole.ADMIN)
        assert session.is_admin(roommates[0].id)

    @pytest.mark.asyncio
    async def test_cannot_remove_yourself(self, components, house, user):
        session = components.session_for(user)
        await session.refresh_houses()
        me = session.membership_of(user.id)

        with pytest.raises(RoommateError, match="You cannot remove yourself"):
            await components.roommates.remove_roommate(session, me.id)

    @pytest.mark.asyncio
    async def test_remove_roommate(self, components, storage, house, user, roommates):
        session = components.session_for(user)
        await session.refresh_houses()
        member = session.membership_of(roommates[1].id)

        await components.roommates.remove_roommate(session, member.id)
        assert session.membership_of(roommates[1].id) is None
        assert member.id not in storage.members

    @pytest.mark.asyncio
    async def test_only_admins_manage_roommates(self, components, storage, house, user, roommates):
        session = components.session_for(roommates[0])
        await session.refresh_houses()
        other = session.membership_of(roommates[1].id)

        with pytest.raises(RoommateError, match="Only admins"):
            await components.roommates.change_role(session, other.id, MemberRole.ADMIN)
        with pytest.raises(RoommateError, match="Only admins"):
            await components.roommates.remove_roommate(session, other.id)
        assert other.id in storage.members

    @pytest.mark.asyncio
    async def test_admin_check_uses_stored_role(self, components, storage, house, user, roommates):
        """A session loaded before a demotion no longer passes as admin."""
        session = components.session_for(user)
        await session.refresh_houses()
        me = session.membership_of(user.id)
        await storage.update_member(me.id, {"role": MemberRole.MEMBER})

        assert session.is_admin()
        with pytest.raises(RoommateError, match="Only admins"):
            await components.roommates.remove_roommate(session, session.membership_of(roommates[0].id).id)
