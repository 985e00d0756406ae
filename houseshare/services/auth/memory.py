"""In-memory auth service for tests and offline mode."""

import secrets
from datetime import timedelta
from typing import Any, Optional
from uuid import uuid4

from houseshare.models.forms import AuthSession, UserAccount
from houseshare.models.household import utcnow
from houseshare.services.auth.interface import AuthError, AuthInterface


class InMemoryAuthService(AuthInterface):
    """
    Keeps accounts in a dict keyed by email.

    One instance holds one signed-in user, like a single browser. Pass
    the same ``accounts`` dict to several instances to let them share
    registered users while keeping separate sessions.
    """

    def __init__(self, accounts: Optional[dict[str, tuple[str, UserAccount]]] = None):
        self._accounts: dict[str, tuple[str, UserAccount]] = {} if accounts is None else accounts
        self._session: Optional[AuthSession] = None

    async def sign_up(
        self,
        email: str,
        password: str,
        metadata: dict[str, Any],
    ) -> UserAccount:
        email = email.strip().lower()
        if email in self._accounts:
            raise AuthError("User already registered")

        user = UserAccount(
            id=uuid4(),
            email=email,
            first_name=metadata.get("first_name") or None,
            last_name=metadata.get("last_name") or None,
            name=metadata.get("name") or None,
        )
        self._accounts[email] = (password, user)
        self._session = self._new_session(user)
        return user

    async def sign_in(self, email: str, password: str) -> AuthSession:
        account = self._accounts.get(email.strip().lower())
        if account is None or account[0] != password:
            raise AuthError("Invalid login credentials")
        self._session = self._new_session(account[1])
        return self._session

    async def sign_out(self) -> None:
        self._session = None

    async def get_user(self) -> Optional[UserAccount]:
        return self._session.user if self._session else None

    async def get_session(self) -> Optional[AuthSession]:
        return self._session

    async def update_user_metadata(self, metadata: dict[str, Any]) -> UserAccount:
        if self._session is None:
            raise AuthError("Auth session missing!")

        user = self._session.user.model_copy(update={
            key: value for key, value in metadata.items()
            if key in ("first_name", "last_name", "name")
        })
        password, _ = self._accounts[user.email]
        self._accounts[user.email] = (password, user)
        self._session = self._session.model_copy(update={"user": user})
        return user

    def _new_session(self, user: UserAccount) -> AuthSession:
        return AuthSession(
            access_token=secrets.token_urlsafe(24),
            refresh_token=secrets.token_urlsafe(24),
            expires_at=utcnow() + timedelta(hours=1),
            user=user,
        )
