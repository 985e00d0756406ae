"""
Supabase Auth Implementation

Wraps ``client.auth`` (email/password accounts). Users and sessions are
mapped onto our own models so nothing outside this module touches the
client library's response types.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from houseshare.models.forms import AuthSession, UserAccount
from houseshare.services.auth.interface import AuthError, AuthInterface
from houseshare.services.storage.supabase_store import SupabaseClient


def _message(error: Exception) -> str:
    return getattr(error, "message", None) or str(error) or "An error occurred"


def to_user_account(user: Any) -> UserAccount:
    """Map a Supabase user object onto UserAccount."""
    metadata = getattr(user, "user_metadata", None) or {}
    return UserAccount(
        id=user.id,
        email=getattr(user, "email", None),
        first_name=metadata.get("first_name") or None,
        last_name=metadata.get("last_name") or None,
        name=metadata.get("name") or None,
    )


def to_auth_session(session: Any, user: Optional[Any] = None) -> AuthSession:
    """Map a Supabase session object onto AuthSession."""
    expires_at = getattr(session, "expires_at", None)
    return AuthSession(
        access_token=session.access_token,
        refresh_token=getattr(session, "refresh_token", None),
        expires_at=(
            datetime.fromtimestamp(expires_at, tz=timezone.utc) if expires_at else None
        ),
        user=to_user_account(user or session.user),
    )


class SupabaseAuthService(AuthInterface):
    """Email/password auth against the Supabase project."""

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or SupabaseClient()

    async def sign_up(
        self,
        email: str,
        password: str,
        metadata: dict[str, Any],
    ) -> UserAccount:
        try:
            response = self._client.auth.sign_up({
                "email": email,
                "password": password,
                "options": {"data": metadata},
            })
        except Exception as e:
            raise AuthError(_message(e)) from e

        if response.user is None:
            raise AuthError("Sign up did not return a user")
        return to_user_account(response.user)

    async def sign_in(self, email: str, password: str) -> AuthSession:
        try:
            response = self._client.auth.sign_in_with_password({
                "email": email,
                "password": password,
            })
        except Exception as e:
            raise AuthError(_message(e)) from e

        if response.user is None:
            raise AuthError("Sign in failed - no user returned")
        if response.session is None:
            raise AuthError("Sign in failed - no session returned")
        return to_auth_session(response.session, response.user)

    async def sign_out(self) -> None:
        try:
            self._client.auth.sign_out()
        except Exception as e:
            raise AuthError(_message(e)) from e

    async def get_user(self) -> Optional[UserAccount]:
        try:
            response = self._client.auth.get_user()
        except Exception as e:
            raise AuthError(_message(e)) from e

        if response is None or response.user is None:
            return None
        return to_user_account(response.user)

    async def get_session(self) -> Optional[AuthSession]:
        try:
            session = self._client.auth.get_session()
        except Exception as e:
            raise AuthError(_message(e)) from e

        if session is None:
            return None
        return to_auth_session(session)

    async def update_user_metadata(self, metadata: dict[str, Any]) -> UserAccount:
        try:
            response = self._client.auth.update_user({"data": metadata})
        except Exception as e:
            raise AuthError(_message(e)) from e

        if response is None or response.user is None:
            raise AuthError("Profile update did not return a user")
        return to_user_account(response.user)
