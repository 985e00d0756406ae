"""
Abstract Auth Interface

Account management is delegated to the backend's auth service. The
workflows only need a handful of calls, so this interface keeps them
independent of the client library.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from houseshare.models.forms import AuthSession, UserAccount


class AuthInterface(ABC):
    """
    Abstract interface for the auth service.

    Every method raises AuthError when the service rejects the call.
    """

    @abstractmethod
    async def sign_up(
        self,
        email: str,
        password: str,
        metadata: dict[str, Any],
    ) -> UserAccount:
        """
        Create an account.

        Args:
            email: Login email
            password: Plain password, checked for length by the caller
            metadata: Profile data stored with the user (name, first_name, last_name)
        """
        pass

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> AuthSession:
        """
        Sign in with email and password.

        Raises:
            AuthError: If the credentials are rejected or no session is returned
        """
        pass

    @abstractmethod
    async def sign_out(self) -> None:
        pass

    @abstractmethod
    async def get_user(self) -> Optional[UserAccount]:
        """The signed-in user, None when signed out."""
        pass

    @abstractmethod
    async def get_session(self) -> Optional[AuthSession]:
        """The current session, None when signed out."""
        pass

    @abstractmethod
    async def update_user_metadata(self, metadata: dict[str, Any]) -> UserAccount:
        """Merge metadata into the signed-in user's profile."""
        pass


class AuthError(Exception):
    """The auth service rejected a call."""
    pass
