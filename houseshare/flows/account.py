"""Sign up, sign in and profile management."""

from typing import Optional

from houseshare.audit import AuditLogger
from houseshare.models.forms import AuthSession, UserAccount
from houseshare.services.auth import AuthError, AuthInterface
from houseshare.validation import FormValidationError, FormValidator


class AccountFlow:
    """
    Orchestrates account actions against the auth service.

    Failed auth calls are audited and re-raised as AuthError with the
    service's message, which the UI shows as is.
    """

    def __init__(
        self,
        auth: AuthInterface,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[FormValidator] = None,
    ):
        self._auth = auth
        self._audit_logger = audit_logger
        self._validator = validator or FormValidator()

    async def _auth_failed(self, action: str, error: Exception) -> None:
        if self._audit_logger:
            await self._audit_logger.log_auth_failed(action=action, error_message=str(error))

    async def sign_up(
        self,
        email: str,
        password: str,
        first_name: str = "",
        last_name: str = "",
    ) -> UserAccount:
        """
        Create an account.

        The profile metadata carries the full name as well as its parts.

        Raises:
            FormValidationError: Invalid email or password too short
            AuthError: The auth service rejected the sign-up
        """
        result = self._validator.validate_sign_up(email, password, first_name, last_name)
        if not result.is_valid:
            if self._audit_logger:
                await self._audit_logger.log_form_rejected(
                    form=result.form,
                    issues=[issue.model_dump() for issue in result.issues],
                )
            raise FormValidationError(result)

        first_name = first_name.strip()
        last_name = last_name.strip()
        metadata = {
            "name": f"{first_name} {last_name}".strip(),
            "first_name": first_name,
            "last_name": last_name,
        }

        try:
            user = await self._auth.sign_up(email.strip(), password, metadata)
        except AuthError as e:
            await self._auth_failed("sign_up", e)
            raise

        if self._audit_logger:
            await self._audit_logger.log_user_signed_up(user_id=user.id, email=user.email or email)
        return user

    async def sign_in(self, email: str, password: str) -> AuthSession:
        """
        Sign in with email and password.

        Raises:
            AuthError: Bad credentials, or the service returned no user or session
        """
        if not email.strip() or not password:
            error = AuthError("Please enter your email and password")
            await self._auth_failed("sign_in", error)
            raise error

        try:
            session = await self._auth.sign_in(email.strip(), password)
        except AuthError as e:
            await self._auth_failed("sign_in", e)
            raise

        if self._audit_logger:
            await self._audit_logger.log_user_signed_in(user_id=session.user.id)
        return session

    async def sign_out(self) -> None:
        user = await self.current_user()
        try:
            await self._auth.sign_out()
        except AuthError as e:
            await self._auth_failed("sign_out", e)
            raise

        if self._audit_logger:
            await self._audit_logger.log_user_signed_out(user_id=user.id if user else None)

    async def current_user(self) -> Optional[UserAccount]:
        """The signed-in user; None when signed out or the lookup fails."""
        try:
            return await self._auth.get_user()
        except AuthError as e:
            await self._auth_failed("get_user", e)
            return None

    async def update_profile(self, first_name: str, last_name: str) -> UserAccount:
        """Store new first and last names in the user's metadata."""
        first_name = first_name.strip()
        last_name = last_name.strip()
        metadata = {
            "first_name": first_name,
            "last_name": last_name,
            "name": f"{first_name} {last_name}".strip(),
        }

        try:
            user = await self._auth.update_user_metadata(metadata)
        except AuthError as e:
            await self._auth_failed("update_user", e)
            raise

        if self._audit_logger:
            await self._audit_logger.log_profile_updated(user_id=user.id, fields=sorted(metadata))
        return user
