"""Auth Services Package"""

from houseshare.services.auth.interface import AuthError, AuthInterface
from houseshare.services.auth.memory import InMemoryAuthService
from houseshare.services.auth.supabase_auth import SupabaseAuthService

__all__ = [
    "AuthError",
    "AuthInterface",
    "InMemoryAuthService",
    "SupabaseAuthService",
]
