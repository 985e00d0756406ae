"""Services package."""

from houseshare.services.auth import (
    AuthError,
    AuthInterface,
    InMemoryAuthService,
    SupabaseAuthService,
)
from houseshare.services.storage import (
    DuplicateError,
    HouseStorageInterface,
    InMemoryHouseStorage,
    NotFoundError,
    StorageConnectionError,
    StorageError,
    SupabaseClient,
    SupabaseHouseStorage,
)

__all__ = [
    # Auth services
    "AuthError",
    "AuthInterface",
    "InMemoryAuthService",
    "SupabaseAuthService",
    # Storage services
    "DuplicateError",
    "HouseStorageInterface",
    "InMemoryHouseStorage",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    "SupabaseClient",
    "SupabaseHouseStorage",
]
