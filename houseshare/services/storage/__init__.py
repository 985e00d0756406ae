"""
Storage Services Package

Provides the abstract storage interface and its implementations.
Supabase is the production backend; the in-memory store serves tests
and offline mode.
"""

from houseshare.services.storage.interface import (
    DuplicateError,
    HouseStorageInterface,
    NotFoundError,
    StorageConnectionError,
    StorageError,
)
from houseshare.services.storage.memory import InMemoryHouseStorage
from houseshare.services.storage.supabase_store import (
    SupabaseClient,
    SupabaseHouseStorage,
    to_storage_error,
)

__all__ = [
    # Interface
    "HouseStorageInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    # Implementations
    "InMemoryHouseStorage",
    "SupabaseClient",
    "SupabaseHouseStorage",
    "to_storage_error",
]
