"""Services package."""

from finance_chat.services.cache import UserWalletCache
from finance_chat.services.storage import (
    AuditStorageInterface,
    BackendUnavailableError,
    ConflictError,
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)

__all__ = [
    # Cache
    "UserWalletCache",
    # Storage services
    "AuditStorageInterface",
    "BackendUnavailableError",
    "ConflictError",
    "InMemoryAuditStorage",
    "InMemoryLedgerStorage",
    "LedgerStorageInterface",
    "NotFoundError",
    "StorageError",
]
