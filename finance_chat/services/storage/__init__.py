"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
In-memory storage backs tests and local runs; Google Sheets is the hosted
backend. Both follow the same interface, so either can be swapped in.
"""

from finance_chat.services.storage.interface import (
    AuditStorageInterface,
    BackendUnavailableError,
    ConflictError,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)
from finance_chat.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
)
from finance_chat.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "LedgerStorageInterface",
    # Exceptions
    "BackendUnavailableError",
    "ConflictError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryLedgerStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStorage",
]
