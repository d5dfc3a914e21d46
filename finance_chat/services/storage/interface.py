"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep reconciliation logic decoupled from storage implementation

The storage layer owns concurrency control. Balance updates that conflict
with a concurrent write must be rejected with ConflictError; the caller
never retries.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from finance_chat.models.audit import AuditEvent
from finance_chat.models.ledger import LedgerEntry, TransferRecord, Wallet


class LedgerStorageInterface(ABC):
    """
    Abstract interface for wallets and ledger entries.

    Every method is scoped to a single user.
    """

    @abstractmethod
    async def get_wallets(self, user_id: UUID) -> list[Wallet]:
        """
        Get all wallets of a user, in display order.

        Raises:
            BackendUnavailableError: If storage cannot be reached
        """
        pass

    @abstractmethod
    async def insert_transaction(self, entry: LedgerEntry) -> LedgerEntry:
        """
        Persist one ledger entry and apply it to its wallet balance.

        Both happen or neither does.

        Returns:
            The stored entry

        Raises:
            NotFoundError: If the entry's wallet does not exist
            ConflictError: If the wallet changed underneath the write
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def apply_transfer(self, transfer: TransferRecord) -> TransferRecord:
        """
        Persist a transfer: its debit leg, its credit leg and both balance
        updates, atomically.

        No partial transfer may ever be observable.

        Raises:
            NotFoundError: If either wallet does not exist
            ConflictError: If the source can no longer cover the amount
            StorageError: If the write fails (nothing is committed)
        """
        pass

    @abstractmethod
    async def get_monthly_spending(
        self,
        user_id: UUID,
        wallet_id: UUID,
        now: Optional[datetime] = None,
    ) -> Decimal:
        """
        Sum of expenses on a wallet in the current calendar month.
        """
        pass

    @abstractmethod
    async def list_transactions(
        self,
        user_id: UUID,
        wallet_id: Optional[UUID] = None,
        limit: int = 100,
    ) -> list[LedgerEntry]:
        """
        Most recent ledger entries of a user (newest first).
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (one processed assistant reply).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConflictError(StorageError):
    """A concurrent write changed the data this write depended on."""
    pass


class BackendUnavailableError(StorageError):
    """Could not connect to storage backend."""
    pass
