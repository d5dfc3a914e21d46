"""
In-Memory Storage Implementation

Process-local storage for tests and local runs. A single asyncio lock
serializes writes, which is what makes insert_transaction and
apply_transfer atomic here.
"""

import asyncio
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from finance_chat.models.audit import AuditEvent
from finance_chat.models.ledger import LedgerEntry, TransferRecord, Wallet
from finance_chat.services.storage.interface import (
    AuditStorageInterface,
    ConflictError,
    LedgerStorageInterface,
    NotFoundError,
)
from finance_chat.wallets.calculations import monthly_spending


class InMemoryLedgerStorage(LedgerStorageInterface):
    """
    Wallets, ledger entries and transfers kept in dictionaries.

    Wallets are stored as immutable snapshots and replaced on every balance
    change, so callers holding an old list never see it mutate.
    """

    def __init__(self, wallets: Optional[list[Wallet]] = None):
        self._wallets: dict[UUID, Wallet] = {}
        self._entries: list[LedgerEntry] = []
        self._transfers: list[TransferRecord] = []
        self._lock = asyncio.Lock()

        for wallet in wallets or []:
            self.add_wallet(wallet)

    def add_wallet(self, wallet: Wallet) -> Wallet:
        """Seed a wallet (wallet management itself lives elsewhere)."""
        self._wallets[wallet.id] = wallet
        return wallet

    def wallet(self, wallet_id: UUID) -> Wallet:
        try:
            return self._wallets[wallet_id]
        except KeyError:
            raise NotFoundError(f"Wallet not found: {wallet_id}")

    @property
    def transfers(self) -> list[TransferRecord]:
        return list(self._transfers)

    def _owned_wallet(self, user_id: UUID, wallet_id: Optional[UUID]) -> Wallet:
        if wallet_id is None:
            for wallet in self._wallets.values():
                if wallet.user_id == user_id and wallet.is_default:
                    return wallet
            raise NotFoundError(f"No default wallet for user {user_id}")

        wallet = self.wallet(wallet_id)
        if wallet.user_id != user_id:
            raise NotFoundError(f"Wallet not found: {wallet_id}")
        return wallet

    def _with_balance(self, wallet: Wallet, delta: Decimal) -> Wallet:
        return wallet.model_copy(update={"balance": wallet.balance + delta})

    async def get_wallets(self, user_id: UUID) -> list[Wallet]:
        return [w for w in self._wallets.values() if w.user_id == user_id]

    async def insert_transaction(self, entry: LedgerEntry) -> LedgerEntry:
        async with self._lock:
            wallet = self._owned_wallet(entry.user_id, entry.wallet_id)
            self._wallets[wallet.id] = self._with_balance(wallet, entry.signed_amount)
            self._entries.append(entry)
            return entry

    async def apply_transfer(self, transfer: TransferRecord) -> TransferRecord:
        async with self._lock:
            # Validate everything before touching anything
            source = self._owned_wallet(transfer.user_id, transfer.from_wallet_id)
            destination = self._owned_wallet(transfer.user_id, transfer.to_wallet_id)
            if source.balance < transfer.amount:
                raise ConflictError(
                    f"{source.name} no longer covers {transfer.amount} "
                    f"(balance {source.balance})"
                )

            self._wallets[source.id] = self._with_balance(
                source, transfer.debit.signed_amount
            )
            self._wallets[destination.id] = self._with_balance(
                destination, transfer.credit.signed_amount
            )
            self._entries.extend([transfer.debit, transfer.credit])
            self._transfers.append(transfer)
            return transfer

    async def get_monthly_spending(
        self,
        user_id: UUID,
        wallet_id: UUID,
        now: Optional[datetime] = None,
    ) -> Decimal:
        entries = [e for e in self._entries if e.user_id == user_id]
        return monthly_spending(entries, wallet_id, now)

    async def list_transactions(
        self,
        user_id: UUID,
        wallet_id: Optional[UUID] = None,
        limit: int = 100,
    ) -> list[LedgerEntry]:
        entries = [
            e for e in self._entries
            if e.user_id == user_id and (wallet_id is None or e.wallet_id == wallet_id)
        ]
        entries.sort(key=lambda e: e.created_at, reverse=True)
        return entries[:limit]


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
