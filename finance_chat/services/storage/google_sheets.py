"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the hosted storage backend because:
1. Users can view their wallets and ledger directly in Sheets
2. No database setup required
3. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions: ledger rows are appended first and balance cells are
  updated in a single batch request afterwards; if the balance update
  fails, the appended rows are deleted again
- Optimistic concurrency: a balance cell is re-read right before it is
  written, and a mismatch is reported as ConflictError

The implementation follows the abstract interface, so we can swap
to PostgreSQL later without changing reconciliation logic.
"""

import json
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional
from uuid import UUID

import gspread
from gspread.utils import rowcol_to_a1
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from finance_chat.config import get_settings
from finance_chat.models.audit import AuditEvent, AuditEventType, AuditSeverity
from finance_chat.models.ledger import (
    LedgerEntry,
    TransactionType,
    TransferRecord,
    Wallet,
    WalletType,
)
from finance_chat.services.storage.interface import (
    AuditStorageInterface,
    BackendUnavailableError,
    ConflictError,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)
from finance_chat.wallets.calculations import monthly_spending


WALLET_COLUMNS = [
    "id",
    "user_id",
    "name",
    "type",
    "balance",
    "currency",
    "is_default",
    "is_locked",
    "monthly_limit",
]

TRANSACTION_COLUMNS = [
    "id",
    "user_id",
    "wallet_id",
    "amount",
    "category",
    "description",
    "date",
    "type",
    "extracted_from_chat",
    "confirmed",
    "created_at",
    "transfer_id",
]

TRANSFER_COLUMNS = [
    "id",
    "user_id",
    "from_wallet_id",
    "to_wallet_id",
    "amount",
    "description",
    "created_at",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "user_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_code",
    "error_message",
]

# 1-based column of the balance cell in the Wallets sheet
BALANCE_COLUMN = WALLET_COLUMNS.index("balance") + 1


def _safe_get(row: list, index: int, default: str = "") -> str:
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise BackendUnavailableError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise BackendUnavailableError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise BackendUnavailableError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int = 1000,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_wallets_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.wallets_sheet_name, WALLET_COLUMNS, rows=200
        )

    def get_transactions_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.transactions_sheet_name, TRANSACTION_COLUMNS
        )

    def get_transfers_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.transfers_sheet_name, TRANSFER_COLUMNS
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


class GoogleSheetsLedgerStorage(LedgerStorageInterface):
    """
    Google Sheets implementation of ledger storage.

    One wallet per row in Wallets, one ledger entry per row in
    Transactions, one row per transfer in Transfers.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    # ------------------------------------------------------------------
    # Row conversion
    # ------------------------------------------------------------------

    def _row_to_wallet(self, row: list) -> Wallet:
        limit = _safe_get(row, 8)
        return Wallet(
            id=UUID(_safe_get(row, 0)),
            user_id=UUID(_safe_get(row, 1)),
            name=_safe_get(row, 2),
            type=WalletType(_safe_get(row, 3, "other")),
            balance=Decimal(_safe_get(row, 4, "0")),
            currency=_safe_get(row, 5, "USD"),
            is_default=_safe_get(row, 6).lower() == "true",
            is_locked=_safe_get(row, 7).lower() == "true",
            monthly_limit=Decimal(limit) if limit else None,
        )

    def _entry_to_row(self, entry: LedgerEntry) -> list:
        return [
            str(entry.id),
            str(entry.user_id),
            str(entry.wallet_id) if entry.wallet_id else "",
            str(entry.amount),
            entry.category,
            entry.description,
            entry.date.isoformat(),
            entry.type.value,
            str(entry.extracted_from_chat),
            str(entry.confirmed),
            entry.created_at.isoformat(),
            str(entry.transfer_id) if entry.transfer_id else "",
        ]

    def _row_to_entry(self, row: list) -> LedgerEntry:
        return LedgerEntry(
            id=UUID(_safe_get(row, 0)),
            user_id=UUID(_safe_get(row, 1)),
            wallet_id=UUID(_safe_get(row, 2)) if _safe_get(row, 2) else None,
            amount=Decimal(_safe_get(row, 3)),
            category=_safe_get(row, 4),
            description=_safe_get(row, 5),
            date=datetime.fromisoformat(_safe_get(row, 6)),
            type=TransactionType(_safe_get(row, 7)),
            extracted_from_chat=_safe_get(row, 8).lower() == "true",
            confirmed=_safe_get(row, 9).lower() == "true",
            created_at=datetime.fromisoformat(_safe_get(row, 10)),
            transfer_id=UUID(_safe_get(row, 11)) if _safe_get(row, 11) else None,
        )

    def _transfer_to_row(self, transfer: TransferRecord) -> list:
        return [
            str(transfer.id),
            str(transfer.user_id),
            str(transfer.from_wallet_id),
            str(transfer.to_wallet_id),
            str(transfer.amount),
            transfer.description,
            transfer.created_at.isoformat(),
        ]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _locate_wallet(
        self,
        sheet: gspread.Worksheet,
        user_id: UUID,
        wallet_id: Optional[UUID],
    ) -> tuple[int, Wallet]:
        """Find a wallet row; None means the user's default wallet."""
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
            if not row or not row[0] or _safe_get(row, 1) != str(user_id):
                continue
            if wallet_id is None:
                if _safe_get(row, 6).lower() == "true":
                    return idx, self._row_to_wallet(row)
            elif row[0] == str(wallet_id):
                return idx, self._row_to_wallet(row)

        raise NotFoundError(f"Wallet not found: {wallet_id or 'default'}")

    def _check_balance_unchanged(
        self,
        sheet: gspread.Worksheet,
        row_idx: int,
        wallet: Wallet,
    ) -> None:
        current = sheet.cell(row_idx, BALANCE_COLUMN).value or "0"
        try:
            unchanged = Decimal(current) == wallet.balance
        except InvalidOperation:
            unchanged = False
        if not unchanged:
            raise ConflictError(
                f"Balance of {wallet.name} changed during the write"
            )

    def _delete_rows_by_id(self, sheet: gspread.Worksheet, ids: set[str]) -> None:
        """Remove rows whose first cell is one of `ids` (rollback helper)."""
        rows = sheet.get_all_values()
        # Bottom-up so indices stay valid
        for idx in range(len(rows), 1, -1):
            row = rows[idx - 1]
            if row and row[0] in ids:
                sheet.delete_rows(idx)

    # ------------------------------------------------------------------
    # Interface
    # ------------------------------------------------------------------

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def get_wallets(self, user_id: UUID) -> list[Wallet]:
        try:
            sheet = self._client.get_wallets_sheet()
            wallets = []
            for row in sheet.get_all_values()[1:]:
                if not row or not row[0] or _safe_get(row, 1) != str(user_id):
                    continue
                try:
                    wallets.append(self._row_to_wallet(row))
                except Exception:
                    continue  # Skip malformed rows
            return wallets
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read wallets: {e}")

    async def insert_transaction(self, entry: LedgerEntry) -> LedgerEntry:
        try:
            wallets_sheet = self._client.get_wallets_sheet()
            tx_sheet = self._client.get_transactions_sheet()

            row_idx, wallet = self._locate_wallet(
                wallets_sheet, entry.user_id, entry.wallet_id
            )
            new_balance = wallet.balance + entry.signed_amount
            self._check_balance_unchanged(wallets_sheet, row_idx, wallet)

            tx_sheet.append_row(self._entry_to_row(entry), value_input_option="RAW")
            try:
                wallets_sheet.update_cell(row_idx, BALANCE_COLUMN, str(new_balance))
            except Exception:
                self._delete_rows_by_id(tx_sheet, {str(entry.id)})
                raise

            return entry
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save transaction: {e}")

    async def apply_transfer(self, transfer: TransferRecord) -> TransferRecord:
        try:
            wallets_sheet = self._client.get_wallets_sheet()
            tx_sheet = self._client.get_transactions_sheet()
            transfers_sheet = self._client.get_transfers_sheet()

            source_idx, source = self._locate_wallet(
                wallets_sheet, transfer.user_id, transfer.from_wallet_id
            )
            dest_idx, destination = self._locate_wallet(
                wallets_sheet, transfer.user_id, transfer.to_wallet_id
            )
            self._check_balance_unchanged(wallets_sheet, source_idx, source)
            self._check_balance_unchanged(wallets_sheet, dest_idx, destination)
            if source.balance < transfer.amount:
                raise ConflictError(
                    f"{source.name} no longer covers {transfer.amount}"
                )

            tx_sheet.append_rows(
                [self._entry_to_row(transfer.debit), self._entry_to_row(transfer.credit)],
                value_input_option="RAW",
            )
            # Everything after the first append is undone together
            try:
                transfers_sheet.append_row(
                    self._transfer_to_row(transfer), value_input_option="RAW"
                )
                # One request for both balances
                wallets_sheet.batch_update([
                    {
                        "range": rowcol_to_a1(source_idx, BALANCE_COLUMN),
                        "values": [[str(source.balance - transfer.amount)]],
                    },
                    {
                        "range": rowcol_to_a1(dest_idx, BALANCE_COLUMN),
                        "values": [[str(destination.balance + transfer.amount)]],
                    },
                ])
            except Exception:
                self._delete_rows_by_id(
                    tx_sheet, {str(transfer.debit.id), str(transfer.credit.id)}
                )
                self._delete_rows_by_id(transfers_sheet, {str(transfer.id)})
                raise

            return transfer
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to apply transfer: {e}")

    async def list_transactions(
        self,
        user_id: UUID,
        wallet_id: Optional[UUID] = None,
        limit: int = 100,
    ) -> list[LedgerEntry]:
        try:
            sheet = self._client.get_transactions_sheet()
            entries = []
            for row in sheet.get_all_values()[1:]:
                if not row or not row[0] or _safe_get(row, 1) != str(user_id):
                    continue
                if wallet_id is not None and _safe_get(row, 2) != str(wallet_id):
                    continue
                try:
                    entries.append(self._row_to_entry(row))
                except Exception:
                    continue  # Skip malformed rows

            entries.sort(key=lambda e: e.created_at, reverse=True)
            return entries[:limit]
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list transactions: {e}")

    async def get_monthly_spending(
        self,
        user_id: UUID,
        wallet_id: UUID,
        now: Optional[datetime] = None,
    ) -> Decimal:
        entries = await self.list_transactions(user_id, wallet_id=wallet_id, limit=10000)
        return monthly_spending(entries, wallet_id, now)


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        return AuditEvent(
            event_id=UUID(_safe_get(row, 0)),
            timestamp=datetime.fromisoformat(_safe_get(row, 1)),
            event_type=AuditEventType(_safe_get(row, 2)),
            severity=AuditSeverity(_safe_get(row, 3)),
            user_id=UUID(_safe_get(row, 4)) if _safe_get(row, 4) else None,
            entity_type=_safe_get(row, 5) or None,
            entity_id=UUID(_safe_get(row, 6)) if _safe_get(row, 6) else None,
            correlation_id=UUID(_safe_get(row, 7)) if _safe_get(row, 7) else None,
            description=_safe_get(row, 8),
            details=json.loads(_safe_get(row, 9)) if _safe_get(row, 9) else {},
            error_code=_safe_get(row, 10) or None,
            error_message=_safe_get(row, 11) or None,
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        sheet = self._client.get_audit_sheet()
        sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
        return True

    async def _all_events(self) -> list[AuditEvent]:
        try:
            sheet = self._client.get_audit_sheet()
            events = []
            for row in sheet.get_all_values()[1:]:
                if row and row[0]:
                    try:
                        events.append(self._row_to_event(row))
                    except Exception:
                        continue
            return events
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            e for e in await self._all_events()
            if e.correlation_id == correlation_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = await self._all_events()
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
