"""
Reconciler

Turns a parsed directive into a committed ledger mutation, or into a
failed outcome that says why.

RULES:
- Transactions: amount > 0, wallet resolves and is not locked. Monthly
  limits are ADVISORY for expenses: we warn, we never block.
- Transfers: two different wallets, neither locked, same currency, and
  the source must be able to cover the amount (balance, capped by what
  is left of its monthly limit). This one BLOCKS, because a transfer
  moves real money.
- One write per transaction; one atomic write per transfer.
- A failed directive never stops the next one. Outcomes come back in
  extraction order.
- No retries. A storage conflict is reported, not retried.
"""

from datetime import datetime
from decimal import Decimal
from typing import Awaitable, Callable, Optional, Sequence
from uuid import UUID

import structlog
from pydantic import ValidationError as ModelValidationError

from finance_chat.audit import AuditLogger
from finance_chat.config import LedgerSettings, get_settings
from finance_chat.models.ledger import (
    Directive,
    LedgerEntry,
    TransactionDirective,
    TransactionType,
    TransferDirective,
    TransferRecord,
    Wallet,
    utc_now,
)
from finance_chat.models.results import OutcomeStatus, ReconcileOutcome
from finance_chat.reconciliation.errors import (
    InsufficientBalanceError,
    PersistenceError,
    ReconcileError,
    SameWalletTransferError,
    ValidationError,
    WalletLockedError,
    WalletResolutionError,
    error_code_for,
)
from finance_chat.services.storage import (
    BackendUnavailableError,
    LedgerStorageInterface,
    StorageError,
)
from finance_chat.wallets.calculations import (
    ZERO,
    available_balance,
    has_exceeded_limit,
    is_approaching_limit,
    is_low_balance,
    limit_utilization,
)
from finance_chat.wallets.resolver import resolve_wallet


logger = structlog.get_logger(__name__)


WalletLoader = Callable[[UUID], Awaitable[list[Wallet]]]


def _first_error(error: ModelValidationError) -> str:
    """Readable message for the first field a ledger model rejected."""
    first = error.errors()[0]
    field = ".".join(str(part) for part in first["loc"])
    return f"{field}: {first['msg']}" if field else first["msg"]


class Reconciler:
    """
    Validates resolved directives and commits them through storage.

    Stateless between calls: wallet snapshots are passed in, and every
    balance change lives in storage.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        settings: Optional[LedgerSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._storage = storage
        self._settings = settings or get_settings().ledger
        self._audit_logger = audit_logger
        self._clock = clock

    async def reconcile(
        self,
        directive: Directive,
        user_id: UUID,
        wallets: Sequence[Wallet],
        index: int = 0,
        correlation_id: Optional[UUID] = None,
    ) -> ReconcileOutcome:
        """
        Reconcile one directive against a snapshot of the user's wallets.

        Returns:
            A committed outcome with the stored entry/transfer, or a failed
            outcome carrying the error code and message.

        Raises:
            BackendUnavailableError: storage could not be reached at all
        """
        warnings: list[str] = []
        try:
            if isinstance(directive, TransactionDirective):
                entry = await self._commit_transaction(
                    directive, user_id, wallets, warnings, correlation_id
                )
                return ReconcileOutcome(
                    index=index,
                    directive=directive,
                    status=OutcomeStatus.COMMITTED,
                    entry=entry,
                    warnings=warnings,
                )

            transfer = await self._commit_transfer(
                directive, user_id, wallets, warnings, correlation_id
            )
            return ReconcileOutcome(
                index=index,
                directive=directive,
                status=OutcomeStatus.COMMITTED,
                transfer=transfer,
                warnings=warnings,
            )
        except (ReconcileError, WalletResolutionError) as e:
            code = error_code_for(e)
            logger.info(
                "directive_failed",
                index=index,
                kind=directive.kind,
                error_code=code.value,
                error=str(e),
            )
            if self._audit_logger:
                await self._audit_logger.log_directive_failed(
                    user_id=user_id,
                    index=index,
                    kind=directive.kind,
                    error_code=code.value,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            return ReconcileOutcome(
                index=index,
                directive=directive,
                status=OutcomeStatus.FAILED,
                error_code=code,
                error_message=str(e),
            )

    async def reconcile_all(
        self,
        directives: Sequence[Directive],
        user_id: UUID,
        load_wallets: Optional[WalletLoader] = None,
        on_commit: Optional[Callable[[UUID], None]] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[ReconcileOutcome]:
        """
        Reconcile directives one after another, in the given order.

        After every commit the wallet snapshot is reloaded, so a transfer
        that funds a wallet is visible to the transaction that follows it.

        Args:
            load_wallets: Where wallet snapshots come from; defaults to storage
            on_commit: Called with the user id after each successful commit,
                before wallets are reloaded (e.g. cache invalidation)
        """
        load_wallets = load_wallets or self._storage.get_wallets
        outcomes: list[ReconcileOutcome] = []
        if not directives:
            return outcomes

        wallets = await load_wallets(user_id)
        for index, directive in enumerate(directives):
            outcome = await self.reconcile(
                directive,
                user_id,
                wallets,
                index=index,
                correlation_id=correlation_id,
            )
            outcomes.append(outcome)

            if outcome.ok:
                if on_commit is not None:
                    on_commit(user_id)
                wallets = await load_wallets(user_id)

        return outcomes

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def _commit_transaction(
        self,
        directive: TransactionDirective,
        user_id: UUID,
        wallets: Sequence[Wallet],
        warnings: list[str],
        correlation_id: Optional[UUID],
    ) -> LedgerEntry:
        if directive.amount <= 0:
            raise ValidationError(
                f"Amount must be greater than zero, got {directive.amount}"
            )

        wallet = resolve_wallet(directive.wallet_hint, wallets).wallet
        if wallet.is_locked:
            raise WalletLockedError(wallet)

        is_expense = directive.type == TransactionType.EXPENSE
        if is_expense and wallet.monthly_limit:
            await self._check_monthly_limit(
                wallet, directive.amount, user_id, warnings, correlation_id
            )

        now = self._clock()
        try:
            entry = LedgerEntry(
                user_id=user_id,
                wallet_id=wallet.id,
                amount=directive.amount,
                category=directive.category,
                description=directive.description,
                date=now,
                type=directive.type,
                extracted_from_chat=True,
                confirmed=False,
                created_at=now,
            )
        except ModelValidationError as e:
            raise ValidationError(_first_error(e)) from None

        stored = await self._persist(self._storage.insert_transaction(entry))

        if self._audit_logger:
            await self._audit_logger.log_transaction_saved(
                entry=stored,
                wallet=wallet,
                correlation_id=correlation_id,
            )

        if is_expense:
            updated = wallet.model_copy(
                update={"balance": wallet.balance - directive.amount}
            )
            await self._check_low_balance(updated, user_id, warnings, correlation_id)

        return stored

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    async def _commit_transfer(
        self,
        directive: TransferDirective,
        user_id: UUID,
        wallets: Sequence[Wallet],
        warnings: list[str],
        correlation_id: Optional[UUID],
    ) -> TransferRecord:
        if directive.amount <= 0:
            raise ValidationError(
                f"Amount must be greater than zero, got {directive.amount}"
            )

        source = resolve_wallet(directive.from_wallet_hint, wallets).wallet
        destination = resolve_wallet(directive.to_wallet_hint, wallets).wallet

        if source.id == destination.id:
            raise SameWalletTransferError(source)
        if source.is_locked:
            raise WalletLockedError(source)
        if destination.is_locked:
            raise WalletLockedError(destination)
        if source.currency != destination.currency:
            raise ValidationError(
                f"Cannot transfer between {source.currency} ({source.name}) "
                f"and {destination.currency} ({destination.name})"
            )

        spending = ZERO
        if source.monthly_limit:
            spending = await self._persist(
                self._storage.get_monthly_spending(user_id, source.id, self._clock())
            )
        available = available_balance(source, spending)
        if directive.amount > available:
            raise InsufficientBalanceError(source, directive.amount, available)

        try:
            transfer = TransferRecord.build(
                user_id=user_id,
                from_wallet_id=source.id,
                to_wallet_id=destination.id,
                amount=directive.amount,
                description=directive.description,
                extracted_from_chat=True,
            )
        except ModelValidationError as e:
            raise ValidationError(_first_error(e)) from None

        stored = await self._persist(self._storage.apply_transfer(transfer))

        if self._audit_logger:
            await self._audit_logger.log_transfer_applied(
                transfer=stored,
                from_wallet=source,
                to_wallet=destination,
                correlation_id=correlation_id,
            )

        updated = source.model_copy(
            update={"balance": source.balance - directive.amount}
        )
        await self._check_low_balance(updated, user_id, warnings, correlation_id)

        return stored

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _persist(self, call: Awaitable):
        """Await a storage call, mapping storage failures to PersistenceError."""
        try:
            return await call
        except BackendUnavailableError:
            raise
        except StorageError as e:
            raise PersistenceError(str(e)) from e

    async def _check_monthly_limit(
        self,
        wallet: Wallet,
        amount: Decimal,
        user_id: UUID,
        warnings: list[str],
        correlation_id: Optional[UUID],
    ) -> None:
        """Advisory only: adds a warning, never raises a ReconcileError."""
        try:
            spending = await self._storage.get_monthly_spending(
                user_id, wallet.id, self._clock()
            )
        except BackendUnavailableError:
            raise
        except StorageError as e:
            logger.warning("monthly_spending_unavailable", wallet=wallet.name, error=str(e))
            return

        projected = spending + amount
        if has_exceeded_limit(wallet, projected):
            warnings.append(
                f"{wallet.name} is over its monthly limit "
                f"({projected} of {wallet.monthly_limit} {wallet.currency})"
            )
        elif is_approaching_limit(
            wallet, projected, self._settings.approaching_limit_percent
        ):
            warnings.append(
                f"{wallet.name} has used {limit_utilization(wallet, projected):.0f}% "
                f"of its monthly limit"
            )
        else:
            return

        if self._audit_logger:
            await self._audit_logger.log_limit_warning(
                user_id=user_id,
                wallet=wallet,
                utilization=limit_utilization(wallet, projected),
                correlation_id=correlation_id,
            )

    async def _check_low_balance(
        self,
        wallet: Wallet,
        user_id: UUID,
        warnings: list[str],
        correlation_id: Optional[UUID],
    ) -> None:
        if not is_low_balance(
            wallet,
            ratio=self._settings.low_balance_ratio,
            fallback_limit=self._settings.low_balance_fallback_limit,
        ):
            return

        warnings.append(
            f"Your {wallet.name} balance is low ({wallet.currency} {wallet.balance})."
        )
        if self._audit_logger:
            await self._audit_logger.log_low_balance(
                user_id=user_id,
                wallet=wallet,
                correlation_id=correlation_id,
            )
