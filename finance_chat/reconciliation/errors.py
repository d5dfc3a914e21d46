"""
Reconciliation Errors

Each error is fatal to one directive only. The reconciler turns them into
failed outcomes; they never abort the rest of a message.

The one exception that does escape is BackendUnavailableError from the
storage layer: if storage cannot be reached at all, there is nothing
useful left to do for the message.
"""

from decimal import Decimal

from finance_chat.models.ledger import Wallet
from finance_chat.models.results import ReconcileErrorCode
from finance_chat.wallets.resolver import WalletResolutionError


class ReconcileError(Exception):
    """Base class for per-directive reconciliation failures."""

    code: ReconcileErrorCode = ReconcileErrorCode.VALIDATION


class ValidationError(ReconcileError):
    """The directive breaks a business rule (amount, currency...)."""

    code = ReconcileErrorCode.VALIDATION


class WalletLockedError(ReconcileError):
    """The resolved wallet does not accept new mutations."""

    code = ReconcileErrorCode.WALLET_LOCKED

    def __init__(self, wallet: Wallet):
        self.wallet = wallet
        super().__init__(f"Wallet '{wallet.name}' is locked")


class SameWalletTransferError(ReconcileError):
    """Transfer source and destination resolved to the same wallet."""

    code = ReconcileErrorCode.SAME_WALLET_TRANSFER

    def __init__(self, wallet: Wallet):
        self.wallet = wallet
        super().__init__(
            f"Transfer source and destination are both '{wallet.name}'"
        )


class InsufficientBalanceError(ReconcileError):
    """The transfer asks for more than the source wallet can give."""

    code = ReconcileErrorCode.INSUFFICIENT_BALANCE

    def __init__(self, wallet: Wallet, requested: Decimal, available: Decimal):
        self.wallet = wallet
        self.requested = requested
        self.available = available
        self.shortfall = requested - available
        super().__init__(
            f"Insufficient funds in {wallet.name}. "
            f"Requested {requested}, available {available} {wallet.currency}"
        )


class PersistenceError(ReconcileError):
    """Storage rejected or failed the write. Not retried."""

    code = ReconcileErrorCode.PERSISTENCE


def error_code_for(error: Exception) -> ReconcileErrorCode:
    """Outcome code for an exception raised while reconciling."""
    if isinstance(error, WalletResolutionError):
        return ReconcileErrorCode.NO_WALLET_AVAILABLE
    if isinstance(error, ReconcileError):
        return error.code
    raise TypeError(f"Not a reconciliation error: {type(error).__name__}")


__all__ = [
    "InsufficientBalanceError",
    "PersistenceError",
    "ReconcileError",
    "SameWalletTransferError",
    "ValidationError",
    "WalletLockedError",
    "WalletResolutionError",
    "error_code_for",
]
