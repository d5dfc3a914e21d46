"""Directive reconciliation package."""

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
from finance_chat.reconciliation.reconciler import Reconciler

__all__ = [
    "InsufficientBalanceError",
    "PersistenceError",
    "ReconcileError",
    "Reconciler",
    "SameWalletTransferError",
    "ValidationError",
    "WalletLockedError",
    "WalletResolutionError",
    "error_code_for",
]
