"""Wallet resolution and balance arithmetic."""

from finance_chat.wallets.calculations import (
    available_balance,
    has_exceeded_limit,
    has_sufficient_balance,
    is_approaching_limit,
    is_low_balance,
    limit_utilization,
    monthly_spending,
    total_balance,
)
from finance_chat.wallets.resolver import (
    MatchKind,
    ResolutionFailure,
    ResolvedWallet,
    WalletResolutionError,
    find_default_wallet,
    resolve_wallet,
)

__all__ = [
    "MatchKind",
    "ResolutionFailure",
    "ResolvedWallet",
    "WalletResolutionError",
    "available_balance",
    "find_default_wallet",
    "has_exceeded_limit",
    "has_sufficient_balance",
    "is_approaching_limit",
    "is_low_balance",
    "limit_utilization",
    "monthly_spending",
    "resolve_wallet",
    "total_balance",
]
