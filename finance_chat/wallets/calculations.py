"""
Wallet Calculations

Balance and limit arithmetic shared by the reconciler and storage.

Monthly limits are ADVISORY for expenses (we warn, we don't block) but
they do cap what a transfer may move out of a wallet.
"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Sequence
from uuid import UUID

from finance_chat.models.ledger import LedgerEntry, TransactionType, Wallet, utc_now


ZERO = Decimal("0")


def monthly_spending(
    entries: Iterable[LedgerEntry],
    wallet_id: UUID,
    now: Optional[datetime] = None,
) -> Decimal:
    """Total expenses booked against a wallet in the calendar month of `now`."""
    now = now or utc_now()
    total = ZERO
    for entry in entries:
        if entry.wallet_id != wallet_id:
            continue
        if entry.type != TransactionType.EXPENSE:
            continue
        if entry.date.year == now.year and entry.date.month == now.month:
            total += entry.amount
    return total


def available_balance(wallet: Wallet, current_month_spending: Decimal = ZERO) -> Decimal:
    """
    What can still leave the wallet.

    Locked wallets have nothing available. With a monthly limit, the
    balance is capped by whatever is left of the limit.
    """
    if wallet.is_locked:
        return ZERO

    available = wallet.balance
    if wallet.monthly_limit:
        remaining_limit = max(ZERO, wallet.monthly_limit - current_month_spending)
        available = min(wallet.balance, remaining_limit)

    return max(ZERO, available)


def has_sufficient_balance(
    wallet: Wallet,
    amount: Decimal,
    current_month_spending: Decimal = ZERO,
) -> bool:
    return available_balance(wallet, current_month_spending) >= amount


def limit_utilization(wallet: Wallet, current_month_spending: Decimal) -> float:
    """Percent of the monthly limit already spent, capped at 100."""
    if not wallet.monthly_limit:
        return 0.0
    return min(100.0, float(current_month_spending / wallet.monthly_limit * 100))


def is_approaching_limit(
    wallet: Wallet,
    current_month_spending: Decimal,
    threshold_percent: float = 80.0,
) -> bool:
    if not wallet.monthly_limit:
        return False
    return limit_utilization(wallet, current_month_spending) >= threshold_percent


def has_exceeded_limit(wallet: Wallet, current_month_spending: Decimal) -> bool:
    if not wallet.monthly_limit:
        return False
    return current_month_spending > wallet.monthly_limit


def is_low_balance(
    wallet: Wallet,
    ratio: float = 0.1,
    fallback_limit: float = 10000.0,
) -> bool:
    """
    Balance under `ratio` of the monthly limit (or of `fallback_limit`
    when the wallet has no limit).
    """
    limit = wallet.monthly_limit or Decimal(str(fallback_limit))
    threshold = limit * Decimal(str(ratio))
    return wallet.balance < threshold


def total_balance(wallets: Sequence[Wallet]) -> Decimal:
    return sum((wallet.balance for wallet in wallets), ZERO)
