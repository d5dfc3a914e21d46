"""Tests for wallet resolution and wallet calculations."""

import pytest
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

from finance_chat.models.ledger import LedgerEntry, TransactionType, Wallet
from finance_chat.wallets import (
    MatchKind,
    ResolutionFailure,
    WalletResolutionError,
    available_balance,
    has_exceeded_limit,
    has_sufficient_balance,
    is_approaching_limit,
    is_low_balance,
    limit_utilization,
    monthly_spending,
    resolve_wallet,
    total_balance,
)


class TestResolveWallet:
    """Tests for mapping wallet hints to wallets."""

    def test_exact_match_wins_over_default(self):
        user_id = uuid4()
        savings = Wallet(user_id=user_id, name="Savings")
        main = Wallet(user_id=user_id, name="Main", is_default=True)

        resolved = resolve_wallet("Savings", [savings, main])

        assert resolved.wallet_id == savings.id
        assert resolved.match == MatchKind.EXACT

    def test_exact_match_is_case_insensitive(self, wallets, wallet_by_name):
        resolved = resolve_wallet("BKASH", wallets)
        assert resolved.wallet_id == wallet_by_name["bKash"].id

    @pytest.mark.parametrize("hint", ["", "   ", None, "default", "Default"])
    def test_empty_and_sentinel_resolve_to_default(self, hint, wallets, wallet_by_name):
        resolved = resolve_wallet(hint, wallets)
        assert resolved.wallet_id == wallet_by_name["Cash"].id
        assert resolved.match == MatchKind.DEFAULT

    def test_wallet_named_default_wins_over_sentinel(self, user_id):
        named = Wallet(user_id=user_id, name="Default")
        flagged = Wallet(user_id=user_id, name="Main", is_default=True)
        assert resolve_wallet("default", [named, flagged]).wallet_id == named.id

    def test_unique_substring_match(self, wallets, wallet_by_name):
        resolved = resolve_wallet("credit", wallets)
        assert resolved.wallet_id == wallet_by_name["Credit Card"].id
        assert resolved.match == MatchKind.SUBSTRING

    def test_hint_containing_wallet_name(self, wallets, wallet_by_name):
        resolved = resolve_wallet("my savings account", wallets)
        assert resolved.wallet_id == wallet_by_name["Savings"].id

    def test_ambiguous_substring_falls_back_to_default(self, user_id):
        main = Wallet(user_id=user_id, name="Main", is_default=True)
        savings = Wallet(user_id=user_id, name="Savings")
        goal = Wallet(user_id=user_id, name="Savings Goal")

        resolved = resolve_wallet("sav", [main, savings, goal])

        assert resolved.wallet_id == main.id
        assert resolved.match == MatchKind.DEFAULT

    def test_unknown_hint_falls_back_to_default(self, wallets, wallet_by_name):
        resolved = resolve_wallet("Vault", wallets)
        assert resolved.wallet_id == wallet_by_name["Cash"].id

    def test_locked_wallet_still_resolves(self, wallets):
        resolved = resolve_wallet("Credit Card", wallets)
        assert resolved.is_locked is True

    def test_no_wallets_raises(self):
        with pytest.raises(WalletResolutionError) as exc_info:
            resolve_wallet("Vault", [])
        assert exc_info.value.reason == ResolutionFailure.NO_WALLET_AVAILABLE
        assert exc_info.value.hint == "Vault"

    def test_no_default_wallet_raises(self, user_id):
        with pytest.raises(WalletResolutionError):
            resolve_wallet("default", [Wallet(user_id=user_id, name="Bank")])


class TestWalletCalculations:
    """Tests for balance and limit arithmetic."""

    def _wallet(self, balance, limit=None, locked=False):
        return Wallet(
            user_id=uuid4(),
            name="Cash",
            balance=Decimal(balance),
            monthly_limit=Decimal(limit) if limit is not None else None,
            is_locked=locked,
        )

    def test_available_balance_without_limit(self):
        assert available_balance(self._wallet("500")) == Decimal("500")

    def test_available_balance_capped_by_remaining_limit(self):
        wallet = self._wallet("500", limit="1000")
        assert available_balance(wallet, Decimal("800")) == Decimal("200")

    def test_available_balance_when_limit_spent(self):
        wallet = self._wallet("500", limit="1000")
        assert available_balance(wallet, Decimal("1500")) == Decimal("0")

    def test_locked_wallet_has_nothing_available(self):
        assert available_balance(self._wallet("500", locked=True)) == Decimal("0")

    def test_has_sufficient_balance(self):
        wallet = self._wallet("100")
        assert has_sufficient_balance(wallet, Decimal("100")) is True
        assert has_sufficient_balance(wallet, Decimal("100.01")) is False

    def test_limit_utilization(self):
        wallet = self._wallet("0", limit="1000")
        assert limit_utilization(wallet, Decimal("250")) == 25.0
        assert limit_utilization(wallet, Decimal("5000")) == 100.0
        assert limit_utilization(self._wallet("0"), Decimal("250")) == 0.0

    def test_approaching_and_exceeded(self):
        wallet = self._wallet("0", limit="1000")
        assert is_approaching_limit(wallet, Decimal("799")) is False
        assert is_approaching_limit(wallet, Decimal("800")) is True
        assert has_exceeded_limit(wallet, Decimal("1000")) is False
        assert has_exceeded_limit(wallet, Decimal("1000.01")) is True

    def test_low_balance_uses_limit_or_fallback(self):
        assert is_low_balance(self._wallet("99", limit="1000")) is True
        assert is_low_balance(self._wallet("100", limit="1000")) is False
        assert is_low_balance(self._wallet("999")) is True
        assert is_low_balance(self._wallet("1000")) is False

    def test_monthly_spending_counts_current_month_expenses(self):
        wallet_id = uuid4()
        user_id = uuid4()
        now = datetime(2024, 6, 15, tzinfo=timezone.utc)

        def entry(amount, tx_type, when, wallet=wallet_id):
            return LedgerEntry(
                user_id=user_id,
                wallet_id=wallet,
                amount=Decimal(amount),
                category="x",
                type=tx_type,
                date=when,
            )

        entries = [
            entry("100", TransactionType.EXPENSE, datetime(2024, 6, 1, tzinfo=timezone.utc)),
            entry("50", TransactionType.EXPENSE, datetime(2024, 6, 14, tzinfo=timezone.utc)),
            entry("999", TransactionType.INCOME, datetime(2024, 6, 2, tzinfo=timezone.utc)),
            entry("70", TransactionType.EXPENSE, datetime(2024, 5, 31, tzinfo=timezone.utc)),
            entry("30", TransactionType.EXPENSE, now, wallet=uuid4()),
        ]

        assert monthly_spending(entries, wallet_id, now) == Decimal("150")

    def test_total_balance(self, wallets):
        assert total_balance(wallets) == Decimal("40000")
        assert total_balance([]) == Decimal("0")
