"""
Wallet Resolver

Maps the free-text wallet hint the assistant wrote ("bKash", "savings",
"default") to one of the user's wallets.

Resolution order:
1. Empty hint → default wallet
2. Case-insensitive exact name match
3. Sentinel "default" → default wallet
4. Case-insensitive substring match (either direction), if exactly one
   wallet qualifies
5. Otherwise → default wallet
6. No default wallet → WalletResolutionError

DESIGN DECISION: An ambiguous substring match (two or more wallets
qualify) falls back to the default wallet. We do not guess between
"Savings" and "Savings Goal" for a hint of "sav".

Pure lookup: no I/O, no side effects.
"""

from enum import Enum
from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict

from finance_chat.models.ledger import DEFAULT_WALLET_HINT, Wallet


class MatchKind(str, Enum):
    """How a wallet was picked."""
    EXACT = "exact"
    SUBSTRING = "substring"
    DEFAULT = "default"


class ResolutionFailure(str, Enum):
    NO_WALLET_AVAILABLE = "NoWalletAvailable"


class WalletResolutionError(Exception):
    """No wallet could be resolved for a hint."""

    def __init__(
        self,
        hint: str,
        reason: ResolutionFailure = ResolutionFailure.NO_WALLET_AVAILABLE,
    ):
        self.hint = hint
        self.reason = reason
        super().__init__(
            f"No wallet available for '{hint}': the user has no default wallet"
        )


class ResolvedWallet(BaseModel):
    """A wallet picked for a hint, and how it was picked."""
    model_config = ConfigDict(frozen=True)

    wallet: Wallet
    match: MatchKind
    hint: str

    @property
    def wallet_id(self):
        return self.wallet.id

    @property
    def is_locked(self) -> bool:
        return self.wallet.is_locked


def find_default_wallet(wallets: Sequence[Wallet]) -> Optional[Wallet]:
    """First wallet flagged as default, if any."""
    for wallet in wallets:
        if wallet.is_default:
            return wallet
    return None


def _fallback(hint: str, wallets: Sequence[Wallet]) -> ResolvedWallet:
    default = find_default_wallet(wallets)
    if default is None:
        raise WalletResolutionError(hint)
    return ResolvedWallet(wallet=default, match=MatchKind.DEFAULT, hint=hint)


def resolve_wallet(hint: Optional[str], wallets: Sequence[Wallet]) -> ResolvedWallet:
    """
    Resolve a wallet hint against the user's wallets.

    Args:
        hint: Free text from a directive; may be empty or "default"
        wallets: The user's wallets, in the order storage returned them

    Returns:
        The resolved wallet. A locked wallet is still returned; callers
        decide whether it may be used.

    Raises:
        WalletResolutionError: if the hint falls back to the default
            wallet and the user has none
    """
    hint = (hint or "").strip()
    needle = hint.lower()

    if not needle:
        return _fallback(hint, wallets)

    for wallet in wallets:
        if wallet.name.lower() == needle:
            return ResolvedWallet(wallet=wallet, match=MatchKind.EXACT, hint=hint)

    if needle == DEFAULT_WALLET_HINT:
        return _fallback(hint, wallets)

    candidates = [
        wallet for wallet in wallets
        if needle in wallet.name.lower() or wallet.name.lower() in needle
    ]
    if len(candidates) == 1:
        return ResolvedWallet(
            wallet=candidates[0],
            match=MatchKind.SUBSTRING,
            hint=hint,
        )

    return _fallback(hint, wallets)
