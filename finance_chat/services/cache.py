"""
Per-User Wallet Cache

Short-lived cache of each user's wallet list, so a burst of chat messages
does not re-read storage every time.

DESIGN DECISION: The cache is an explicit object created once per process
and handed to whoever needs it. There is no module-level instance.
Anything that commits a ledger mutation must invalidate the user's entry.
"""

import time
from typing import Awaitable, Callable, Optional
from uuid import UUID

from finance_chat.models.ledger import Wallet


class UserWalletCache:
    """TTL cache keyed by user id."""

    def __init__(
        self,
        ttl_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[UUID, tuple[float, list[Wallet]]] = {}

    def get(self, user_id: UUID) -> Optional[list[Wallet]]:
        """Cached wallets, or None when missing or expired."""
        cached = self._entries.get(user_id)
        if cached is None:
            return None

        stored_at, wallets = cached
        if self._clock() - stored_at > self._ttl:
            del self._entries[user_id]
            return None
        return list(wallets)

    def set(self, user_id: UUID, wallets: list[Wallet]) -> None:
        self._entries[user_id] = (self._clock(), list(wallets))

    def invalidate(self, user_id: UUID) -> None:
        self._entries.pop(user_id, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    async def get_or_load(
        self,
        user_id: UUID,
        loader: Callable[[UUID], Awaitable[list[Wallet]]],
    ) -> list[Wallet]:
        """Serve from cache, or call `loader` and remember the result."""
        wallets = self.get(user_id)
        if wallets is None:
            wallets = await loader(user_id)
            self.set(user_id, wallets)
        return wallets
