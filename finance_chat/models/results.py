"""
Result Models

Every directive that reaches reconciliation ends up as exactly one
ReconcileOutcome. Markers that never made it that far (bad fields) are
reported as MarkerOmission. ChatReplyResult bundles both with the text
the user will actually see.
"""

from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from finance_chat.models.ledger import Directive, LedgerEntry, TransferRecord


class OutcomeStatus(str, Enum):
    COMMITTED = "committed"
    FAILED = "failed"


class ReconcileErrorCode(str, Enum):
    """Why a directive could not be committed."""
    VALIDATION = "validation"
    NO_WALLET_AVAILABLE = "no_wallet_available"
    WALLET_LOCKED = "wallet_locked"
    SAME_WALLET_TRANSFER = "same_wallet_transfer"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    PERSISTENCE = "persistence"


# Short phrases used when summarizing partial success to the user
ERROR_CODE_PHRASES = {
    ReconcileErrorCode.VALIDATION: "invalid details",
    ReconcileErrorCode.NO_WALLET_AVAILABLE: "no wallet available",
    ReconcileErrorCode.WALLET_LOCKED: "locked wallet",
    ReconcileErrorCode.SAME_WALLET_TRANSFER: "transfer to the same wallet",
    ReconcileErrorCode.INSUFFICIENT_BALANCE: "insufficient balance",
    ReconcileErrorCode.PERSISTENCE: "could not be saved",
}


class ReconcileOutcome(BaseModel):
    """
    What happened to one directive.

    Exactly one of (entry, transfer) is set on success; error_code and
    error_message are set on failure.
    """

    index: int = Field(
        ...,
        ge=0,
        description="Position of the directive in extraction order"
    )
    directive: Directive
    status: OutcomeStatus
    entry: Optional[LedgerEntry] = None
    transfer: Optional[TransferRecord] = None
    error_code: Optional[ReconcileErrorCode] = None
    error_message: Optional[str] = None

    # Advisory notes (limits, low balance) - never block
    warnings: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.COMMITTED

    @property
    def touched_wallet_ids(self) -> list[UUID]:
        """Wallets whose balance this outcome changed."""
        if self.entry is not None and self.entry.wallet_id is not None:
            return [self.entry.wallet_id]
        if self.transfer is not None:
            return [self.transfer.from_wallet_id, self.transfer.to_wallet_id]
        return []


class MarkerOmission(BaseModel):
    """A marker that was recognized but could not be parsed."""

    keyword: str
    marker_text: str
    start: int = Field(ge=0)
    end: int = Field(ge=0)
    reason: str


class ChatReplyResult(BaseModel):
    """Everything the caller needs after processing one assistant reply."""

    correlation_id: Optional[UUID] = None
    display_text: str
    outcomes: list[ReconcileOutcome] = Field(default_factory=list)
    omissions: list[MarkerOmission] = Field(default_factory=list)

    @property
    def committed_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.ok)

    @property
    def failed_count(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.ok)

    @property
    def committed_entries(self) -> list[LedgerEntry]:
        """Ledger entries created by this reply, transfer legs included."""
        entries = []
        for outcome in self.outcomes:
            if outcome.entry is not None:
                entries.append(outcome.entry)
            elif outcome.transfer is not None:
                entries.extend([outcome.transfer.debit, outcome.transfer.credit])
        return entries

    def summary(self) -> str:
        """
        One line describing partial success, e.g.
        "3 of 4 items logged, 1 failed: locked wallet".

        Empty when the reply carried no directives.
        """
        total = len(self.outcomes)
        if total == 0:
            return ""

        if self.failed_count == 0:
            noun = "item" if total == 1 else "items"
            return f"Logged {total} {noun}."

        reasons = []
        for outcome in self.outcomes:
            if outcome.ok or outcome.error_code is None:
                continue
            phrase = ERROR_CODE_PHRASES[outcome.error_code]
            if phrase not in reasons:
                reasons.append(phrase)

        return (
            f"{self.committed_count} of {total} items logged, "
            f"{self.failed_count} failed: {', '.join(reasons)}"
        )
