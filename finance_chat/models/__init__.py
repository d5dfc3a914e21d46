"""
Data Models Package

This package contains all Pydantic models used in Finance Chat.
All data flowing through the system must conform to these schemas.
"""

from finance_chat.models.ledger import (
    DEFAULT_WALLET_HINT,
    Directive,
    LedgerEntry,
    TransactionDirective,
    TransactionType,
    TransferDirective,
    TransferRecord,
    Wallet,
    WalletType,
    utc_now,
)
from finance_chat.models.results import (
    ChatReplyResult,
    MarkerOmission,
    OutcomeStatus,
    ReconcileErrorCode,
    ReconcileOutcome,
)
from finance_chat.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "DEFAULT_WALLET_HINT",
    "Directive",
    "LedgerEntry",
    "TransactionDirective",
    "TransactionType",
    "TransferDirective",
    "TransferRecord",
    "Wallet",
    "WalletType",
    "utc_now",
    # Result models
    "ChatReplyResult",
    "MarkerOmission",
    "OutcomeStatus",
    "ReconcileErrorCode",
    "ReconcileOutcome",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
