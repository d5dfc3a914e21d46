"""
Audit Models for Finance Chat

Every step that turns assistant text into money movement is logged:
1. Which markers were seen and which were rejected
2. Which ledger mutations were committed, and against which wallet
3. Why a directive failed
4. Advisory warnings (limits, low balances)

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from finance_chat.models.ledger import utc_now


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every stage of the reply pipeline has its own event type.
    """
    # Assistant
    ASSISTANT_REPLY_RECEIVED = "assistant_reply_received"

    # Extraction
    MARKER_REJECTED = "marker_rejected"

    # Reconciliation
    TRANSACTION_SAVED = "transaction_saved"
    TRANSFER_APPLIED = "transfer_applied"
    DIRECTIVE_FAILED = "directive_failed"

    # Advisory
    MONTHLY_LIMIT_WARNING = "monthly_limit_warning"
    LOW_BALANCE_WARNING = "low_balance_warning"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    user_id: Optional[UUID] = None
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'transfer', 'marker')"
    )
    entity_id: Optional[UUID] = None

    # Correlation - all events produced by one assistant reply
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": str(self.user_id) if self.user_id else None,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, user_id, entity_type,
         entity_id, correlation_id, description, details_json, error_code,
         error_message]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            str(self.user_id) if self.user_id else "",
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_code or "",
            self.error_message or "",
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_saved(user_id, entry, wallet_name, correlation_id)
        event = AuditEventBuilder.directive_failed(user_id, 2, "transfer", code, message, correlation_id)
    """

    @staticmethod
    def assistant_reply_received(
        user_id: UUID,
        marker_count: int,
        reply_length: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ASSISTANT_REPLY_RECEIVED,
            user_id=user_id,
            entity_type="message",
            correlation_id=correlation_id,
            description=f"Assistant reply received with {marker_count} marker(s)",
            details={
                "marker_count": marker_count,
                "reply_length": reply_length,
            },
        )

    @staticmethod
    def marker_rejected(
        user_id: UUID,
        keyword: str,
        marker_text: str,
        reason: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MARKER_REJECTED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="marker",
            correlation_id=correlation_id,
            description=f"{keyword} marker dropped: {reason}"[:500],
            details={
                "keyword": keyword,
                "marker_text": marker_text[:300],
            },
            error_code="parse_error",
            error_message=reason,
        )

    @staticmethod
    def transaction_saved(
        user_id: UUID,
        entry_id: UUID,
        wallet_name: str,
        amount: str,
        tx_type: str,
        category: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_SAVED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=entry_id,
            correlation_id=correlation_id,
            description=f"Logged {tx_type} of {amount} ({category}) to {wallet_name}",
            details={
                "wallet": wallet_name,
                "amount": amount,
                "type": tx_type,
                "category": category,
            },
        )

    @staticmethod
    def transfer_applied(
        user_id: UUID,
        transfer_id: UUID,
        from_wallet: str,
        to_wallet: str,
        amount: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSFER_APPLIED,
            user_id=user_id,
            entity_type="transfer",
            entity_id=transfer_id,
            correlation_id=correlation_id,
            description=f"Transferred {amount} from {from_wallet} to {to_wallet}",
            details={
                "from_wallet": from_wallet,
                "to_wallet": to_wallet,
                "amount": amount,
            },
        )

    @staticmethod
    def directive_failed(
        user_id: UUID,
        index: int,
        kind: str,
        error_code: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DIRECTIVE_FAILED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type=kind,
            correlation_id=correlation_id,
            description=f"Directive #{index} ({kind}) not committed: {error_code}",
            details={
                "index": index,
                "kind": kind,
            },
            error_code=error_code,
            error_message=error_message,
        )

    @staticmethod
    def monthly_limit_warning(
        user_id: UUID,
        wallet_id: UUID,
        wallet_name: str,
        utilization: float,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MONTHLY_LIMIT_WARNING,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="wallet",
            entity_id=wallet_id,
            correlation_id=correlation_id,
            description=f"{wallet_name} is at {utilization:.0f}% of its monthly limit",
            details={
                "wallet": wallet_name,
                "utilization_percent": round(utilization, 2),
            },
        )

    @staticmethod
    def low_balance_warning(
        user_id: UUID,
        wallet_id: UUID,
        wallet_name: str,
        balance: str,
        currency: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOW_BALANCE_WARNING,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="wallet",
            entity_id=wallet_id,
            correlation_id=correlation_id,
            description=f"Your {wallet_name} balance is low ({currency} {balance})",
            details={
                "wallet": wallet_name,
                "balance": balance,
                "currency": currency,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
