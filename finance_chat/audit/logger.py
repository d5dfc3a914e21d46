"""
Audit Logger

DESIGN DECISION: Every ledger mutation that came out of a chat reply is
logged, and so is every directive that did not make it. This provides:
1. Complete traceability from chat text to money movement
2. Debugging capability when a marker was dropped
3. A record of advisory warnings the user was shown

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from finance_chat.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from finance_chat.models.ledger import LedgerEntry, TransferRecord, Wallet
from finance_chat.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("finance_chat.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_reply_received(
        self,
        user_id: UUID,
        marker_count: int,
        reply_length: int,
        correlation_id: UUID,
    ) -> None:
        """Log an assistant reply entering the pipeline."""
        event = AuditEventBuilder.assistant_reply_received(
            user_id=user_id,
            marker_count=marker_count,
            reply_length=reply_length,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_marker_rejected(
        self,
        user_id: UUID,
        keyword: str,
        marker_text: str,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        """Log a marker dropped for unparseable fields."""
        event = AuditEventBuilder.marker_rejected(
            user_id=user_id,
            keyword=keyword,
            marker_text=marker_text,
            reason=reason,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_saved(
        self,
        entry: LedgerEntry,
        wallet: Wallet,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.transaction_saved(
            user_id=entry.user_id,
            entry_id=entry.id,
            wallet_name=wallet.name,
            amount=str(entry.amount),
            tx_type=entry.type.value,
            category=entry.category,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transfer_applied(
        self,
        transfer: TransferRecord,
        from_wallet: Wallet,
        to_wallet: Wallet,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.transfer_applied(
            user_id=transfer.user_id,
            transfer_id=transfer.id,
            from_wallet=from_wallet.name,
            to_wallet=to_wallet.name,
            amount=str(transfer.amount),
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_directive_failed(
        self,
        user_id: UUID,
        index: int,
        kind: str,
        error_code: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.directive_failed(
            user_id=user_id,
            index=index,
            kind=kind,
            error_code=error_code,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_limit_warning(
        self,
        user_id: UUID,
        wallet: Wallet,
        utilization: float,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.monthly_limit_warning(
            user_id=user_id,
            wallet_id=wallet.id,
            wallet_name=wallet.name,
            utilization=utilization,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_low_balance(
        self,
        user_id: UUID,
        wallet: Wallet,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.low_balance_warning(
            user_id=user_id,
            wallet_id=wallet.id,
            wallet_name=wallet.name,
            balance=str(wallet.balance),
            currency=wallet.currency,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this when an assistant reply enters the pipeline.
    Pass it through all subsequent operations.
    """
    return uuid4()
