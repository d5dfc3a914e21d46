"""
Tests for Finance Chat

Test strategy:
1. Unit tests for individual components (models, grammar, resolver)
2. Integration tests for flows (with in-memory storage)
3. No real API calls in tests (fake assistant model)
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from finance_chat.models.ledger import (
    LedgerEntry,
    TransactionDirective,
    TransactionType,
    TransferDirective,
    TransferRecord,
    Wallet,
)
from finance_chat.models.results import (
    ChatReplyResult,
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


def _directive(amount="10"):
    return TransactionDirective(
        amount=Decimal(amount),
        category="dining",
        type=TransactionType.EXPENSE,
        description="Lunch",
    )


def _committed(index):
    return ReconcileOutcome(
        index=index,
        directive=_directive(),
        status=OutcomeStatus.COMMITTED,
    )


def _failed(index, code):
    return ReconcileOutcome(
        index=index,
        directive=_directive(),
        status=OutcomeStatus.FAILED,
        error_code=code,
        error_message="nope",
    )


class TestLedgerModels:
    """Tests for wallet and ledger Pydantic models."""

    def test_wallet_strips_whitespace(self):
        """Test that whitespace is stripped from wallet names."""
        wallet = Wallet(user_id=uuid4(), name="  Savings  ")
        assert wallet.name == "Savings"

    def test_wallet_currency_uppercased(self):
        wallet = Wallet(user_id=uuid4(), name="Cash", currency="bdt")
        assert wallet.currency == "BDT"

    def test_wallet_rejects_negative_limit(self):
        with pytest.raises(ValueError):
            Wallet(user_id=uuid4(), name="Cash", monthly_limit=Decimal("-1"))

    def test_ledger_entry_rejects_zero_amount(self):
        """Persisted amounts are always positive."""
        with pytest.raises(ValueError):
            LedgerEntry(
                user_id=uuid4(),
                amount=Decimal("0"),
                category="dining",
                type=TransactionType.EXPENSE,
            )

    def test_signed_amount(self):
        kwargs = dict(user_id=uuid4(), amount=Decimal("25"), category="x")
        expense = LedgerEntry(type=TransactionType.EXPENSE, **kwargs)
        income = LedgerEntry(type=TransactionType.INCOME, **kwargs)
        assert expense.signed_amount == Decimal("-25")
        assert income.signed_amount == Decimal("25")

    def test_directives_are_frozen(self):
        directive = _directive()
        with pytest.raises(ValueError):
            directive.amount = Decimal("1")

    def test_transfer_directive_default_description(self):
        directive = TransferDirective(
            amount=Decimal("5"),
            from_wallet_hint="Bank",
            to_wallet_hint="Savings",
        )
        assert directive.kind == "transfer"
        assert directive.description == "Transfer"


class TestTransferRecord:
    """Tests for TransferRecord and its legs."""

    def test_build_creates_matching_legs(self):
        user_id, source, destination = uuid4(), uuid4(), uuid4()
        transfer = TransferRecord.build(
            user_id=user_id,
            from_wallet_id=source,
            to_wallet_id=destination,
            amount=Decimal("500"),
            description="Rent share",
            extracted_from_chat=True,
        )

        assert transfer.debit.wallet_id == source
        assert transfer.debit.type == TransactionType.EXPENSE
        assert transfer.credit.wallet_id == destination
        assert transfer.credit.type == TransactionType.INCOME
        assert transfer.debit.transfer_id == transfer.id
        assert transfer.credit.transfer_id == transfer.id
        assert transfer.debit.created_at == transfer.credit.created_at
        assert transfer.debit.description == "Rent share"
        assert transfer.debit.extracted_from_chat is True
        assert transfer.debit.confirmed is False

    def test_same_wallet_rejected(self):
        wallet_id = uuid4()
        with pytest.raises(ValueError, match="must differ"):
            TransferRecord.build(
                user_id=uuid4(),
                from_wallet_id=wallet_id,
                to_wallet_id=wallet_id,
                amount=Decimal("1"),
                description="Transfer",
            )


class TestChatReplyResult:
    """Tests for partial-success summaries."""

    def test_summary_empty_without_outcomes(self):
        result = ChatReplyResult(display_text="Hi!")
        assert result.summary() == ""

    def test_summary_all_committed(self):
        result = ChatReplyResult(
            display_text="Done",
            outcomes=[_committed(0), _committed(1)],
        )
        assert result.summary() == "Logged 2 items."

    def test_summary_partial_success(self):
        result = ChatReplyResult(
            display_text="Done",
            outcomes=[
                _committed(0),
                _failed(1, ReconcileErrorCode.WALLET_LOCKED),
                _committed(2),
                _committed(3),
            ],
        )
        assert result.committed_count == 3
        assert result.failed_count == 1
        assert result.summary() == "3 of 4 items logged, 1 failed: locked wallet"

    def test_summary_deduplicates_reasons(self):
        result = ChatReplyResult(
            display_text="Done",
            outcomes=[
                _failed(0, ReconcileErrorCode.INSUFFICIENT_BALANCE),
                _failed(1, ReconcileErrorCode.INSUFFICIENT_BALANCE),
            ],
        )
        assert result.summary() == "0 of 2 items logged, 2 failed: insufficient balance"


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.ASSISTANT_REPLY_RECEIVED,
            description="Reply received",
        )
        assert event.event_type == AuditEventType.ASSISTANT_REPLY_RECEIVED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_SAVED,
            description="Logged expense",
            details={"wallet": "Cash", "amount": "500"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "transaction_saved"
        assert log_dict["details"]["wallet"] == "Cash"

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.DIRECTIVE_FAILED,
            description="Directive failed",
            error_code="wallet_locked",
        )
        row = event.to_sheets_row()
        assert len(row) == 12  # Expected number of columns
        assert row[2] == "directive_failed"  # event_type
        assert row[10] == "wallet_locked"  # error_code

    def test_audit_event_builder_marker_rejected(self):
        correlation_id = uuid4()
        event = AuditEventBuilder.marker_rejected(
            user_id=uuid4(),
            keyword="TRANSACTION",
            marker_text="[TRANSACTION: amount=abc]",
            reason="amount 'abc' is not a number",
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.MARKER_REJECTED
        assert event.severity == AuditSeverity.WARNING
        assert event.correlation_id == correlation_id
        assert event.error_message == "amount 'abc' is not a number"

    def test_audit_event_builder_low_balance(self):
        wallet_id = uuid4()
        event = AuditEventBuilder.low_balance_warning(
            user_id=uuid4(),
            wallet_id=wallet_id,
            wallet_name="Cash",
            balance="120",
            currency="BDT",
            correlation_id=uuid4(),
        )

        assert event.entity_id == wallet_id
        assert event.description == "Your Cash balance is low (BDT 120)"
