"""Pytest configuration and fixtures."""

from decimal import Decimal
from uuid import uuid4

import pytest

from finance_chat.audit import AuditLogger
from finance_chat.config import LedgerSettings
from finance_chat.models.ledger import Wallet, WalletType
from finance_chat.reconciliation import Reconciler
from finance_chat.services import InMemoryAuditStorage, InMemoryLedgerStorage


@pytest.fixture
def user_id():
    return uuid4()


@pytest.fixture
def wallets(user_id):
    """
    A typical set of wallets.

    Balances are large enough that ordinary test amounts never trip the
    low-balance warning.
    """
    return [
        Wallet(
            user_id=user_id,
            name="Cash",
            type=WalletType.CASH,
            balance=Decimal("5000"),
            is_default=True,
        ),
        Wallet(
            user_id=user_id,
            name="bKash",
            type=WalletType.MOBILE,
            balance=Decimal("4000"),
        ),
        Wallet(
            user_id=user_id,
            name="Bank",
            type=WalletType.BANK,
            balance=Decimal("20000"),
        ),
        Wallet(
            user_id=user_id,
            name="Savings",
            type=WalletType.BANK,
            balance=Decimal("3000"),
        ),
        Wallet(
            user_id=user_id,
            name="Credit Card",
            type=WalletType.CARD,
            balance=Decimal("8000"),
            is_locked=True,
        ),
    ]


@pytest.fixture
def wallet_by_name(wallets):
    return {wallet.name: wallet for wallet in wallets}


@pytest.fixture
def ledger_settings():
    return LedgerSettings()


@pytest.fixture
def storage(wallets):
    return InMemoryLedgerStorage(wallets)


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def reconciler(storage, ledger_settings, audit_logger):
    return Reconciler(storage, settings=ledger_settings, audit_logger=audit_logger)
