"""
Core Data Models for Finance Chat

These models define the strict schemas for everything flowing through
the chat-to-ledger pipeline:
1. Directives decoded from assistant text (transient, never persisted)
2. Wallets owned by a user (supplied by storage)
3. Ledger entries and transfers (what actually gets persisted)

DESIGN DECISION: Money is Decimal everywhere. Amounts on ledger entries
are always positive; the sign lives in TransactionType.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


DEFAULT_WALLET_HINT = "default"

CATEGORY_MAX_LENGTH = 50
DESCRIPTION_MAX_LENGTH = 500


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class WalletType(str, Enum):
    """Kinds of wallets a user can hold."""
    CASH = "cash"
    BANK = "bank"
    CARD = "card"
    MOBILE = "mobile"
    OTHER = "other"


class TransactionType(str, Enum):
    """
    Direction of a ledger entry.

    The amount is always stored positive; this decides the sign.
    """
    INCOME = "income"
    EXPENSE = "expense"


# =============================================================================
# WALLETS
# =============================================================================

class Wallet(BaseModel):
    """
    A wallet owned by exactly one user.

    Wallet lifecycle (creation, locking, limits) is managed elsewhere;
    this package only reads wallets and, through storage, moves balances.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name, also what wallet hints are matched against"
    )
    type: WalletType = WalletType.OTHER
    balance: Decimal = Field(
        default=Decimal("0"),
        description="Current balance in the wallet currency"
    )
    currency: str = Field(
        default="USD",
        min_length=3,
        max_length=3,
        description="ISO 4217 currency code"
    )
    is_default: bool = False
    is_locked: bool = False
    monthly_limit: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Advisory monthly spending limit"
    )

    @field_validator('currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.upper()


# =============================================================================
# DIRECTIVES - decoded from assistant text
# =============================================================================

class TransactionDirective(BaseModel):
    """
    [TRANSACTION: amount=..., category=..., type=..., description=..., wallet=...]

    CRITICAL: This is what the assistant PROPOSED. Nothing here has been
    checked against the user's wallets yet.
    """
    model_config = ConfigDict(frozen=True)

    kind: Literal["transaction"] = "transaction"
    amount: Decimal = Field(..., ge=0)
    category: str = Field(..., min_length=1)
    type: TransactionType
    description: str = Field(..., min_length=1)
    wallet_hint: str = DEFAULT_WALLET_HINT

    # Where the marker sat in the source text
    span: Optional[tuple[int, int]] = None


class TransferDirective(BaseModel):
    """[TRANSFER: amount=..., from=..., to=..., description=...]"""
    model_config = ConfigDict(frozen=True)

    kind: Literal["transfer"] = "transfer"
    amount: Decimal = Field(..., ge=0)
    from_wallet_hint: str = Field(..., min_length=1)
    to_wallet_hint: str = Field(..., min_length=1)
    description: str = "Transfer"

    span: Optional[tuple[int, int]] = None


Directive = Annotated[
    Union[TransactionDirective, TransferDirective],
    Field(discriminator="kind"),
]


# =============================================================================
# PERSISTED LEDGER
# =============================================================================

class LedgerEntry(BaseModel):
    """
    A persisted transaction.

    Entries created from chat start unconfirmed; confirming or editing
    them happens outside this package.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    wallet_id: Optional[UUID] = Field(
        default=None,
        description="Wallet the entry belongs to; None means the user's default"
    )
    amount: Decimal = Field(..., gt=0, description="Always positive")
    category: str = Field(..., min_length=1, max_length=CATEGORY_MAX_LENGTH)
    description: str = Field(default="", max_length=DESCRIPTION_MAX_LENGTH)
    date: datetime = Field(default_factory=utc_now)
    type: TransactionType
    extracted_from_chat: bool = False
    confirmed: bool = False
    created_at: datetime = Field(default_factory=utc_now)

    # Set on both legs of a transfer
    transfer_id: Optional[UUID] = None

    @property
    def signed_amount(self) -> Decimal:
        """Balance delta this entry applies to its wallet."""
        if self.type == TransactionType.EXPENSE:
            return -self.amount
        return self.amount


class TransferRecord(BaseModel):
    """
    A committed movement of funds between two wallets of one user.

    The debit and credit legs share id, description and timestamp and are
    written as a single atomic unit.
    """

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    from_wallet_id: UUID
    to_wallet_id: UUID
    amount: Decimal = Field(..., gt=0)
    description: str
    created_at: datetime = Field(default_factory=utc_now)
    debit: LedgerEntry
    credit: LedgerEntry

    @model_validator(mode='after')
    def validate_legs(self) -> 'TransferRecord':
        """Both legs must describe this transfer and nothing else."""
        if self.from_wallet_id == self.to_wallet_id:
            raise ValueError("Transfer source and destination must differ")
        if self.debit.type != TransactionType.EXPENSE:
            raise ValueError("Transfer debit leg must be an expense")
        if self.credit.type != TransactionType.INCOME:
            raise ValueError("Transfer credit leg must be income")
        if self.debit.wallet_id != self.from_wallet_id:
            raise ValueError("Debit leg must belong to the source wallet")
        if self.credit.wallet_id != self.to_wallet_id:
            raise ValueError("Credit leg must belong to the destination wallet")
        if self.debit.amount != self.amount or self.credit.amount != self.amount:
            raise ValueError("Transfer legs must carry the transfer amount")
        return self

    @classmethod
    def build(
        cls,
        user_id: UUID,
        from_wallet_id: UUID,
        to_wallet_id: UUID,
        amount: Decimal,
        description: str,
        extracted_from_chat: bool = False,
    ) -> 'TransferRecord':
        """Create a transfer with matching debit and credit legs."""
        transfer_id = uuid4()
        now = utc_now()
        legs = {}
        for leg, wallet_id, tx_type in (
            ("debit", from_wallet_id, TransactionType.EXPENSE),
            ("credit", to_wallet_id, TransactionType.INCOME),
        ):
            legs[leg] = LedgerEntry(
                user_id=user_id,
                wallet_id=wallet_id,
                amount=amount,
                category="transfer",
                description=description,
                date=now,
                type=tx_type,
                extracted_from_chat=extracted_from_chat,
                confirmed=False,
                created_at=now,
                transfer_id=transfer_id,
            )
        return cls(
            id=transfer_id,
            user_id=user_id,
            from_wallet_id=from_wallet_id,
            to_wallet_id=to_wallet_id,
            amount=amount,
            description=description,
            created_at=now,
            debit=legs["debit"],
            credit=legs["credit"],
        )
