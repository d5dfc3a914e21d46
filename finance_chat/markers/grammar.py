"""
Marker Grammar

The assistant embeds two kinds of markers in its replies:

    [TRANSACTION: amount=<number>, category=<word>, type=<word>,
                  description=<text>, wallet=<text>]
    [TRANSFER: amount=<number>, from=<text>, to=<text>, description=<text>]

`wallet` and the transfer `description` are optional and run to the
closing bracket, so they may contain commas. Every other free-text field
stops at the next comma.

DESIGN DECISION: Markers are found by a scanner and decoded by a field
parser instead of one big regex. A marker whose keyword matched but whose
fields are wrong raises ParseError with a reason, rather than silently
not matching.
"""

import re
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Iterator

from pydantic import BaseModel, ConfigDict

from finance_chat.models.ledger import (
    CATEGORY_MAX_LENGTH,
    DEFAULT_WALLET_HINT,
    DESCRIPTION_MAX_LENGTH,
    Directive,
    TransactionDirective,
    TransactionType,
    TransferDirective,
)


class MarkerKeyword(str, Enum):
    TRANSACTION = "TRANSACTION"
    TRANSFER = "TRANSFER"


# "[", keyword, ":" with optional whitespace around the keyword
_OPENER_PATTERN = r"\[\s*(TRANSACTION|TRANSFER)\s*:"
_OPENER = re.compile(_OPENER_PATTERN)
_OPENER_ANY_CASE = re.compile(_OPENER_PATTERN, re.IGNORECASE)

_WORD = re.compile(r"\w+")

TRANSACTION_FIELDS = ("amount", "category", "type", "description")
TRANSACTION_TRAILING_FIELD = "wallet"
TRANSFER_FIELDS = ("amount", "from", "to")
TRANSFER_TRAILING_FIELD = "description"

DEFAULT_TRANSFER_DESCRIPTION = "Transfer"


class ParseError(Exception):
    """A marker was recognized but its fields are unusable."""

    def __init__(self, reason: str, marker: "MarkerSpan | None" = None):
        self.reason = reason
        self.marker = marker
        super().__init__(reason)


class MarkerSpan(BaseModel):
    """Location and raw body of one marker in the source text."""
    model_config = ConfigDict(frozen=True)

    keyword: MarkerKeyword
    start: int
    end: int
    body: str
    text: str


def find_markers(text: str, case_sensitive: bool = True) -> Iterator[MarkerSpan]:
    """
    Yield marker spans left to right.

    A marker runs from its opening bracket to the first closing bracket
    after the keyword. Markers never overlap: scanning resumes after the
    closing bracket of the previous one.
    """
    opener = _OPENER if case_sensitive else _OPENER_ANY_CASE
    pos = 0
    while True:
        start = text.find("[", pos)
        if start == -1:
            return

        match = opener.match(text, start)
        if match is None:
            pos = start + 1
            continue

        close = text.find("]", match.end())
        if close == -1:
            # Unterminated; nothing after this point can close either
            return

        yield MarkerSpan(
            keyword=MarkerKeyword(match.group(1).upper()),
            start=start,
            end=close + 1,
            body=text[match.end():close],
            text=text[start:close + 1],
        )
        pos = close + 1


def parse_amount(raw: str) -> Decimal:
    """Parse a marker amount: finite and non-negative."""
    try:
        amount = Decimal(raw)
    except InvalidOperation:
        raise ParseError(f"amount '{raw}' is not a number")

    if not amount.is_finite():
        raise ParseError(f"amount '{raw}' is not finite")
    if amount < 0:
        raise ParseError(f"amount '{raw}' is negative")
    return amount


def _split_pair(segment: str) -> tuple[str, str]:
    key, sep, value = segment.partition("=")
    if not sep:
        raise ParseError(f"expected key=value, got '{segment.strip()}'")
    return key.strip().lower(), value.strip()


def read_fields(
    body: str,
    fields: tuple[str, ...],
    trailing_field: str,
) -> dict[str, str]:
    """
    Split a marker body into its named fields.

    The fixed fields must appear in order, one per comma-separated segment.
    An optional trailing field may follow and swallows the rest of the body.
    """
    segments = body.split(",")
    values = {}

    for position, name in enumerate(fields):
        if position >= len(segments):
            raise ParseError(f"missing field '{name}'")
        key, value = _split_pair(segments[position])
        if key != name:
            raise ParseError(f"expected field '{name}', found '{key}'")
        values[name] = value

    rest = segments[len(fields):]
    if rest:
        key, value = _split_pair(rest[0])
        if key != trailing_field:
            raise ParseError(f"unexpected field '{key}'")
        values[trailing_field] = ",".join([value] + rest[1:]).strip()

    return values


def _require_word(name: str, value: str) -> str:
    if not _WORD.fullmatch(value):
        raise ParseError(f"{name} '{value}' must be a single word")
    return value.lower()


def _require_text(name: str, value: str) -> str:
    if not value:
        raise ParseError(f"{name} is empty")
    return value


def _check_length(name: str, value: str, limit: int) -> str:
    if len(value) > limit:
        raise ParseError(f"{name} is longer than {limit} characters")
    return value


def parse_transaction(body: str) -> TransactionDirective:
    values = read_fields(body, TRANSACTION_FIELDS, TRANSACTION_TRAILING_FIELD)

    tx_type = _require_word("type", values["type"])
    try:
        tx_type = TransactionType(tx_type)
    except ValueError:
        raise ParseError(f"type '{values['type']}' must be income or expense")

    category = _require_word("category", values["category"])
    description = _require_text("description", values["description"])

    return TransactionDirective(
        amount=parse_amount(values["amount"]),
        category=_check_length("category", category, CATEGORY_MAX_LENGTH),
        type=tx_type,
        description=_check_length("description", description, DESCRIPTION_MAX_LENGTH),
        wallet_hint=values.get(TRANSACTION_TRAILING_FIELD) or DEFAULT_WALLET_HINT,
    )


def parse_transfer(
    body: str,
    default_description: str = DEFAULT_TRANSFER_DESCRIPTION,
) -> TransferDirective:
    values = read_fields(body, TRANSFER_FIELDS, TRANSFER_TRAILING_FIELD)
    description = values.get(TRANSFER_TRAILING_FIELD) or default_description

    return TransferDirective(
        amount=parse_amount(values["amount"]),
        from_wallet_hint=_require_text("from", values["from"]),
        to_wallet_hint=_require_text("to", values["to"]),
        description=_check_length("description", description, DESCRIPTION_MAX_LENGTH),
    )


def parse_marker(
    marker: MarkerSpan,
    default_transfer_description: str = DEFAULT_TRANSFER_DESCRIPTION,
) -> Directive:
    """
    Decode one marker into a directive.

    Raises:
        ParseError: with the marker attached, if any field is unusable
    """
    try:
        if marker.keyword == MarkerKeyword.TRANSACTION:
            directive = parse_transaction(marker.body)
        else:
            directive = parse_transfer(marker.body, default_transfer_description)
    except ParseError as e:
        raise ParseError(e.reason, marker=marker) from None

    return directive.model_copy(update={"span": (marker.start, marker.end)})
