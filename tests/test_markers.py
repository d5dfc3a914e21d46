"""Tests for marker grammar, extraction and sanitizing."""

import pytest
from decimal import Decimal

from finance_chat.markers import (
    MarkerKeyword,
    ParseError,
    extract_directives,
    find_markers,
    parse_marker,
    sanitize,
    scan_markers,
)
from finance_chat.models.ledger import (
    TransactionDirective,
    TransactionType,
    TransferDirective,
)


class TestFindMarkers:
    """Tests for locating marker spans."""

    def test_no_markers(self):
        assert list(find_markers("Just chatting [not a marker]")) == []

    def test_span_covers_brackets(self):
        text = "ok [TRANSFER: amount=1, from=a, to=b] done"
        (marker,) = find_markers(text)
        assert marker.keyword == MarkerKeyword.TRANSFER
        assert text[marker.start:marker.end] == marker.text
        assert marker.text.startswith("[TRANSFER")
        assert marker.text.endswith("]")

    def test_whitespace_around_keyword(self):
        (marker,) = find_markers("[ TRANSACTION : amount=1]")
        assert marker.keyword == MarkerKeyword.TRANSACTION
        assert marker.body == " amount=1"

    def test_keyword_case_sensitive_by_default(self):
        assert list(find_markers("[transaction: amount=1]")) == []
        assert len(list(find_markers("[transaction: amount=1]", case_sensitive=False))) == 1

    def test_unterminated_marker_ignored(self):
        assert list(find_markers("[TRANSACTION: amount=5, category=food")) == []


class TestParseTransaction:
    """Tests for decoding TRANSACTION markers."""

    def _parse(self, text):
        (marker,) = find_markers(text)
        return parse_marker(marker)

    def test_well_formed_marker(self):
        directive = self._parse(
            "[TRANSACTION: amount=12.50, category=groceries, type=expense, description=milk]"
        )
        assert isinstance(directive, TransactionDirective)
        assert directive.amount == Decimal("12.50")
        assert directive.category == "groceries"
        assert directive.type == TransactionType.EXPENSE
        assert directive.description == "milk"
        assert directive.wallet_hint == "default"

    def test_wallet_hint_may_contain_commas(self):
        directive = self._parse(
            "[TRANSACTION: amount=3, category=dining, type=expense, "
            "description=Tea, wallet=Cash, pocket]"
        )
        assert directive.wallet_hint == "Cash, pocket"

    def test_description_with_spaces(self):
        directive = self._parse(
            "[TRANSACTION: amount=2000, category=bills, type=expense, "
            "description=electric bill, wallet=bKash]"
        )
        assert directive.description == "electric bill"
        assert directive.wallet_hint == "bKash"

    def test_category_and_type_lowercased(self):
        directive = self._parse(
            "[TRANSACTION: amount=50000, category=Income, type=INCOME, description=Salary]"
        )
        assert directive.category == "income"
        assert directive.type == TransactionType.INCOME

    def test_span_recorded(self):
        text = "Logged! [TRANSACTION: amount=1, category=x, type=expense, description=y]"
        directive = self._parse(text)
        assert directive.span == (8, len(text))

    @pytest.mark.parametrize("body, reason", [
        ("amount=abc, category=food, type=expense, description=x", "not a number"),
        ("amount=-5, category=food, type=expense, description=x", "negative"),
        ("amount=5, category=fast food, type=expense, description=x", "single word"),
        ("amount=5, category=food, type=refund, description=x", "income or expense"),
        ("amount=5, category=food, type=expense, description=", "empty"),
        ("amount=5, category=food, type=expense", "missing field"),
        ("category=food, amount=5, type=expense, description=x", "expected field"),
    ])
    def test_malformed_fields(self, body, reason):
        (marker,) = find_markers(f"[TRANSACTION: {body}]")
        with pytest.raises(ParseError, match=reason) as exc_info:
            parse_marker(marker)
        assert exc_info.value.marker == marker


class TestParseTransfer:
    """Tests for decoding TRANSFER markers."""

    def test_well_formed_transfer(self):
        (marker,) = find_markers(
            "[TRANSFER: amount=5000, from=Bank, to=Savings, description=Monthly saving]"
        )
        directive = parse_marker(marker)
        assert isinstance(directive, TransferDirective)
        assert directive.amount == Decimal("5000")
        assert directive.from_wallet_hint == "Bank"
        assert directive.to_wallet_hint == "Savings"
        assert directive.description == "Monthly saving"

    def test_missing_description_uses_default(self):
        (marker,) = find_markers("[TRANSFER: amount=5, from=Bank, to=Savings]")
        assert parse_marker(marker).description == "Transfer"
        assert parse_marker(marker, "Moved").description == "Moved"


class TestExtractor:
    """Tests for scanning whole replies."""

    def test_no_markers_returns_empty(self):
        assert extract_directives("Nothing to log here!") == []

    def test_two_markers_in_source_order(self):
        text = (
            "Transferred! [TRANSFER: amount=100, from=Bank, to=Cash] "
            "and logged [TRANSACTION: amount=40, category=dining, type=expense, "
            "description=Lunch, wallet=Cash]"
        )
        directives = extract_directives(text)
        assert [d.kind for d in directives] == ["transfer", "transaction"]
        assert directives[0].span[0] < directives[1].span[0]

    def test_malformed_marker_becomes_omission(self):
        text = (
            "[TRANSACTION: amount=abc, category=food, type=expense, description=x] "
            "[TRANSACTION: amount=7, category=food, type=expense, description=y]"
        )
        scan = scan_markers(text)
        assert len(scan.directives) == 1
        assert scan.directives[0].amount == Decimal("7")
        assert len(scan.omissions) == 1
        assert scan.omissions[0].keyword == "TRANSACTION"
        assert "not a number" in scan.omissions[0].reason
        assert scan.marker_count == 2

    def test_oversized_fields_become_omissions(self):
        text = (
            f"[TRANSACTION: amount=5, category={'x' * 60}, type=expense, description=a] "
            f"[TRANSACTION: amount=6, category=food, type=expense, description={'d' * 600}] "
            f"[TRANSFER: amount=1, from=Bank, to=Cash, description={'t' * 501}] "
            "[TRANSACTION: amount=7, category=food, type=expense, description=y]"
        )
        scan = scan_markers(text)
        assert [d.amount for d in scan.directives] == [Decimal("7")]
        assert [o.reason for o in scan.omissions] == [
            "category is longer than 50 characters",
            "description is longer than 500 characters",
            "description is longer than 500 characters",
        ]

    def test_lowercase_keyword_not_extracted(self):
        text = "[transaction: amount=7, category=food, type=expense, description=y]"
        assert extract_directives(text) == []


class TestSanitizer:
    """Tests for removing markers from display text."""

    def test_no_markers_returns_input_unchanged(self):
        text = "  Hello there!\n[note] keep me  "
        assert sanitize(text) == text

    def test_single_interior_space(self):
        text = (
            "Got it [TRANSACTION: amount=5, category=food, type=expense, "
            "description=coffee] enjoy!"
        )
        assert sanitize(text) == "Got it enjoy!"

    def test_trailing_marker(self):
        text = "Logged! [TRANSACTION: amount=500, category=dining, type=expense, description=Lunch]"
        assert sanitize(text) == "Logged!"

    def test_marker_before_punctuation(self):
        text = "Done [TRANSFER: amount=5, from=Bank, to=Cash]."
        assert sanitize(text) == "Done."

    def test_marker_on_its_own_line(self):
        text = "First line\n[TRANSFER: amount=5, from=Bank, to=Cash]\nLast line"
        assert sanitize(text) == "First line\nLast line"

    def test_malformed_and_lowercase_markers_removed(self):
        text = (
            "A [TRANSACTION: amount=abc] B "
            "[transfer: amount=1, from=x, to=y] C"
        )
        assert sanitize(text) == "A B C"

    def test_non_marker_brackets_kept(self):
        text = "See [1] [TRANSFER: amount=5, from=Bank, to=Cash]"
        assert sanitize(text) == "See [1]"
