"""
Directive Extractor

Scans an assistant reply for markers and decodes each one. A marker that
fails to parse is dropped and reported as an omission; it never stops the
scan, and it never reaches the user as an error.
"""

import structlog
from pydantic import BaseModel, Field

from finance_chat.markers.grammar import (
    DEFAULT_TRANSFER_DESCRIPTION,
    ParseError,
    find_markers,
    parse_marker,
)
from finance_chat.models.ledger import Directive
from finance_chat.models.results import MarkerOmission


logger = structlog.get_logger(__name__)


class MarkerScan(BaseModel):
    """Directives in source order, plus the markers that were dropped."""

    directives: list[Directive] = Field(default_factory=list)
    omissions: list[MarkerOmission] = Field(default_factory=list)

    @property
    def marker_count(self) -> int:
        return len(self.directives) + len(self.omissions)


def scan_markers(
    text: str,
    default_transfer_description: str = DEFAULT_TRANSFER_DESCRIPTION,
) -> MarkerScan:
    """
    Extract every directive from `text`, left to right.

    Keywords are matched case-sensitively. Later directives may depend on
    earlier ones having been applied, so order is preserved exactly.
    """
    scan = MarkerScan()

    for marker in find_markers(text):
        try:
            scan.directives.append(
                parse_marker(marker, default_transfer_description)
            )
        except ParseError as e:
            scan.omissions.append(MarkerOmission(
                keyword=marker.keyword.value,
                marker_text=marker.text,
                start=marker.start,
                end=marker.end,
                reason=e.reason,
            ))
            logger.debug(
                "marker_dropped",
                keyword=marker.keyword.value,
                reason=e.reason,
            )

    if scan.marker_count:
        logger.debug(
            "markers_scanned",
            directives=len(scan.directives),
            dropped=len(scan.omissions),
        )

    return scan


def extract_directives(text: str) -> list[Directive]:
    """Directives found in `text`; empty when there are none."""
    return scan_markers(text).directives
