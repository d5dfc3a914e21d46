"""Marker grammar, extraction and display sanitizing."""

from finance_chat.markers.extractor import (
    MarkerScan,
    extract_directives,
    scan_markers,
)
from finance_chat.markers.grammar import (
    MarkerKeyword,
    MarkerSpan,
    ParseError,
    find_markers,
    parse_marker,
)
from finance_chat.markers.sanitizer import sanitize

__all__ = [
    "MarkerKeyword",
    "MarkerScan",
    "MarkerSpan",
    "ParseError",
    "extract_directives",
    "find_markers",
    "parse_marker",
    "sanitize",
    "scan_markers",
]
