"""
Content Sanitizer

Removes marker markup from an assistant reply before it is shown.

Every span that looks like a marker is removed, including markers that
failed to parse or whose directive was later rejected. Keywords are
matched case-insensitively here, so a marker the extractor ignored for
its casing still never leaks to the user. Brackets that are not markers
are left alone.
"""

from finance_chat.markers.grammar import find_markers


_HORIZONTAL_SPACE = " \t"
_CLOSING_PUNCTUATION = tuple(".,!?;:)")


def _drop_line_break(text: str) -> str:
    if text.startswith("\r\n"):
        return text[2:]
    if text.startswith("\n"):
        return text[1:]
    return text


def _join(left: str, right: str) -> str:
    """Glue the text on both sides of a removed marker."""
    bare_left = left.rstrip(_HORIZONTAL_SPACE)
    bare_right = right.lstrip(_HORIZONTAL_SPACE)
    left_gap = left[len(bare_left):]
    right_gap = right[:len(right) - len(bare_right)]

    at_line_start = not bare_left or bare_left.endswith("\n")
    at_line_end = not bare_right or bare_right.startswith(("\n", "\r\n"))

    if at_line_start and at_line_end:
        # The marker was the whole line
        if bare_left:
            return bare_left + _drop_line_break(bare_right)
        return bare_right
    if at_line_start:
        return left + bare_right
    if at_line_end:
        return bare_left + right
    if bare_right.startswith(_CLOSING_PUNCTUATION):
        return bare_left + bare_right
    return bare_left + (left_gap or right_gap)[:1] + bare_right


def sanitize(text: str) -> str:
    """
    Text shown to the user: `text` with all markers removed.

    Returns `text` unchanged when it holds no markers. Otherwise the seam
    left by each marker keeps a single space, and the result is stripped.
    """
    markers = list(find_markers(text, case_sensitive=False))
    if not markers:
        return text

    result = text[:markers[0].start]
    for position, marker in enumerate(markers):
        if position + 1 < len(markers):
            segment = text[marker.end:markers[position + 1].start]
        else:
            segment = text[marker.end:]
        result = _join(result, segment)

    return result.strip()
