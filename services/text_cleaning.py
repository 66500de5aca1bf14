from __future__ import annotations

from typing import Optional


def _halve_if_doubled(text: str) -> str:
    length = len(text)
    if length < 2 or length % 2 != 0:
        return text
    half = length // 2
    if text[:half] == text[half:]:
        return text[:half]
    return text


def clean_text(text: Optional[str]) -> str:
    """Repair a value that the extractor emitted twice in a row.

    "JohnJohn" -> "John", "John" -> "John", None -> "". The input is trimmed
    first; an exact doubling of the trimmed value is collapsed until no
    doubling remains, so clean_text(clean_text(x)) == clean_text(x).
    """
    if not text:
        return ""
    current = text.strip()
    while True:
        halved = _halve_if_doubled(current)
        if halved == current:
            return current
        current = halved


def clean_optional(text: Optional[str]) -> Optional[str]:
    """clean_text() that keeps None/blank as None, for nullable columns."""
    cleaned = clean_text(text)
    return cleaned or None


def is_doubled(text: Optional[str]) -> bool:
    if not text:
        return False
    return clean_text(text) != text.strip()
