"""Offset-based search and splice helpers shared by catalog rules.

Rules match raw text, so most of them boil down to "find an anchor,
look a bounded distance around it, splice something in". These helpers
keep the bounded searches consistent across rules.
"""

from __future__ import annotations


def index_of(text: str, search: str, start: int, max_range: int = 0) -> int:
    """Find `search` at or after `start`.

    Returns -1 when not found, or when found more than `max_range`
    characters past `start` (a `max_range` of 0 means unbounded).
    """
    start = max(start, 0)
    index = text.find(search, start)
    if index < 0 or (max_range and index - start > max_range):
        return -1
    return index


def last_index_of(text: str, search: str, start: int, max_range: int = 0) -> int:
    """Find the last `search` beginning at or before `start`.

    Returns -1 when not found, or when found more than `max_range`
    characters before `start` (a `max_range` of 0 means unbounded).
    """
    if start < 0:
        return -1
    index = text.rfind(search, 0, start + len(search))
    if index < 0 or (max_range and start - index > max_range):
        return -1
    return index


def insert_at(text: str, index: int, insert: str) -> str:
    return text[:index] + insert + text[index:]


def replace_with(text: str, index: int, old: str, new: str) -> str:
    """Replace the `old`-sized span starting at `index` with `new`."""
    return text[:index] + new + text[index + len(old):]


def preceded_by(text: str, index: int, snippet: str) -> bool:
    """True if `snippet` ends exactly at `index`."""
    return index >= len(snippet) and text[index - len(snippet):index] == snippet
