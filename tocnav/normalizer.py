"""Normalise TOC link labels and rendered text for comparison.

Labels lifted from a TOC line usually carry a dot leader and the printed page
number ("Introduction .......... 4"). Stripping both leaves the part of the
label that also appears in the section itself.
"""

from __future__ import annotations

import re
import unicodedata

# One trailing run of leader dots or digits, with surrounding whitespace.
_TRAILING_RUN = re.compile(r"\s*(?:\.+|\d+)\s*$")
_WHITESPACE = re.compile(r"\s+")
_PERIODS_AND_SPACE = re.compile(r"[.\s]+")


def normalize_label(raw: str) -> str:
    """Return *raw* without trailing dot leaders and page or section numbers.

    Compatibility characters are folded first (NFKC), so a typographic
    ellipsis counts as three dots and ligatures extracted from PDFs compare
    equal to their plain spelling.

    Examples
    --------
    >>> normalize_label("Introduction .......... 4")
    'Introduction'
    >>> normalize_label("3.2.1")
    ''
    """

    text = unicodedata.normalize("NFKC", raw or "")
    while True:
        stripped = _TRAILING_RUN.sub("", text, count=1)
        if stripped == text:
            break
        text = stripped
    return text.strip()


def collapse_whitespace(text: str) -> str:
    """Collapse every whitespace run to a single space."""

    return _WHITESPACE.sub(" ", text)


def strip_periods_and_space(text: str) -> str:
    """Drop all periods and whitespace."""

    return _PERIODS_AND_SPACE.sub("", text)


def label_words(label: str) -> list[str]:
    """Return the words of *label* longer than two characters, lowercased."""

    return [word.lower() for word in label.split() if len(word) > 2]
