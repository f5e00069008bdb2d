from __future__ import annotations

import re

_NON_WORD = re.compile(r"[^\w\s-]")


def tokenize(text: object, *, min_length: int = 2) -> list[str]:
    """Lowercase ``text``, drop punctuation other than hyphens, split on whitespace.

    Tokens shorter than ``min_length`` are discarded. Non-string input yields ``[]``.
    """
    if not isinstance(text, str) or not text:
        return []
    cleaned = _NON_WORD.sub(" ", text.lower())
    return [token for token in cleaned.split() if len(token) >= min_length]
