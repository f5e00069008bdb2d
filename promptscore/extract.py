from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from .records import (
    TEMPO_CEILING,
    TEMPO_FLOOR,
    InstrumentTag,
    PitchClass,
    ScaleName,
    SpecificOverrides,
    TempoRange,
)
from .tables import INSTRUMENT_SYNONYMS, MODE_KEYWORDS, PITCH_LETTERS
from .tokenize import tokenize

_LOGGER = logging.getLogger("promptscore.extract")
_BPM_WINDOW = 5
_FUSED_BPM = re.compile(r"^(\d{2,3})bpm$")
# "a" is usually an article; only read it as a key when the context says so.
_KEY_CONTEXT_WORDS = frozenset({"key", "in"})
# Joined rather than split so "i'd" or "e.g." leave no stray pitch letters.
_ELIDED = re.compile(r"['’.]")


def override_tokens(text: object) -> list[str]:
    """Token stream for explicit values: single letters kept, contractions joined."""
    if not isinstance(text, str):
        return []
    return tokenize(_ELIDED.sub("", text), min_length=1)


def extract_instruments(tokens: Sequence[str]) -> list[InstrumentTag]:
    present = set(tokens)
    return [tag for tag, synonyms in INSTRUMENT_SYNONYMS.items() if present & synonyms]


def _bpm_window(value: int) -> TempoRange | None:
    if not TEMPO_FLOOR <= value <= TEMPO_CEILING:
        return None
    half = min(_BPM_WINDOW, value - TEMPO_FLOOR, TEMPO_CEILING - value)
    return TempoRange(min=value - half, max=value + half)


def _tempo_override(tokens: Sequence[str]) -> TempoRange | None:
    found: TempoRange | None = None
    for index, token in enumerate(tokens):
        candidate: TempoRange | None = None
        fused = _FUSED_BPM.match(token)
        if fused:
            candidate = _bpm_window(int(fused.group(1)))
        elif token.isdigit():
            candidate = _bpm_window(int(token))
        elif token == "bpm" and index > 0 and tokens[index - 1].isdigit():
            candidate = _bpm_window(int(tokens[index - 1]))
        if candidate is not None:
            found = candidate
    return found


def _is_key_letter(tokens: Sequence[str], index: int) -> bool:
    token = tokens[index]
    if token not in PITCH_LETTERS:
        return False
    if token != "a":
        return True
    followed_by_mode = index + 1 < len(tokens) and tokens[index + 1] in MODE_KEYWORDS
    preceded_by_context = index > 0 and tokens[index - 1] in _KEY_CONTEXT_WORDS
    return followed_by_mode or preceded_by_context


def _key_override(tokens: Sequence[str]) -> tuple[PitchClass | None, ScaleName | None]:
    key: PitchClass | None = None
    scale: ScaleName | None = None
    for index, token in enumerate(tokens):
        if _is_key_letter(tokens, index):
            key = token.upper()  # type: ignore[assignment]
            if index + 1 < len(tokens) and tokens[index + 1] in MODE_KEYWORDS:
                scale = tokens[index + 1]  # type: ignore[assignment]
        elif token in MODE_KEYWORDS:
            scale = token  # type: ignore[assignment]
    return key, scale


def extract_overrides(tokens: Sequence[str]) -> SpecificOverrides:
    """Literal tempo and key/scale values from an unfiltered token stream.

    A number in [60, 200] becomes a +/-5 BPM window; the last one wins.
    """
    tempo = _tempo_override(tokens)
    key, scale = _key_override(tokens)
    overrides = SpecificOverrides(tempo_range=tempo, key=key, scale=scale)
    if overrides.as_update():
        _LOGGER.debug("Explicit overrides: %s", overrides.as_update())
    return overrides
