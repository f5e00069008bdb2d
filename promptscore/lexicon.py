from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from importlib import resources
from typing import Any

from pydantic import ValidationError

from .errors import InvalidRecordError
from .records import ParameterRecord, record_from_mapping

_LOGGER = logging.getLogger("promptscore.lexicon")
_SEED_PACKAGE = "promptscore"
_SEED_DIR = "data"
_SEED_FILE = "adjectives.json"

# Used when the packaged seed table cannot be read.
_MINIMAL_SEED: dict[str, dict[str, Any]] = {
    "upbeat": {
        "tempo_range": [120, 140],
        "scale": "major",
        "rhythm_feel": "straight",
        "chord_progression": ["I", "V", "vi", "IV"],
        "instrument_set": ["drums", "bass", "synth_lead"],
        "energy": 0.8,
        "mood": "positive",
    },
    "chill": {
        "tempo_range": [70, 95],
        "scale": "major",
        "rhythm_feel": "relaxed",
        "chord_progression": ["I", "V", "vi", "IV"],
        "instrument_set": ["guitar", "keyboard", "bass"],
        "energy": 0.4,
        "mood": "relaxed",
    },
}


def _parse_entries(entries: Mapping[str, Any]) -> dict[str, ParameterRecord]:
    parsed: dict[str, ParameterRecord] = {}
    for word, data in entries.items():
        if not isinstance(data, Mapping):
            raise InvalidRecordError(f"Lexicon entry {word!r} is not an object")
        try:
            parsed[word.lower()] = record_from_mapping(data).stripped()
        except ValidationError as exc:
            raise InvalidRecordError(f"Invalid lexicon entry {word!r}: {exc}") from exc
    return parsed


def _flatten_categories(data: Mapping[str, Any]) -> dict[str, Any]:
    flat: dict[str, Any] = {}
    for category, entries in data.items():
        if not isinstance(entries, Mapping):
            raise InvalidRecordError(f"Lexicon category {category!r} is not an object")
        flat.update(entries)
    return flat


def load_seed_entries() -> dict[str, ParameterRecord]:
    """Read the packaged adjective table, falling back to a two-word table."""
    try:
        seed = resources.files(_SEED_PACKAGE).joinpath(_SEED_DIR).joinpath(_SEED_FILE)
        raw = seed.read_text(encoding="utf-8")
        entries = _parse_entries(_flatten_categories(json.loads(raw)))
    except (OSError, ValueError, InvalidRecordError) as exc:
        _LOGGER.warning("Failed to load adjective seed table (%s); using minimal table.", exc)
        return _parse_entries(_MINIMAL_SEED)
    _LOGGER.debug("Loaded %d adjectives from seed table.", len(entries))
    return entries


class Lexicon:
    """Adjective -> canonical ParameterRecord mapping owned by one engine.

    Only :func:`expand_lexicon` writes to it during resolution. Not thread-safe;
    callers serialise access per engine.
    """

    def __init__(self, entries: Mapping[str, ParameterRecord] | None = None) -> None:
        source = load_seed_entries() if entries is None else entries
        self._entries: dict[str, ParameterRecord] = {
            word: record.stripped() for word, record in source.items()
        }

    def __contains__(self, word: object) -> bool:
        return word in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def get(self, word: str) -> ParameterRecord | None:
        return self._entries.get(word)

    def store(self, word: str, record: ParameterRecord) -> None:
        self._entries[word] = record.stripped()

    def adjectives(self) -> list[str]:
        return sorted(self._entries)

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """JSON-ready copy of every entry."""
        return {
            word: record.model_dump(mode="json", exclude={"provenance", "origin"}, exclude_none=True)
            for word, record in self._entries.items()
        }

    @classmethod
    def from_snapshot(cls, snapshot: Mapping[str, Any]) -> "Lexicon":
        return cls(_parse_entries(snapshot))


@dataclass(frozen=True, slots=True)
class Resolution:
    """Outcome of resolving one adjective token."""

    token: str
    record: ParameterRecord
    exact: bool


def expand_lexicon(lexicon: Lexicon, resolutions: Iterable[Resolution]) -> list[str]:
    """Store every non-exact resolution under its literal token; return the words added."""
    added: list[str] = []
    for resolution in resolutions:
        if resolution.exact:
            continue
        _LOGGER.info("Adding %r to lexicon (%s).", resolution.token, resolution.record.origin)
        lexicon.store(resolution.token, resolution.record)
        if resolution.token not in added:
            added.append(resolution.token)
    return added
