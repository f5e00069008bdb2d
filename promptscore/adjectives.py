from __future__ import annotations

import logging
import random
from collections.abc import Iterable

from .lexicon import Lexicon, Resolution
from .records import ParameterRecord, default_record
from .tables import DESCRIPTOR_WORDS, canonical_for_synonym

_LOGGER = logging.getLogger("promptscore.adjectives")

# Semantic-fallback records differ from the canonical one by at most this much energy.
ENERGY_JITTER = 0.05


def extract_adjectives(tokens: Iterable[str], lexicon: Lexicon) -> list[str]:
    """Tokens that describe the music, in prompt order, without repeats."""
    adjectives: list[str] = []
    for token in tokens:
        if token in adjectives:
            continue
        if token in lexicon or token in DESCRIPTOR_WORDS or canonical_for_synonym(token):
            adjectives.append(token)
    return adjectives


class AdjectiveResolver:
    """Maps adjective tokens to parameter records.

    Lookup order: exact lexicon entry, then the semantic group table (energy nudged by
    up to ``ENERGY_JITTER``), then the default record. ``strict`` disables the nudge.
    """

    def __init__(
        self,
        lexicon: Lexicon,
        *,
        rng: random.Random | None = None,
        strict: bool = False,
    ) -> None:
        self._lexicon = lexicon
        self._rng = rng if rng is not None else random.Random()
        self._strict = strict

    def resolve(self, token: str) -> Resolution:
        stored = self._lexicon.get(token)
        if stored is not None:
            return Resolution(token=token, record=stored.with_provenance(token), exact=True)

        canonical = canonical_for_synonym(token)
        if canonical is not None:
            base = self._lexicon.get(canonical)
            if base is not None:
                _LOGGER.debug("Using similarity: %r -> %r", token, canonical)
                return Resolution(token=token, record=self._inferred(base, token), exact=False)
            _LOGGER.debug("Synonym %r points at %r, which is not in the lexicon.", token, canonical)

        _LOGGER.debug("Unknown adjective %r; using default record.", token)
        return Resolution(token=token, record=default_record(token), exact=False)

    def resolve_all(self, tokens: Iterable[str]) -> list[Resolution]:
        return [self.resolve(token) for token in tokens]

    def _inferred(self, base: ParameterRecord, token: str) -> ParameterRecord:
        energy = base.energy
        if not self._strict:
            energy += self._rng.uniform(-ENERGY_JITTER, ENERGY_JITTER)
            energy = min(1.0, max(0.0, energy))
        return base.model_copy(update={"energy": energy, "provenance": token, "origin": "inferred"})
