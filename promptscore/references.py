"""Song, artist and album mentions resolved into parameter records.

Detection is regex-based on the original prompt text. Each detected reference is
looked up independently and concurrently; a reference that cannot be resolved leaves
a :class:`ReferenceWarning` instead of a record and never affects its siblings.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Collection, Sequence
from dataclasses import dataclass
from typing import Literal, TypeVar

from .blend import round_half_up
from .errors import ProviderError
from .providers.base import MusicMetadataProvider
from .records import (
    TEMPO_CEILING,
    TEMPO_FLOOR,
    InstrumentTag,
    ParameterRecord,
    ReferenceWarning,
    TempoRange,
    TrackFeatures,
    WeightedTrack,
)
from .tables import (
    PITCH_CLASS_NAMES,
    PITCH_CLASS_SCALES,
    REFERENCE_PROGRESSIONS,
    REFERENCE_STOP_WORDS,
)

_LOGGER = logging.getLogger("promptscore.references")

ReferenceKind = Literal["song", "artist", "album"]
T = TypeVar("T")

_NAME = r"([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)"
_SONG_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r'\blike\s+"([^"]+)"',
        r'\bsounds?\s+like\s+"([^"]+)"',
        r'\bsimilar\s+to\s+"([^"]+)"',
        r'\bin\s+the\s+style\s+of\s+"([^"]+)"',
    )
)
# Lead-in words are matched lowercase only; the name itself must be capitalised.
_ARTIST_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(pattern)
    for pattern in (
        rf"\blike\s+{_NAME}",
        rf"\bsounds?\s+like\s+{_NAME}",
        rf"\bsimilar\s+to\s+{_NAME}",
        rf"\bin\s+the\s+style\s+of\s+{_NAME}",
        rf"\bby\s+{_NAME}",
    )
)
_ALBUM_PATTERN = re.compile(r'\balbum[:\s]+"([^"]+)"', re.IGNORECASE)

ENERGY_DRIVING = 0.7
ENERGY_STRAIGHT = 0.4
ENERGY_PROGRESSION = 0.6
TEMPO_SPREAD = 10


@dataclass(frozen=True, slots=True)
class Reference:
    kind: ReferenceKind
    name: str

    @property
    def tag(self) -> str:
        return f"{self.kind}:{self.name}"

    def __str__(self) -> str:
        return f'{self.kind} "{self.name}"'


def _contains_words(text: str, name: str) -> bool:
    return re.search(rf"\b{re.escape(name)}\b", text, re.IGNORECASE) is not None


def _is_stop_name(name: str, adjective_words: Collection[str]) -> bool:
    words = name.lower().split()
    return all(word in REFERENCE_STOP_WORDS or word in adjective_words for word in words)


def detect_references(prompt: str, *, adjective_words: Collection[str] = ()) -> list[Reference]:
    """Song, artist and album mentions in discovery order, without duplicates.

    Every pattern family runs; an artist candidate made only of stop words or known
    adjectives, or contained in an already detected song title, is dropped.
    """
    if not isinstance(prompt, str) or not prompt:
        return []

    found: list[Reference] = []
    seen: set[tuple[str, str]] = set()

    def add(kind: ReferenceKind, name: str) -> None:
        name = name.strip()
        identity = (kind, name.casefold())
        if not name or identity in seen:
            return
        seen.add(identity)
        found.append(Reference(kind=kind, name=name))

    for pattern in _SONG_PATTERNS:
        for match in pattern.finditer(prompt):
            add("song", match.group(1))

    songs = [ref.name for ref in found]
    for pattern in _ARTIST_PATTERNS:
        for match in pattern.finditer(prompt):
            name = match.group(1)
            if _is_stop_name(name, adjective_words):
                _LOGGER.debug("Ignoring artist candidate %r (common word).", name)
                continue
            if any(_contains_words(song, name) for song in songs):
                _LOGGER.debug("Ignoring artist candidate %r (already a song).", name)
                continue
            add("artist", name)

    for match in _ALBUM_PATTERN.finditer(prompt):
        add("album", match.group(1))

    return found


# -----------------------------------------------------------------------------
# Feature conversion
# -----------------------------------------------------------------------------


def aggregate_tracks(tracks: Sequence[WeightedTrack]) -> TrackFeatures:
    """Weight-normalised average of numeric features; key/mode by weighted vote."""
    if not tracks:
        raise ValueError("cannot aggregate an empty track list")
    total = sum(track.weight for track in tracks)
    weights = [track.weight / total if total > 0 else 1.0 / len(tracks) for track in tracks]

    def mean(field: str) -> float:
        return sum(getattr(track, field) * weight for track, weight in zip(tracks, weights))

    def unit_mean(field: str) -> float:
        return min(1.0, max(0.0, mean(field)))

    votes: dict[tuple[int, int | None], float] = {}
    for track, weight in zip(tracks, weights):
        combo = (track.key, track.mode)
        votes[combo] = votes.get(combo, 0.0) + weight
    key, mode = (0, 1)
    best = 0.0
    for combo, weight in votes.items():
        if weight > best:
            best = weight
            key, mode = combo

    return TrackFeatures(
        tempo=mean("tempo"),
        energy=unit_mean("energy"),
        danceability=unit_mean("danceability"),
        valence=unit_mean("valence"),
        acousticness=unit_mean("acousticness"),
        instrumentalness=unit_mean("instrumentalness"),
        liveness=unit_mean("liveness"),
        speechiness=unit_mean("speechiness"),
        loudness=mean("loudness"),
        key=key,
        mode=mode,  # type: ignore[arg-type]
    )


def _instruments(features: TrackFeatures) -> tuple[InstrumentTag, ...]:
    instruments: list[InstrumentTag] = []
    if features.acousticness > 0.6:
        instruments.append("guitar")
    if features.danceability > 0.6:
        instruments.append("drums")
    if features.energy < 0.4:
        instruments.append("keyboard")
    return tuple(instruments) or ("auto",)


def features_to_record(features: TrackFeatures, provenance: str) -> ParameterRecord:
    if features.mode == 0:
        scale = "minor"
    elif features.mode == 1:
        scale = "major"
    else:
        scale = PITCH_CLASS_SCALES[features.key % 12]

    if features.energy > ENERGY_DRIVING:
        rhythm = "driving"
    elif features.energy > ENERGY_STRAIGHT:
        rhythm = "straight"
    else:
        rhythm = "relaxed"

    if features.valence > 0.6:
        mood = "positive"
    elif features.valence < 0.4:
        mood = "dark"
    else:
        mood = "neutral"

    tempo = min(TEMPO_CEILING, max(TEMPO_FLOOR, round_half_up(features.tempo)))
    return ParameterRecord(
        tempo_range=TempoRange(
            min=max(TEMPO_FLOOR, tempo - TEMPO_SPREAD),
            max=min(TEMPO_CEILING, tempo + TEMPO_SPREAD),
        ),
        scale=scale,
        rhythm_feel=rhythm,
        chord_progression=REFERENCE_PROGRESSIONS[
            (scale == "minor", features.energy > ENERGY_PROGRESSION)
        ],
        instrument_set=_instruments(features),
        energy=features.energy,
        mood=mood,
        provenance=provenance,
        origin="reference",
        key=PITCH_CLASS_NAMES[features.key % 12],
        danceability=features.danceability,
        valence=features.valence,
        acousticness=features.acousticness,
    )


# -----------------------------------------------------------------------------
# Resolution
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ReferenceOutcome:
    reference: Reference
    record: ParameterRecord | None = None
    warning: ReferenceWarning | None = None


class ReferenceResolver:
    """Looks references up through a metadata provider, concurrently."""

    def __init__(
        self,
        provider: MusicMetadataProvider,
        *,
        artist_track_count: int = 5,
        album_track_count: int = 6,
        lookup_timeout: float | None = None,
    ) -> None:
        self._provider = provider
        self._artist_track_count = artist_track_count
        self._album_track_count = album_track_count
        self._lookup_timeout = lookup_timeout

    async def resolve(
        self, references: Sequence[Reference]
    ) -> tuple[list[ParameterRecord], list[ReferenceWarning]]:
        if not references:
            return [], []
        outcomes = await asyncio.gather(*(self._resolve_one(ref) for ref in references))
        records = [outcome.record for outcome in outcomes if outcome.record is not None]
        warnings = [outcome.warning for outcome in outcomes if outcome.warning is not None]
        return records, warnings

    async def _bounded(self, awaitable: Awaitable[T]) -> T:
        if self._lookup_timeout is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout=self._lookup_timeout)

    async def _lookup(self, reference: Reference) -> TrackFeatures | None:
        if reference.kind == "song":
            return await self._bounded(self._provider.lookup_track(reference.name))
        if reference.kind == "artist":
            tracks = await self._bounded(
                self._provider.lookup_artist_top_tracks(reference.name, self._artist_track_count)
            )
        else:
            tracks = await self._bounded(
                self._provider.lookup_album_tracks(reference.name, None, self._album_track_count)
            )
        if not tracks:
            return None
        return aggregate_tracks(tracks)

    async def _resolve_one(self, reference: Reference) -> ReferenceOutcome:
        _LOGGER.info("Analyzing %s", reference)
        try:
            features = await self._lookup(reference)
        except ProviderError as exc:
            _LOGGER.warning("Lookup for %s failed: %s", reference, exc)
            return ReferenceOutcome(
                reference, warning=ReferenceWarning(message=f"Could not analyze {reference}: {exc}")
            )
        except asyncio.TimeoutError:
            _LOGGER.warning("Lookup for %s timed out after %ss", reference, self._lookup_timeout)
            return ReferenceOutcome(
                reference,
                warning=ReferenceWarning(
                    message=f"Could not analyze {reference}: lookup timed out"
                ),
            )
        if features is None:
            _LOGGER.info("No metadata found for %s", reference)
            return ReferenceOutcome(
                reference, warning=ReferenceWarning(message=f"Could not analyze {reference}")
            )
        return ReferenceOutcome(reference, record=features_to_record(features, reference.tag))
