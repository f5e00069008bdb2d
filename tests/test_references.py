from __future__ import annotations

import asyncio

import pytest

from promptscore.errors import ProviderError, ProviderRateLimitError
from promptscore.providers import StaticMetadataProvider
from promptscore.records import TrackFeatures, WeightedTrack
from promptscore.references import (
    Reference,
    ReferenceResolver,
    aggregate_tracks,
    detect_references,
    features_to_record,
)

BRIGHT = TrackFeatures(
    tempo=171.0, energy=0.73, danceability=0.51, valence=0.33, acousticness=0.0, key=1, mode=1
)


def _track(**overrides: object) -> WeightedTrack:
    data: dict[str, object] = {"tempo": 120.0, "energy": 0.5, "weight": 1.0}
    data.update(overrides)
    return WeightedTrack.model_validate(data)


# -----------------------------------------------------------------------------
# Detection
# -----------------------------------------------------------------------------


def test_detects_song_and_artist() -> None:
    refs = detect_references('something like "Blinding Lights" by The Weeknd')
    assert refs == [Reference("song", "Blinding Lights"), Reference("artist", "The Weeknd")]


def test_detects_album() -> None:
    assert detect_references('moody, from the album "Kid A"') == [Reference("album", "Kid A")]


def test_overlapping_patterns_are_collapsed() -> None:
    assert detect_references('sounds like "Purple Rain"') == [Reference("song", "Purple Rain")]
    assert detect_references("sounds like Daft Punk") == [Reference("artist", "Daft Punk")]


def test_artist_inside_song_title_is_dropped() -> None:
    refs = detect_references('similar to "Purple Rain", like Purple Rain')
    assert refs == [Reference("song", "Purple Rain")]


def test_common_words_are_not_artists() -> None:
    assert detect_references("music by The") == []
    assert detect_references("sounds like Chill", adjective_words={"chill"}) == []


def test_lowercase_names_are_not_artists() -> None:
    assert detect_references("make it sound like daft punk") == []


def test_no_references_in_plain_prompt() -> None:
    assert detect_references("upbeat jazzy guitar") == []
    assert detect_references("") == []


def test_reference_formatting() -> None:
    ref = Reference("song", "Hey Jude")
    assert ref.tag == "song:Hey Jude"
    assert str(ref) == 'song "Hey Jude"'


# -----------------------------------------------------------------------------
# Conversion
# -----------------------------------------------------------------------------


def test_aggregate_is_weight_normalised() -> None:
    features = aggregate_tracks(
        [
            _track(tempo=100.0, energy=0.4, weight=3.0, key=2, mode=1),
            _track(tempo=140.0, energy=0.8, weight=1.0, key=9, mode=0),
        ]
    )
    assert features.tempo == pytest.approx(110.0)
    assert features.energy == pytest.approx(0.5)
    assert (features.key, features.mode) == (2, 1)


def test_aggregate_key_vote_tie_goes_to_first() -> None:
    features = aggregate_tracks([_track(key=4, mode=0), _track(key=7, mode=1)])
    assert (features.key, features.mode) == (4, 0)


def test_aggregate_rejects_empty() -> None:
    with pytest.raises(ValueError):
        aggregate_tracks([])


def test_energetic_minor_track_to_record() -> None:
    features = TrackFeatures(
        tempo=128.0, energy=0.8, danceability=0.7, valence=0.7, acousticness=0.1, key=9, mode=0
    )
    record = features_to_record(features, "song:Test")
    assert (record.tempo_range.min, record.tempo_range.max) == (118, 138)
    assert record.scale == "minor"
    assert record.key == "A"
    assert record.rhythm_feel == "driving"
    assert record.mood == "positive"
    assert record.chord_progression == ("i", "bVII", "bVI", "bVII")
    assert record.instrument_set == ("drums",)
    assert record.origin == "reference"
    assert record.provenance == "song:Test"
    assert record.danceability == pytest.approx(0.7)


def test_quiet_acoustic_track_to_record() -> None:
    features = TrackFeatures(
        tempo=72.4, energy=0.3, danceability=0.2, valence=0.2, acousticness=0.8, key=0, mode=1
    )
    record = features_to_record(features, "artist:Quiet")
    assert (record.tempo_range.min, record.tempo_range.max) == (62, 82)
    assert record.rhythm_feel == "relaxed"
    assert record.mood == "dark"
    assert record.instrument_set == ("guitar", "keyboard")
    assert record.chord_progression == ("I", "vi", "IV", "V")


def test_missing_mode_uses_pitch_class_table() -> None:
    features = TrackFeatures(tempo=250.0, energy=0.5, key=1, mode=None)
    record = features_to_record(features, "song:X")
    assert record.scale == "minor"
    assert record.key == "C#"
    assert (record.tempo_range.min, record.tempo_range.max) == (190, 200)
    assert record.instrument_set == ("auto",)


# -----------------------------------------------------------------------------
# Resolution
# -----------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_resolves_in_reference_order() -> None:
    provider = StaticMetadataProvider(
        tracks={"bright lights": BRIGHT},
        artists={"daft punk": [_track(tempo=124.0, energy=0.8)]},
    )
    resolver = ReferenceResolver(provider)
    records, warnings = await resolver.resolve(
        [Reference("artist", "Daft Punk"), Reference("song", "Bright Lights")]
    )
    assert warnings == []
    assert [record.provenance for record in records] == ["artist:Daft Punk", "song:Bright Lights"]
    assert provider.calls == [("artist", "Daft Punk"), ("track", "Bright Lights")]


@pytest.mark.asyncio
async def test_unknown_reference_becomes_warning() -> None:
    resolver = ReferenceResolver(StaticMetadataProvider())
    records, warnings = await resolver.resolve([Reference("song", "Nonexistent Song")])
    assert records == []
    assert [warning.message for warning in warnings] == ['Could not analyze song "Nonexistent Song"']


@pytest.mark.asyncio
async def test_artist_track_count_is_forwarded() -> None:
    provider = StaticMetadataProvider(artists={"band": [_track() for _ in range(8)]})
    seen: list[int] = []
    original = provider.lookup_artist_top_tracks

    async def spy(name: str, count: int) -> list[WeightedTrack] | None:
        seen.append(count)
        return await original(name, count)

    provider.lookup_artist_top_tracks = spy  # type: ignore[method-assign]
    await ReferenceResolver(provider, artist_track_count=3).resolve([Reference("artist", "Band")])
    assert seen == [3]


class _FlakyProvider(StaticMetadataProvider):
    async def lookup_artist_top_tracks(self, name: str, count: int) -> list[WeightedTrack] | None:
        raise ProviderRateLimitError("Spotify rate limit hit")


@pytest.mark.asyncio
async def test_provider_failure_is_isolated() -> None:
    provider = _FlakyProvider(tracks={"bright lights": BRIGHT})
    records, warnings = await ReferenceResolver(provider).resolve(
        [Reference("artist", "Some Band"), Reference("song", "Bright Lights")]
    )
    assert [record.provenance for record in records] == ["song:Bright Lights"]
    assert len(warnings) == 1
    assert warnings[0].message.startswith('Could not analyze artist "Some Band"')
    assert "rate limit" in warnings[0].message


class _SlowProvider(StaticMetadataProvider):
    async def lookup_track(self, name: str, artist_hint: str | None = None) -> TrackFeatures | None:
        await asyncio.sleep(5)
        return BRIGHT


@pytest.mark.asyncio
async def test_lookup_timeout_becomes_warning() -> None:
    resolver = ReferenceResolver(_SlowProvider(), lookup_timeout=0.01)
    records, warnings = await resolver.resolve([Reference("song", "Slow")])
    assert records == []
    assert warnings[0].message == 'Could not analyze song "Slow": lookup timed out'


class _CountingProvider(StaticMetadataProvider):
    def __post_init__(self) -> None:
        super().__post_init__()
        self.in_flight = 0
        self.peak = 0

    async def lookup_track(self, name: str, artist_hint: str | None = None) -> TrackFeatures | None:
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        await asyncio.sleep(0.01)
        self.in_flight -= 1
        return BRIGHT


@pytest.mark.asyncio
async def test_lookups_run_concurrently() -> None:
    provider = _CountingProvider()
    records, _ = await ReferenceResolver(provider).resolve(
        [Reference("song", "One"), Reference("song", "Two"), Reference("song", "Three")]
    )
    assert len(records) == 3
    assert provider.peak == 3


class _BrokenProvider(StaticMetadataProvider):
    async def lookup_track(self, name: str, artist_hint: str | None = None) -> TrackFeatures | None:
        raise RuntimeError("bug")


@pytest.mark.asyncio
async def test_unexpected_errors_propagate() -> None:
    with pytest.raises(RuntimeError):
        await ReferenceResolver(_BrokenProvider()).resolve([Reference("song", "X")])


def test_provider_error_is_base_of_rate_limit() -> None:
    assert issubclass(ProviderRateLimitError, ProviderError)


def test_short_artist_name_inside_a_longer_title_word_is_kept() -> None:
    refs = detect_references('similar to "Hallelujah" by Al')
    assert refs == [Reference("song", "Hallelujah"), Reference("artist", "Al")]


@pytest.mark.parametrize("prompt", ["I like Jazz Music", "sounds like Techno", "in the style of Classical Rock"])
def test_genre_nouns_are_not_artists(prompt: str) -> None:
    assert detect_references(prompt) == []
