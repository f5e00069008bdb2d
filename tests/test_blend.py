from __future__ import annotations

import pytest

from promptscore.blend import blend, plurality, round_half_up
from promptscore.records import ParameterRecord, TempoRange, default_record


def _record(**overrides: object) -> ParameterRecord:
    data: dict[str, object] = {
        "tempo_range": TempoRange(min=100, max=120),
        "scale": "major",
        "rhythm_feel": "straight",
        "chord_progression": ("I", "V", "vi", "IV"),
        "instrument_set": ("keyboard",),
        "energy": 0.5,
        "mood": "neutral",
    }
    data.update(overrides)
    return ParameterRecord.model_validate(data)


UPBEAT = _record(
    tempo_range=TempoRange(min=120, max=140),
    instrument_set=("drums", "bass"),
    energy=0.8,
    mood="positive",
    provenance="upbeat",
)
CHILL = _record(
    tempo_range=TempoRange(min=70, max=95),
    rhythm_feel="relaxed",
    chord_progression=("I", "vi", "IV", "V"),
    instrument_set=("guitar", "keyboard", "bass"),
    energy=0.4,
    mood="relaxed",
    provenance="chill",
)


def test_round_half_up() -> None:
    assert round_half_up(82.5) == 83
    assert round_half_up(82.49) == 82
    assert round_half_up(130.0) == 130


def test_plurality_prefers_first_on_tie() -> None:
    assert plurality(["minor", "major"]) == "minor"
    assert plurality(["minor", "major", "major"]) == "major"


def test_empty_blend_is_default() -> None:
    assert blend([]) == default_record()


def test_single_record_short_circuits() -> None:
    assert blend([UPBEAT]) is UPBEAT


def test_identical_records_blend_to_themselves_except_mood() -> None:
    blended = blend([UPBEAT, UPBEAT])
    assert blended.model_dump(exclude={"mood"}) == UPBEAT.model_dump(exclude={"mood"})
    assert blended.mood == "positive-positive"


def test_tempo_is_energy_weighted() -> None:
    blended = blend([UPBEAT, CHILL])
    # weights 0.8 / 0.4 -> 2/3 and 1/3
    assert blended.tempo_range == TempoRange(min=103, max=125)


def test_energy_is_arithmetic_mean() -> None:
    assert blend([UPBEAT, CHILL]).energy == pytest.approx(0.6)


def test_progression_and_rhythm_follow_highest_energy() -> None:
    blended = blend([CHILL, UPBEAT])
    assert blended.chord_progression == UPBEAT.chord_progression
    assert blended.rhythm_feel == UPBEAT.rhythm_feel


def test_highest_energy_tie_goes_to_first_record() -> None:
    other = CHILL.model_copy(update={"energy": 0.8})
    blended = blend([other, UPBEAT])
    assert blended.rhythm_feel == "relaxed"


def test_instruments_are_unioned_in_order() -> None:
    assert blend([UPBEAT, CHILL]).instrument_set == ("drums", "bass", "guitar", "keyboard")


def test_scale_plurality_with_first_occurrence_tiebreak() -> None:
    dark = _record(scale="minor", mood="dark")
    bright = _record(scale="lydian", mood="happy")
    assert blend([dark, bright]).scale == "minor"
    assert blend([bright, dark]).scale == "lydian"
    assert blend([bright, dark, dark]).scale == "minor"


def test_moods_concatenate_in_order() -> None:
    assert blend([UPBEAT, CHILL]).mood == "positive-relaxed"


def test_order_changes_tiebreaks_not_magnitudes() -> None:
    forward = blend([UPBEAT, CHILL])
    backward = blend([CHILL, UPBEAT])
    assert forward.tempo_range == backward.tempo_range
    assert forward.energy == pytest.approx(backward.energy)


def test_zero_energies_fall_back_to_equal_weights() -> None:
    low = _record(tempo_range=TempoRange(min=60, max=80), energy=0.0)
    high = _record(tempo_range=TempoRange(min=100, max=120), energy=0.0)
    assert blend([low, high]).tempo_range == TempoRange(min=80, max=100)


def test_extended_fields_average_over_defining_records() -> None:
    reference = _record(danceability=0.8, valence=0.2, acousticness=0.4, origin="reference")
    blended = blend([UPBEAT, reference])
    assert blended.danceability == pytest.approx(0.8)
    assert blended.valence == pytest.approx(0.2)
    assert blended.origin == "blended"
    assert blend([UPBEAT, CHILL]).danceability is None


def test_provenance_joins_distinct_sources() -> None:
    assert blend([UPBEAT, CHILL, UPBEAT]).provenance == "upbeat+chill"


def test_key_is_voted() -> None:
    a = _record(key="D")
    b = _record(key="E")
    c = _record()
    assert blend([c, a, b]).key == "D"
    assert blend([UPBEAT, CHILL]).key is None
