"""Typed parameter records shared by every stage of prompt resolution.

Records are immutable pydantic models; each stage builds new records instead of
mutating the ones it received, and every construction goes through validation so a
blended or overridden record is schema-checked the same way a seed entry is.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Literal, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

ScaleName = Literal[
    "major",
    "minor",
    "blues",
    "dorian",
    "mixolydian",
    "lydian",
    "aeolian",
    "phrygian",
]
RhythmFeel = Literal[
    "straight",
    "relaxed",
    "driving",
    "swing",
    "syncopated",
    "shuffle",
    "halftime",
    "floating",
    "pulsing",
    "bouncy",
]
InstrumentTag = Literal[
    "guitar",
    "keyboard",
    "drums",
    "bass",
    "string",
    "brass",
    "vocal",
    "flute",
    "organ",
    "reed",
    "synth_lead",
    "auto",
]
PitchClass = Literal["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]
RecordOrigin = Literal["lexicon", "inferred", "default", "reference", "blended"]

TEMPO_FLOOR = 60
TEMPO_CEILING = 200
AUTO_INSTRUMENT: InstrumentTag = "auto"


class TempoRange(BaseModel):
    """Inclusive BPM window."""

    min: int = Field(ge=TEMPO_FLOOR, le=TEMPO_CEILING)
    max: int = Field(ge=TEMPO_FLOOR, le=TEMPO_CEILING)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _accept_pairs(cls, data: object) -> object:
        if isinstance(data, Sequence) and not isinstance(data, (str, bytes)):
            pair = list(cast(Sequence[Any], data))
            if len(pair) != 2:
                raise ValueError(f"tempo range needs two values, got {len(pair)}")
            return {"min": pair[0], "max": pair[1]}
        return data

    @model_validator(mode="after")
    def _check_order(self) -> "TempoRange":
        if self.min > self.max:
            raise ValueError(f"tempo range min {self.min} exceeds max {self.max}")
        return self

    @property
    def midpoint(self) -> float:
        return (self.min + self.max) / 2


class ParameterRecord(BaseModel):
    """Musical attributes contributed by one adjective, one reference, or a blend."""

    tempo_range: TempoRange
    scale: ScaleName = "major"
    rhythm_feel: RhythmFeel = "straight"
    chord_progression: tuple[str, ...] = Field(min_length=1)
    instrument_set: tuple[InstrumentTag, ...] = ()
    energy: float = Field(default=0.5, ge=0.0, le=1.0)
    mood: str = "neutral"
    provenance: str | None = None
    origin: RecordOrigin = "lexicon"
    key: PitchClass | None = None

    # Only reference-derived records (and blends that include one) carry these.
    danceability: float | None = Field(default=None, ge=0.0, le=1.0)
    valence: float | None = Field(default=None, ge=0.0, le=1.0)
    acousticness: float | None = Field(default=None, ge=0.0, le=1.0)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("instrument_set", mode="before")
    @classmethod
    def _dedupe_instruments(cls, value: object) -> object:
        if isinstance(value, (list, tuple, set, frozenset)):
            return tuple(dict.fromkeys(cast(Sequence[Any], value)))
        return value

    @field_validator("chord_progression", mode="before")
    @classmethod
    def _coerce_progression(cls, value: object) -> object:
        if isinstance(value, str):
            return tuple(part for part in value.replace(",", " ").split() if part)
        return value

    def with_provenance(self, provenance: str | None) -> "ParameterRecord":
        return self.model_copy(update={"provenance": provenance})

    def stripped(self) -> "ParameterRecord":
        """Return the canonical lexicon form: no provenance, origin ``lexicon``."""
        return self.model_copy(update={"provenance": None, "origin": "lexicon"})

    def musical_fields(self) -> dict[str, Any]:
        return self.model_dump(exclude={"provenance", "origin"})


class ReferenceWarning(BaseModel):
    message: str

    model_config = ConfigDict(extra="forbid", frozen=True)

    def __str__(self) -> str:
        return self.message


class FinalParameters(ParameterRecord):
    """Blended, overridden record plus the warnings collected while resolving it."""

    warnings: tuple[ReferenceWarning, ...] = ()
    prompt: str = ""

    @classmethod
    def from_record(
        cls,
        record: ParameterRecord,
        *,
        warnings: Sequence[ReferenceWarning] = (),
        prompt: str = "",
    ) -> "FinalParameters":
        data = record.model_dump()
        data["warnings"] = tuple(warnings)
        data["prompt"] = prompt
        return cls.model_validate(data)


class GeneratorContract(BaseModel):
    """Minimal parameter set consumed by the audio renderer."""

    bpm: int
    keyword: str
    instrument: str
    bars: int = Field(ge=1)
    auxiliary: FinalParameters

    model_config = ConfigDict(extra="forbid", frozen=True)


class SpecificOverrides(BaseModel):
    """Literal values read straight from the prompt; absent fields stay untouched."""

    tempo_range: TempoRange | None = None
    key: PitchClass | None = None
    scale: ScaleName | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    def as_update(self) -> dict[str, Any]:
        return {
            name: getattr(self, name)
            for name in ("tempo_range", "key", "scale")
            if getattr(self, name) is not None
        }


class TrackFeatures(BaseModel):
    """Audio features for one track as reported by the metadata provider."""

    tempo: float = Field(ge=0.0)
    energy: float = Field(ge=0.0, le=1.0)
    danceability: float = Field(default=0.5, ge=0.0, le=1.0)
    valence: float = Field(default=0.5, ge=0.0, le=1.0)
    acousticness: float = Field(default=0.0, ge=0.0, le=1.0)
    instrumentalness: float = Field(default=0.0, ge=0.0, le=1.0)
    liveness: float = Field(default=0.0, ge=0.0, le=1.0)
    speechiness: float = Field(default=0.0, ge=0.0, le=1.0)
    loudness: float = 0.0
    key: int = Field(default=0, ge=0, le=11)
    mode: Literal[0, 1] | None = None

    model_config = ConfigDict(extra="ignore", frozen=True)


class WeightedTrack(TrackFeatures):
    """Track features plus the share of influence it carries within an artist or album."""

    weight: float = Field(default=1.0, ge=0.0)
    name: str | None = None
    popularity: int | None = None


def default_record(provenance: str | None = None) -> ParameterRecord:
    return ParameterRecord(
        tempo_range=TempoRange(min=100, max=120),
        scale="major",
        rhythm_feel="straight",
        chord_progression=("I", "V", "vi", "IV"),
        instrument_set=("keyboard", "guitar"),
        energy=0.5,
        mood="neutral",
        provenance=provenance,
        origin="default",
    )


def record_from_mapping(data: Mapping[str, Any], *, provenance: str | None = None) -> ParameterRecord:
    payload = dict(data)
    payload.setdefault("origin", "lexicon")
    if provenance is not None:
        payload["provenance"] = provenance
    return ParameterRecord.model_validate(payload)
