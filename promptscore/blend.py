"""Deterministic blending of parameter records.

Record order never changes magnitudes; it only breaks ties (plurality votes and the
highest-energy pick both prefer the earliest record).
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from .records import ParameterRecord, TempoRange, default_record

_LOGGER = logging.getLogger("promptscore.blend")
_EXTENDED_FIELDS = ("danceability", "valence", "acousticness")
MOOD_SEPARATOR = "-"
PROVENANCE_SEPARATOR = "+"

T = TypeVar("T")


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def plurality(values: Sequence[T]) -> T:
    """Most frequent value; ties go to the value seen first."""
    counts: dict[T, int] = {}
    for value in values:
        counts[value] = counts.get(value, 0) + 1
    best = values[0]
    for value in counts:
        if counts[value] > counts[best]:
            best = value
    return best


def _energy_weights(records: Sequence[ParameterRecord]) -> list[float]:
    weights = [record.energy for record in records]
    if sum(weights) <= 0.0:
        return [1.0] * len(records)
    return weights


def _blend_tempo(records: Sequence[ParameterRecord]) -> TempoRange:
    weights = _energy_weights(records)
    total = sum(weights)
    low = sum(record.tempo_range.min * weight for record, weight in zip(records, weights))
    high = sum(record.tempo_range.max * weight for record, weight in zip(records, weights))
    return TempoRange(min=round_half_up(low / total), max=round_half_up(high / total))


def _mean_defined(records: Sequence[ParameterRecord], getter: Callable[[ParameterRecord], Any]) -> float | None:
    values = [getter(record) for record in records if getter(record) is not None]
    if not values:
        return None
    return min(1.0, sum(values) / len(values))


def _dominant(records: Sequence[ParameterRecord]) -> ParameterRecord:
    best = records[0]
    for record in records[1:]:
        if record.energy > best.energy:
            best = record
    return best


def _provenance(records: Sequence[ParameterRecord]) -> str | None:
    tags = [record.provenance for record in records if record.provenance]
    if not tags:
        return None
    return PROVENANCE_SEPARATOR.join(dict.fromkeys(tags))


def blend(records: Sequence[ParameterRecord]) -> ParameterRecord:
    """Merge adjective- and reference-derived records into one record."""
    if not records:
        return default_record()
    if len(records) == 1:
        return records[0]

    dominant = _dominant(records)
    keys = [record.key for record in records if record.key is not None]
    origins = {record.origin for record in records}
    instruments: list[str] = []
    for record in records:
        instruments.extend(record.instrument_set)

    payload: dict[str, Any] = {
        "tempo_range": _blend_tempo(records),
        "scale": plurality([record.scale for record in records]),
        "rhythm_feel": dominant.rhythm_feel,
        "chord_progression": dominant.chord_progression,
        "instrument_set": instruments,
        "energy": min(1.0, sum(record.energy for record in records) / len(records)),
        "mood": MOOD_SEPARATOR.join(record.mood for record in records if record.mood),
        "provenance": _provenance(records),
        "origin": origins.pop() if len(origins) == 1 else "blended",
        "key": plurality(keys) if keys else None,
    }
    for name in _EXTENDED_FIELDS:
        payload[name] = _mean_defined(records, lambda record, name=name: getattr(record, name))

    blended = ParameterRecord.model_validate(payload)
    _LOGGER.debug(
        "Blended %d records: tempo %d-%d, scale %s, energy %.2f",
        len(records),
        blended.tempo_range.min,
        blended.tempo_range.max,
        blended.scale,
        blended.energy,
    )
    return blended
