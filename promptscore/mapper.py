from __future__ import annotations

from .blend import round_half_up
from .records import AUTO_INSTRUMENT, FinalParameters, GeneratorContract
from .tables import SCALE_GENRES

DEFAULT_KEYWORD = "default"
HIGH_ENERGY_THRESHOLD = 0.7


def to_generator_params(final: FinalParameters) -> GeneratorContract:
    """Project resolved parameters onto the renderer's minimal contract."""
    instrument = final.instrument_set[0] if final.instrument_set else AUTO_INSTRUMENT
    return GeneratorContract(
        bpm=round_half_up(final.tempo_range.midpoint),
        keyword=SCALE_GENRES.get(final.scale, DEFAULT_KEYWORD),
        instrument=instrument,
        bars=2 if final.energy > HIGH_ENERGY_THRESHOLD else 1,
        auxiliary=final,
    )
