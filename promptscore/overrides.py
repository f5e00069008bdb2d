from __future__ import annotations

import logging
from collections.abc import Sequence

from .records import AUTO_INSTRUMENT, InstrumentTag, ParameterRecord, SpecificOverrides

_LOGGER = logging.getLogger("promptscore.overrides")


def merge_overrides(
    blended: ParameterRecord,
    overrides: SpecificOverrides,
    instruments: Sequence[InstrumentTag] = (),
) -> ParameterRecord:
    """Apply explicit prompt values on top of a blended record.

    Present override fields replace the blended ones. Explicit instruments replace the
    whole instrument set rather than extending it. An empty set falls back to ``auto``.
    """
    update = overrides.as_update()
    if instruments:
        update["instrument_set"] = tuple(instruments)
    elif not blended.instrument_set:
        _LOGGER.debug("No instruments resolved; falling back to %r.", AUTO_INSTRUMENT)
        update["instrument_set"] = (AUTO_INSTRUMENT,)
    if not update:
        return blended
    data = blended.model_dump()
    data.update(update)
    return ParameterRecord.model_validate(data)
