from __future__ import annotations

from .blend import blend
from .engine import PromptEngine
from .errors import (
    InvalidRecordError,
    PromptScoreError,
    ProviderAuthError,
    ProviderError,
    ProviderRateLimitError,
)
from .lexicon import Lexicon
from .logging_utils import configure_logging as _configure_logging
from .mapper import to_generator_params
from .providers import (
    MusicMetadataProvider,
    NullMetadataProvider,
    SpotifyProvider,
    StaticMetadataProvider,
)
from .records import (
    FinalParameters,
    GeneratorContract,
    ParameterRecord,
    ReferenceWarning,
    TempoRange,
    TrackFeatures,
    WeightedTrack,
)
from .settings import EngineSettings

__all__ = [
    "EngineSettings",
    "FinalParameters",
    "GeneratorContract",
    "InvalidRecordError",
    "Lexicon",
    "MusicMetadataProvider",
    "NullMetadataProvider",
    "ParameterRecord",
    "PromptEngine",
    "PromptScoreError",
    "ProviderAuthError",
    "ProviderError",
    "ProviderRateLimitError",
    "ReferenceWarning",
    "SpotifyProvider",
    "StaticMetadataProvider",
    "TempoRange",
    "TrackFeatures",
    "WeightedTrack",
    "blend",
    "to_generator_params",
]

__version__ = "0.1.0"

_configure_logging()
del _configure_logging
