from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from .records import InstrumentTag, PitchClass, ScaleName

# -----------------------------------------------------------------------------
# Adjectives
# -----------------------------------------------------------------------------

# Canonical adjective -> surface synonyms resolved to it (with a small energy nudge).
SEMANTIC_GROUPS: Mapping[str, frozenset[str]] = MappingProxyType(
    {
        "upbeat": frozenset({"energetic", "lively", "vibrant", "dynamic", "active"}),
        "chill": frozenset({"relaxed", "mellow", "laid-back", "easy", "smooth"}),
        "aggressive": frozenset({"intense", "powerful", "hard", "heavy", "strong"}),
        "dreamy": frozenset({"ethereal", "floating", "atmospheric", "ambient", "spacey"}),
        "funky": frozenset({"groovy", "rhythmic", "syncopated", "bouncy"}),
        "jazzy": frozenset({"sophisticated", "complex", "improvisational", "swing"}),
        "dark": frozenset({"moody", "mysterious", "somber", "gloomy"}),
        "bright": frozenset({"cheerful", "sunny", "joyful", "radiant"}),
        "warm": frozenset({"cozy", "comfortable", "intimate", "organic"}),
        "cool": frozenset({"clinical", "sterile", "digital", "synthetic"}),
    }
)

# Music descriptors treated as adjectives even before they reach the lexicon.
DESCRIPTOR_WORDS: frozenset[str] = frozenset(
    {
        "dark",
        "bright",
        "warm",
        "cold",
        "heavy",
        "light",
        "smooth",
        "rough",
        "melodic",
        "harmonic",
        "rhythmic",
        "percussive",
        "atmospheric",
        "driving",
        "floating",
        "pulsing",
        "flowing",
        "choppy",
        "crisp",
        "muddy",
        "clear",
        "rich",
        "thin",
        "full",
        "empty",
        "complex",
        "simple",
        "layered",
        "minimal",
        "maximal",
        "organic",
        "synthetic",
    }
)


def canonical_for_synonym(token: str) -> str | None:
    for canonical, synonyms in SEMANTIC_GROUPS.items():
        if token in synonyms:
            return canonical
    return None


# -----------------------------------------------------------------------------
# Instruments
# -----------------------------------------------------------------------------

# Each synonym belongs to exactly one family; order decides the primary instrument.
INSTRUMENT_SYNONYMS: Mapping[InstrumentTag, frozenset[str]] = MappingProxyType(
    {
        "guitar": frozenset({"guitar", "guitars", "gtr", "acoustic", "electric"}),
        "keyboard": frozenset({"keyboard", "keyboards", "keys", "piano", "rhodes"}),
        "drums": frozenset({"drums", "drum", "percussion", "beats", "rhythm"}),
        "bass": frozenset({"bass", "bassline", "low-end"}),
        "string": frozenset({"strings", "string", "orchestra", "violin", "cello"}),
        "brass": frozenset({"brass", "trumpet", "horn", "horns", "saxophone", "sax"}),
        "vocal": frozenset({"vocal", "vocals", "voice", "singing", "choir"}),
        "flute": frozenset({"flute", "woodwind"}),
        "organ": frozenset({"organ", "hammond"}),
        "reed": frozenset({"reed", "clarinet", "oboe"}),
        "synth_lead": frozenset({"synth", "synths", "synthesizer", "lead"}),
    }
)

# -----------------------------------------------------------------------------
# Keys and scales
# -----------------------------------------------------------------------------

MODE_KEYWORDS: frozenset[ScaleName] = frozenset(
    {"major", "minor", "blues", "dorian", "mixolydian", "lydian", "aeolian", "phrygian"}
)
PITCH_LETTERS: frozenset[str] = frozenset({"a", "b", "c", "d", "e", "f", "g"})

PITCH_CLASS_NAMES: tuple[PitchClass, ...] = (
    "C",
    "C#",
    "D",
    "D#",
    "E",
    "F",
    "F#",
    "G",
    "G#",
    "A",
    "A#",
    "B",
)

# Fallback when a track reports no mode.
PITCH_CLASS_SCALES: tuple[ScaleName, ...] = (
    "major",
    "minor",
    "major",
    "minor",
    "major",
    "major",
    "minor",
    "major",
    "minor",
    "major",
    "minor",
    "major",
)

SCALE_GENRES: Mapping[str, str] = MappingProxyType(
    {
        "major": "pop",
        "minor": "jazz",
        "blues": "blues",
        "dorian": "jazz",
        "mixolydian": "funk",
        "lydian": "ambient",
        "aeolian": "lo-fi",
        "phrygian": "aggressive",
    }
)

# (minor, energetic) -> progression for reference-derived records.
REFERENCE_PROGRESSIONS: Mapping[tuple[bool, bool], tuple[str, ...]] = MappingProxyType(
    {
        (True, True): ("i", "bVII", "bVI", "bVII"),
        (True, False): ("i", "bVI", "bVII", "i"),
        (False, True): ("I", "V", "vi", "IV"),
        (False, False): ("I", "vi", "IV", "V"),
    }
)

# -----------------------------------------------------------------------------
# Reference detection
# -----------------------------------------------------------------------------

REFERENCE_STOP_WORDS: frozenset[str] = frozenset(
    {
        "the",
        "a",
        "an",
        "and",
        "or",
        "but",
        "in",
        "on",
        "at",
        "to",
        "for",
        "of",
        "with",
        "by",
        "from",
        "music",
        "song",
        "songs",
        "track",
        "tracks",
        "album",
        "artist",
        "band",
        "sound",
        "sounds",
        "style",
        "like",
        "beat",
        "beats",
        "vibe",
        "vibes",
        "fast",
        "slow",
        "loud",
        "quiet",
        "heavy",
        "light",
        "something",
        "anything",
        "me",
        "it",
        "this",
        "that",
        # genre nouns
        "jazz",
        "rock",
        "pop",
        "metal",
        "blues",
        "funk",
        "soul",
        "disco",
        "house",
        "techno",
        "electronic",
        "classical",
        "country",
        "folk",
        "punk",
        "reggae",
        "hip-hop",
        "rap",
        "lo-fi",
        "ambient",
    }
)
