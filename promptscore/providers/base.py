from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from ..records import TrackFeatures, WeightedTrack

_LOGGER = logging.getLogger("promptscore.providers")


@runtime_checkable
class MusicMetadataProvider(Protocol):
    """Async source of per-track audio features.

    Lookups return ``None`` when nothing matches and raise
    :class:`promptscore.errors.ProviderError` on transport, auth or rate-limit failures.
    """

    async def lookup_track(
        self, name: str, artist_hint: str | None = None
    ) -> TrackFeatures | None: ...

    async def lookup_artist_top_tracks(
        self, name: str, count: int
    ) -> list[WeightedTrack] | None: ...

    async def lookup_album_tracks(
        self, name: str, artist_hint: str | None = None, count: int = 6
    ) -> list[WeightedTrack] | None: ...


class NullMetadataProvider:
    """Provider used when no credentials are configured: nothing is ever found."""

    async def lookup_track(
        self, name: str, artist_hint: str | None = None
    ) -> TrackFeatures | None:
        _LOGGER.debug("No metadata provider configured; track %r not looked up.", name)
        return None

    async def lookup_artist_top_tracks(self, name: str, count: int) -> list[WeightedTrack] | None:
        _LOGGER.debug("No metadata provider configured; artist %r not looked up.", name)
        return None

    async def lookup_album_tracks(
        self, name: str, artist_hint: str | None = None, count: int = 6
    ) -> list[WeightedTrack] | None:
        _LOGGER.debug("No metadata provider configured; album %r not looked up.", name)
        return None


def _normalise(name: str) -> str:
    return " ".join(name.casefold().split())


@dataclass
class StaticMetadataProvider:
    """In-memory provider keyed by case-insensitive names; records every call."""

    tracks: Mapping[str, TrackFeatures] = field(default_factory=dict)
    artists: Mapping[str, Sequence[WeightedTrack]] = field(default_factory=dict)
    albums: Mapping[str, Sequence[WeightedTrack]] = field(default_factory=dict)
    calls: list[tuple[str, str]] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.tracks = {_normalise(key): value for key, value in self.tracks.items()}
        self.artists = {_normalise(key): list(value) for key, value in self.artists.items()}
        self.albums = {_normalise(key): list(value) for key, value in self.albums.items()}

    async def lookup_track(
        self, name: str, artist_hint: str | None = None
    ) -> TrackFeatures | None:
        self.calls.append(("track", name))
        return self.tracks.get(_normalise(name))

    async def lookup_artist_top_tracks(self, name: str, count: int) -> list[WeightedTrack] | None:
        self.calls.append(("artist", name))
        found = self.artists.get(_normalise(name))
        return None if found is None else list(found)[:count]

    async def lookup_album_tracks(
        self, name: str, artist_hint: str | None = None, count: int = 6
    ) -> list[WeightedTrack] | None:
        self.calls.append(("album", name))
        found = self.albums.get(_normalise(name))
        return None if found is None else list(found)[:count]
