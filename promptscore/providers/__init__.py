from __future__ import annotations

import logging

from ..settings import EngineSettings
from .base import MusicMetadataProvider, NullMetadataProvider, StaticMetadataProvider
from .spotify import SpotifyProvider

_LOGGER = logging.getLogger("promptscore.providers")


def resolve_provider(settings: EngineSettings) -> MusicMetadataProvider:
    """Spotify when credentials are configured, otherwise a provider that finds nothing."""
    if settings.has_spotify_credentials:
        assert settings.spotify_client_id is not None
        assert settings.spotify_client_secret is not None
        return SpotifyProvider(
            settings.spotify_client_id,
            settings.spotify_client_secret.get_secret_value(),
            market=settings.spotify_market,
        )
    _LOGGER.info("Spotify credentials not set; song/artist/album references will not resolve.")
    return NullMetadataProvider()


__all__ = [
    "MusicMetadataProvider",
    "NullMetadataProvider",
    "SpotifyProvider",
    "StaticMetadataProvider",
    "resolve_provider",
]
