from __future__ import annotations

import pytest
from pydantic import ValidationError

from promptscore.providers import NullMetadataProvider, SpotifyProvider, resolve_provider
from promptscore.settings import EngineSettings


def test_defaults_from_empty_environment() -> None:
    settings = EngineSettings.from_env({})
    assert settings == EngineSettings()
    assert not settings.has_spotify_credentials
    assert isinstance(resolve_provider(settings), NullMetadataProvider)


def test_prefixed_variables() -> None:
    settings = EngineSettings.from_env(
        {
            "PROMPTSCORE_SPOTIFY_CLIENT_ID": "abc",
            "PROMPTSCORE_SPOTIFY_CLIENT_SECRET": "shh",
            "PROMPTSCORE_SPOTIFY_MARKET": "GB",
            "PROMPTSCORE_ARTIST_TRACK_COUNT": "3",
            "PROMPTSCORE_LOOKUP_TIMEOUT": "2.5",
            "PROMPTSCORE_STRICT": "yes",
            "PROMPTSCORE_SEED": "42",
        }
    )
    assert settings.spotify_client_id == "abc"
    assert settings.spotify_client_secret is not None
    assert settings.spotify_client_secret.get_secret_value() == "shh"
    assert "shh" not in repr(settings)
    assert settings.spotify_market == "GB"
    assert settings.artist_track_count == 3
    assert settings.lookup_timeout == pytest.approx(2.5)
    assert settings.strict is True
    assert settings.seed == 42


def test_plain_spotify_variables_are_accepted() -> None:
    settings = EngineSettings.from_env(
        {"SPOTIFY_CLIENT_ID": "abc", "SPOTIFY_CLIENT_SECRET": "shh"}
    )
    assert settings.has_spotify_credentials
    assert isinstance(resolve_provider(settings), SpotifyProvider)


def test_bad_values_fall_back_to_defaults() -> None:
    settings = EngineSettings.from_env(
        {
            "PROMPTSCORE_ARTIST_TRACK_COUNT": "many",
            "PROMPTSCORE_ALBUM_TRACK_COUNT": "99",
            "PROMPTSCORE_LOOKUP_TIMEOUT": "-1",
            "PROMPTSCORE_STRICT": "off",
            "PROMPTSCORE_SEED": "x",
        }
    )
    assert settings.artist_track_count == 5
    assert settings.album_track_count == 20
    assert settings.lookup_timeout is None
    assert settings.strict is False
    assert settings.seed is None


def test_settings_are_validated() -> None:
    with pytest.raises(ValidationError):
        EngineSettings(artist_track_count=0)
    with pytest.raises(ValidationError):
        EngineSettings(unknown_field=True)  # type: ignore[call-arg]
