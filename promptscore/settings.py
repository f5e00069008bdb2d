from __future__ import annotations

import logging
import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, SecretStr

_LOGGER = logging.getLogger("promptscore.settings")
_ENV_PREFIX = "PROMPTSCORE_"
_FALSY = {"0", "false", "no", "off"}


def _env(environ: Mapping[str, str], name: str) -> str | None:
    value = environ.get(f"{_ENV_PREFIX}{name}")
    if value is None or value.strip() == "":
        return None
    return value.strip()


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    value = _env(environ, name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        _LOGGER.warning("Ignoring non-integer %s%s=%r", _ENV_PREFIX, name, value)
        return default


def _env_float(environ: Mapping[str, str], name: str) -> float | None:
    value = _env(environ, name)
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        _LOGGER.warning("Ignoring non-numeric %s%s=%r", _ENV_PREFIX, name, value)
        return None


def _env_bool(environ: Mapping[str, str], name: str) -> bool:
    value = _env(environ, name)
    if value is None:
        return False
    return value.lower() not in _FALSY


class EngineSettings(BaseModel):
    """Runtime knobs for the prompt engine and its metadata provider."""

    spotify_client_id: str | None = None
    spotify_client_secret: SecretStr | None = None
    spotify_market: str = "US"
    artist_track_count: int = Field(default=5, ge=1, le=10)
    album_track_count: int = Field(default=6, ge=1, le=20)
    # Seconds per reference lookup; None waits for the provider indefinitely.
    lookup_timeout: float | None = Field(default=None, gt=0.0)
    strict: bool = False
    seed: int | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def has_spotify_credentials(self) -> bool:
        return bool(self.spotify_client_id) and self.spotify_client_secret is not None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "EngineSettings":
        env = os.environ if environ is None else environ
        client_id = _env(env, "SPOTIFY_CLIENT_ID") or env.get("SPOTIFY_CLIENT_ID") or None
        client_secret = (
            _env(env, "SPOTIFY_CLIENT_SECRET") or env.get("SPOTIFY_CLIENT_SECRET") or None
        )
        seed_raw = _env(env, "SEED")
        seed: int | None = None
        if seed_raw is not None:
            try:
                seed = int(seed_raw)
            except ValueError:
                _LOGGER.warning("Ignoring non-integer %sSEED=%r", _ENV_PREFIX, seed_raw)
        timeout = _env_float(env, "LOOKUP_TIMEOUT")
        if timeout is not None and timeout <= 0:
            timeout = None
        return cls(
            spotify_client_id=client_id,
            spotify_client_secret=SecretStr(client_secret) if client_secret else None,
            spotify_market=_env(env, "SPOTIFY_MARKET") or "US",
            artist_track_count=min(10, max(1, _env_int(env, "ARTIST_TRACK_COUNT", 5))),
            album_track_count=min(20, max(1, _env_int(env, "ALBUM_TRACK_COUNT", 6))),
            lookup_timeout=timeout,
            strict=_env_bool(env, "STRICT"),
            seed=seed,
        )
