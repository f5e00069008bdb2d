from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Mapping, Sequence
from typing import Any

import httpx
from pydantic import ValidationError

from ..errors import ProviderAuthError, ProviderError, ProviderRateLimitError
from ..records import TrackFeatures, WeightedTrack

_LOGGER = logging.getLogger("promptscore.providers.spotify")
_TOKEN_URL = "https://accounts.spotify.com/api/token"
_API_BASE = "https://api.spotify.com/v1"
_TOKEN_REFRESH_MARGIN = 60.0
_ALBUM_TRACK_LIMIT = 20
_DEFAULT_TIMEOUT = 10.0


def _raise_for_status(response: httpx.Response, context: str) -> None:
    status = response.status_code
    if status < 400:
        return
    if status in (401, 403):
        raise ProviderAuthError(f"{context}: Spotify rejected credentials (HTTP {status})")
    if status == 429:
        retry_after = response.headers.get("Retry-After", "?")
        raise ProviderRateLimitError(f"{context}: Spotify rate limit hit (retry after {retry_after}s)")
    raise ProviderError(f"{context}: Spotify returned HTTP {status}")


def _json(response: httpx.Response, context: str) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError as exc:
        raise ProviderError(f"{context}: Spotify returned invalid JSON") from exc
    if not isinstance(payload, dict):
        raise ProviderError(f"{context}: unexpected Spotify payload")
    return payload


def _features(payload: Mapping[str, Any] | None) -> TrackFeatures | None:
    if not payload:
        return None
    data = dict(payload)
    # Spotify reports -1 when no key was detected.
    if data.get("key") is None or data["key"] < 0:
        data["key"] = 0
        data["mode"] = None
    try:
        return TrackFeatures.model_validate(data)
    except ValidationError:
        _LOGGER.warning("Skipping malformed audio features for %s", data.get("id"), exc_info=True)
        return None


def _weighted(
    tracks: Sequence[Mapping[str, Any]],
    features: Sequence[Mapping[str, Any] | None],
) -> list[WeightedTrack]:
    popularity = [int(track.get("popularity") or 0) for track in tracks]
    total = sum(popularity)
    weighted: list[WeightedTrack] = []
    for track, score, payload in zip(tracks, popularity, features):
        parsed = _features(payload)
        if parsed is None:
            continue
        weight = score / total if total > 0 else 1.0 / len(tracks)
        weighted.append(
            WeightedTrack(
                **parsed.model_dump(),
                weight=weight,
                name=track.get("name"),
                popularity=score,
            )
        )
    return weighted


def _item_id(item: Mapping[str, Any], context: str) -> str:
    item_id = item.get("id")
    if not isinstance(item_id, str) or not item_id:
        raise ProviderError(f"{context}: Spotify returned an item without an id")
    return item_id


def _by_popularity(tracks: Sequence[Mapping[str, Any]], count: int) -> list[Mapping[str, Any]]:
    ranked = sorted(tracks, key=lambda track: int(track.get("popularity") or 0), reverse=True)
    return ranked[: min(count, len(ranked))]


class SpotifyProvider:
    """Music metadata provider backed by the Spotify Web API (client-credentials flow)."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        *,
        market: str = "US",
        client: httpx.AsyncClient | None = None,
        timeout: float = _DEFAULT_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if not client_id or not client_secret:
            raise ProviderAuthError("Spotify client id and secret are required")
        self._client_id = client_id
        self._client_secret = client_secret
        self._market = market
        self._owns_client = client is None
        self._client = client
        self._client_loop: asyncio.AbstractEventLoop | None = None
        self._timeout = timeout
        self._clock = clock
        self._token: str | None = None
        self._token_expires_at = 0.0

    def _http(self) -> httpx.AsyncClient:
        if not self._owns_client:
            assert self._client is not None
            return self._client
        # Pooled connections belong to the loop that opened them.
        loop = asyncio.get_running_loop()
        if self._client is None or self._client_loop is not loop:
            if self._client is not None:
                _LOGGER.debug("Event loop changed; opening a new Spotify HTTP client.")
            self._client = httpx.AsyncClient(timeout=self._timeout)
            self._client_loop = loop
        return self._client

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            if self._client_loop is asyncio.get_running_loop():
                await self._client.aclose()
            self._client = None
            self._client_loop = None

    async def _access_token(self) -> str:
        if self._token is not None and self._clock() < self._token_expires_at - _TOKEN_REFRESH_MARGIN:
            return self._token
        try:
            response = await self._http().post(
                _TOKEN_URL,
                data={"grant_type": "client_credentials"},
                auth=(self._client_id, self._client_secret),
            )
        except httpx.HTTPError as exc:
            raise ProviderError(f"Spotify authentication failed: {exc}") from exc
        if response.status_code >= 400:
            raise ProviderAuthError(f"Spotify authentication failed (HTTP {response.status_code})")
        payload = _json(response, "Spotify authentication")
        token = payload.get("access_token")
        if not isinstance(token, str) or not token:
            raise ProviderAuthError("Spotify authentication returned no access token")
        self._token = token
        self._token_expires_at = self._clock() + float(payload.get("expires_in", 3600))
        _LOGGER.info("Spotify API authenticated.")
        return token

    async def _get(self, path: str, params: Mapping[str, Any], context: str) -> dict[str, Any]:
        token = await self._access_token()
        try:
            response = await self._http().get(
                f"{_API_BASE}{path}",
                params=dict(params),
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as exc:
            raise ProviderError(f"{context}: {exc}") from exc
        _raise_for_status(response, context)
        return _json(response, context)

    async def _search_first(self, query: str, kind: str) -> dict[str, Any] | None:
        payload = await self._get(
            "/search", {"q": query, "type": kind, "limit": 1}, f"Spotify {kind} search"
        )
        section = payload.get(f"{kind}s") or {}
        items = section.get("items") if isinstance(section, dict) else None
        first = items[0] if items else None
        return first if isinstance(first, dict) else None

    async def _audio_features(self, track_ids: Sequence[str]) -> list[dict[str, Any] | None]:
        if not track_ids:
            return []
        payload = await self._get(
            "/audio-features", {"ids": ",".join(track_ids)}, "Spotify audio features"
        )
        features = payload.get("audio_features") or []
        return list(features) + [None] * (len(track_ids) - len(features))

    async def lookup_track(
        self, name: str, artist_hint: str | None = None
    ) -> TrackFeatures | None:
        query = f'track:"{name}" artist:"{artist_hint}"' if artist_hint else f'"{name}"'
        track = await self._search_first(query, "track")
        if track is None:
            return None
        features = await self._audio_features([_item_id(track, "Spotify track")])
        return _features(features[0])

    async def lookup_artist_top_tracks(self, name: str, count: int) -> list[WeightedTrack] | None:
        artist = await self._search_first(f'"{name}"', "artist")
        if artist is None:
            return None
        payload = await self._get(
            f"/artists/{_item_id(artist, 'Spotify artist')}/top-tracks",
            {"market": self._market},
            "Spotify artist top tracks",
        )
        tracks = [track for track in payload.get("tracks") or [] if isinstance(track, dict)]
        selected = _by_popularity(tracks, count)
        if not selected:
            return None
        track_ids = [_item_id(track, "Spotify track") for track in selected]
        features = await self._audio_features(track_ids)
        return _weighted(selected, features) or None

    async def lookup_album_tracks(
        self, name: str, artist_hint: str | None = None, count: int = 6
    ) -> list[WeightedTrack] | None:
        query = f'album:"{name}" artist:"{artist_hint}"' if artist_hint else f'"{name}"'
        album = await self._search_first(query, "album")
        if album is None:
            return None
        listing = await self._get(
            f"/albums/{_item_id(album, 'Spotify album')}/tracks",
            {"limit": _ALBUM_TRACK_LIMIT},
            "Spotify album tracks",
        )
        track_ids = [item["id"] for item in listing.get("items") or [] if item and item.get("id")]
        if not track_ids:
            return None
        # Album listings omit popularity; fetch full track objects for it.
        details = await self._get("/tracks", {"ids": ",".join(track_ids)}, "Spotify track details")
        full_tracks = [track for track in details.get("tracks") or [] if track]
        selected = _by_popularity(full_tracks, count)
        if not selected:
            return None
        track_ids = [_item_id(track, "Spotify track") for track in selected]
        features = await self._audio_features(track_ids)
        return _weighted(selected, features) or None
