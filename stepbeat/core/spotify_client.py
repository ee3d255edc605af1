"""Spotify API client via Spotipy; uses cached OAuth token. Catalog and audio-feature lookups."""
import logging
from typing import Callable, Iterable, List, Optional

import requests
from spotipy import Spotify, SpotifyException
from spotipy.cache_handler import CacheFileHandler
from spotipy.oauth2 import SpotifyOAuth, SpotifyOauthError

from stepbeat.config import (
    RECOMMENDATION_LIMIT,
    SPOTIFY_CLIENT_ID,
    SPOTIFY_CLIENT_SECRET,
    SPOTIFY_REDIRECT_URI,
    SPOTIFY_SCOPES,
    SPOTIFY_TOKEN_CACHE,
)
from stepbeat.errors import MalformedResponse, NoCredential, TransportFailure
from stepbeat.models.cadence import TempoTarget
from stepbeat.models.profile import UserProfile
from stepbeat.models.track import Track, tracks_from_response

logger = logging.getLogger(__name__)

# Errors a Spotipy call can raise for transport-level reasons
SPOTIFY_CALL_ERRORS = (SpotifyException, SpotifyOauthError, requests.RequestException)


def _oauth() -> SpotifyOAuth:
    cache = CacheFileHandler(cache_path=str(SPOTIFY_TOKEN_CACHE))
    return SpotifyOAuth(
        client_id=SPOTIFY_CLIENT_ID,
        client_secret=SPOTIFY_CLIENT_SECRET,
        redirect_uri=SPOTIFY_REDIRECT_URI,
        scope=SPOTIFY_SCOPES,
        cache_handler=cache,
    )


def get_spotify_client() -> Optional[Spotify]:
    """Return an authenticated Spotipy Spotify client, or None if not logged in."""
    if not SPOTIFY_CLIENT_ID or not SPOTIFY_CLIENT_SECRET:
        return None
    auth = _oauth()
    try:
        token_info = auth.validate_token(auth.cache_handler.get_cached_token())
    except SPOTIFY_CALL_ERRORS as e:
        logger.warning("Spotify: token refresh failed: %s", e)
        return None
    if token_info is None:
        return None
    return Spotify(auth_manager=auth)


def require_spotify_client(client_factory: Callable[[], Optional[Spotify]] = get_spotify_client) -> Spotify:
    """Like get_spotify_client but raises NoCredential instead of returning None."""
    sp = client_factory()
    if sp is None:
        raise NoCredential("Spotify not linked")
    return sp


def exchange_code_and_save_token(code: str) -> bool:
    """Exchange OAuth code for tokens and save to cache. Returns True on success."""
    if not SPOTIFY_CLIENT_ID or not SPOTIFY_CLIENT_SECRET:
        return False
    try:
        _oauth().get_access_token(code=code, check_cache=False)
        return True
    except SPOTIFY_CALL_ERRORS as e:
        logger.warning("Spotify: code exchange failed: %s", e)
        return False


def logout() -> None:
    """Drop the cached token so get_spotify_client() returns None."""
    try:
        if SPOTIFY_TOKEN_CACHE.exists():
            SPOTIFY_TOKEN_CACHE.unlink()
    except OSError as e:
        logger.warning("Spotify: could not remove token cache: %s", e)


def track_id_from_uri(uri: str) -> str:
    """spotify:track:abc -> abc."""
    return uri.split(":")[-1]


class SpotifyCatalog:
    """Recommendations, audio features and profile lookups against the Spotify Web API."""

    def __init__(self, client_factory: Callable[[], Optional[Spotify]] = get_spotify_client) -> None:
        self._client_factory = client_factory

    def recommend(self, target: TempoTarget, genre_seeds: Iterable[str]) -> List[Track]:
        """Return candidate tracks for the target range. Raises NoCredential, TransportFailure, MalformedResponse."""
        sp = require_spotify_client(self._client_factory)
        try:
            response = sp.recommendations(
                seed_genres=list(genre_seeds),
                limit=RECOMMENDATION_LIMIT,
                min_danceability=target.min_danceability,
                target_danceability=target.target_danceability,
                min_tempo=target.min_tempo,
                max_tempo=target.max_tempo,
            )
        except SPOTIFY_CALL_ERRORS as e:
            raise TransportFailure(str(e)) from e
        return tracks_from_response(response)

    def tempo_of(self, track_uri: str) -> float:
        """Measured tempo (BPM) of a track."""
        sp = require_spotify_client(self._client_factory)
        try:
            features = sp.audio_features([track_id_from_uri(track_uri)])
        except SPOTIFY_CALL_ERRORS as e:
            raise TransportFailure(str(e)) from e
        first = (features or [None])[0]
        tempo = first.get("tempo") if isinstance(first, dict) else None
        if not isinstance(tempo, (int, float)) or isinstance(tempo, bool):
            raise MalformedResponse(f"no tempo for {track_uri}")
        return float(tempo)

    def user_profile(self) -> UserProfile:
        sp = require_spotify_client(self._client_factory)
        try:
            me = sp.current_user()
        except SPOTIFY_CALL_ERRORS as e:
            raise TransportFailure(str(e)) from e
        if not isinstance(me, dict):
            raise MalformedResponse("profile response is not an object")
        images = me.get("images") or []
        image_url = images[0].get("url") if images and isinstance(images[0], dict) else None
        return UserProfile(display_name=me.get("display_name"), image_url=image_url)
