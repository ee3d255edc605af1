"""Playback engine: Spotify Connect control and pushed player-state events."""
import logging
import threading
from typing import Callable, Optional

from spotipy import Spotify

from stepbeat.config import PLAYER_POLL_INTERVAL_SEC
from stepbeat.core.alerts import AlertBox
from stepbeat.core.spotify_client import SPOTIFY_CALL_ERRORS, get_spotify_client, require_spotify_client
from stepbeat.errors import NoCredential, NotConnected, StepBeatError, TransportFailure
from stepbeat.models.playback import PlayerState

logger = logging.getLogger(__name__)

StateCallback = Callable[[PlayerState], None]


class PlaybackEngine:
    """Capability interface the sync core drives. All calls may raise StepBeatError."""

    def authorize(self) -> bool:
        raise NotImplementedError

    def connect(self) -> None:
        raise NotImplementedError

    def is_connected(self) -> bool:
        raise NotImplementedError

    def current_state(self) -> PlayerState:
        raise NotImplementedError

    def enqueue(self, track_uri: str) -> None:
        raise NotImplementedError

    def play_pause(self) -> bool:
        raise NotImplementedError

    def skip_next(self) -> None:
        raise NotImplementedError

    def skip_previous(self) -> None:
        raise NotImplementedError

    def subscribe(self, callback: StateCallback) -> None:
        raise NotImplementedError

    def unsubscribe(self) -> None:
        raise NotImplementedError


def map_playback(pb: Optional[dict]) -> PlayerState:
    """Map Spotify current_playback() response to a PlayerState."""
    if not pb:
        return PlayerState(track_uri=None)
    item = pb.get("item") or {}
    artists = item.get("artists") or []
    images = (item.get("album") or {}).get("images") or []
    return PlayerState(
        track_uri=item.get("uri") or None,
        track_name=item.get("name", ""),
        artist_name=", ".join(a.get("name", "") for a in artists),
        duration_ms=int(item.get("duration_ms") or 0),
        is_paused=not bool(pb.get("is_playing", False)),
        position_ms=int(pb.get("progress_ms") or 0),
        image_url=images[0].get("url") if images else None,
    )


class SpotifyPlaybackEngine(PlaybackEngine):
    """Spotify Web API playback control.

    The Web API has no player-state push, so subscribe() runs a poll thread
    and only forwards states that differ from the last one forwarded
    (track URI, paused flag or ended flag changed).
    """

    def __init__(
        self,
        alerts: AlertBox,
        client_factory: Callable[[], Optional[Spotify]] = get_spotify_client,
        poll_interval_sec: float = PLAYER_POLL_INTERVAL_SEC,
    ) -> None:
        self._alerts = alerts
        self._client_factory = client_factory
        self._poll_interval_sec = poll_interval_sec
        self._lock = threading.Lock()
        self._device_id: Optional[str] = None
        self._callback: Optional[StateCallback] = None
        self._poll_stop = threading.Event()
        self._poll_thread: Optional[threading.Thread] = None

    def _client(self) -> Spotify:
        return require_spotify_client(self._client_factory)

    def authorize(self) -> bool:
        """True if a valid cached credential is available."""
        return self._client_factory() is not None

    def connect(self) -> None:
        """Pick the active device (or the first available one). Posts an alert on failure."""
        try:
            sp = self._client()
            devices = (sp.devices() or {}).get("devices") or []
        except NoCredential:
            self._alerts.post("Failed to connect to Spotify: not logged in")
            raise
        except SPOTIFY_CALL_ERRORS as e:
            self._alerts.post(f"Failed to connect to Spotify: {e}")
            raise TransportFailure(str(e)) from e
        active = next((d for d in devices if d.get("is_active")), None)
        device = active or (devices[0] if devices else None)
        if device is None or not device.get("id"):
            self._alerts.post("Failed to connect to Spotify: no playback device available")
            raise NotConnected("no playback device available")
        with self._lock:
            self._device_id = device["id"]
        logger.info("Engine: connected to device %s", device.get("name") or device["id"])

    def is_connected(self) -> bool:
        with self._lock:
            return self._device_id is not None

    def _disconnected(self, error: Exception) -> None:
        with self._lock:
            was_connected = self._device_id is not None
            self._device_id = None
        if was_connected:
            logger.warning("Engine: disconnected: %s", error)
            self._alerts.post(f"Disconnected from Spotify: {error}")

    def _ensure_connected(self) -> Spotify:
        sp = self._client()
        if not self.is_connected():
            self.connect()
        return sp

    def _device(self) -> Optional[str]:
        with self._lock:
            return self._device_id

    def current_state(self) -> PlayerState:
        sp = self._client()
        try:
            return map_playback(sp.current_playback())
        except SPOTIFY_CALL_ERRORS as e:
            raise TransportFailure(str(e)) from e

    def enqueue(self, track_uri: str) -> None:
        sp = self._ensure_connected()
        try:
            sp.add_to_queue(track_uri, device_id=self._device())
        except SPOTIFY_CALL_ERRORS as e:
            raise TransportFailure(str(e)) from e
        logger.info("Engine: enqueued %s", track_uri)

    def play_pause(self) -> bool:
        """Toggle playback. Returns True if now playing."""
        sp = self._ensure_connected()
        state = self.current_state()
        try:
            if state.is_paused:
                sp.start_playback(device_id=self._device())
                return True
            sp.pause_playback(device_id=self._device())
            return False
        except SPOTIFY_CALL_ERRORS as e:
            raise TransportFailure(str(e)) from e

    def skip_next(self) -> None:
        sp = self._ensure_connected()
        try:
            sp.next_track(device_id=self._device())
        except SPOTIFY_CALL_ERRORS as e:
            raise TransportFailure(str(e)) from e

    def skip_previous(self) -> None:
        sp = self._ensure_connected()
        try:
            sp.previous_track(device_id=self._device())
        except SPOTIFY_CALL_ERRORS as e:
            raise TransportFailure(str(e)) from e

    def _poll_loop(self) -> None:
        last: Optional[tuple] = None
        while not self._poll_stop.wait(timeout=self._poll_interval_sec):
            with self._lock:
                callback = self._callback
            if callback is None:
                break
            try:
                state = self.current_state()
            except NoCredential:
                logger.debug("Engine: poll skipped, no credential")
                continue
            except StepBeatError as e:
                self._disconnected(e)
                continue
            key = (state.track_uri, state.is_paused, state.ended)
            if key == last:
                continue
            last = key
            try:
                callback(state)
            except Exception as e:
                logger.warning("Engine: player state callback failed: %s", e)

    def subscribe(self, callback: StateCallback) -> None:
        with self._lock:
            self._callback = callback
        if self._poll_thread is not None and self._poll_thread.is_alive():
            return
        self._poll_stop.clear()
        self._poll_thread = threading.Thread(target=self._poll_loop, daemon=True)
        self._poll_thread.start()
        logger.info("Engine: player state subscription started (interval %.1fs)", self._poll_interval_sec)

    def unsubscribe(self) -> None:
        with self._lock:
            self._callback = None
        self._poll_stop.set()
        if self._poll_thread is not None:
            self._poll_thread.join(timeout=5.0)
            self._poll_thread = None
