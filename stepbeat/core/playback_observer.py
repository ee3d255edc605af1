"""Turns pushed player-state events into track-finished notifications and a now-playing view."""
import logging
import threading
from typing import Callable, Optional

from stepbeat.core.queue_reconciler import QueueReconciler
from stepbeat.errors import StepBeatError
from stepbeat.models.playback import NowPlaying, PlayerState

logger = logging.getLogger(__name__)

Dispatch = Callable[[Callable[[], None]], None]


def _spawn(work: Callable[[], None]) -> None:
    threading.Thread(target=work, daemon=True).start()


class PlaybackObserver:
    """Tracks which URI is active and reports it finished once playback moves on.

    A track counts as finished when a later state shows a different track,
    or no track at all, or the same track stopped at its end. Pausing the
    active track mid-track never finishes it.
    """

    def __init__(
        self,
        reconciler: QueueReconciler,
        audio_features=None,
        dispatch: Dispatch = _spawn,
    ) -> None:
        self._reconciler = reconciler
        self._audio_features = audio_features
        self._dispatch = dispatch
        self._lock = threading.Lock()
        self._active_uri: Optional[str] = None
        self._now_playing = NowPlaying()

    @property
    def active_uri(self) -> Optional[str]:
        with self._lock:
            return self._active_uri

    def now_playing(self) -> NowPlaying:
        with self._lock:
            return NowPlaying(**vars(self._now_playing))

    def on_player_state(self, state: PlayerState) -> None:
        with self._lock:
            previous = self._active_uri
            played_out = previous is not None and previous == state.track_uri and state.ended
            self._active_uri = None if played_out else state.track_uri
            track_changed = state.track_uri != self._now_playing.track_uri
            self._now_playing = NowPlaying(
                track_uri=state.track_uri,
                track_name=state.track_name or None,
                artist_name=state.artist_name or None,
                duration_sec=state.duration_ms // 1000 if state.track_uri else None,
                is_playing=not state.is_paused,
                tempo=None if track_changed else self._now_playing.tempo,
                image_url=state.image_url,
            )
        self._reconciler.on_player_state(state)
        if played_out:
            logger.debug("Observer: %s played out", previous)
            self._reconciler.on_track_finished(previous)
        elif previous is not None and previous != state.track_uri:
            logger.debug("Observer: %s finished", previous)
            self._reconciler.on_track_finished(previous)
        if track_changed and state.track_uri and self._audio_features is not None:
            uri = state.track_uri
            self._dispatch(lambda: self._lookup_tempo(uri))

    def _lookup_tempo(self, track_uri: str) -> None:
        try:
            tempo = self._audio_features.tempo_of(track_uri)
        except StepBeatError as e:
            logger.warning("Observer: tempo lookup failed (%s): %s", e.code, e)
            return
        with self._lock:
            if self._now_playing.track_uri == track_uri:
                self._now_playing.tempo = tempo

    def reset(self) -> None:
        with self._lock:
            self._active_uri = None
