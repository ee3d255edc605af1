"""Queue reconciler: keeps one cadence-matched track queued ahead of playback.

All queue, run-state and gate decisions go through one lock (single writer).
Catalog and engine calls run outside it on a worker thread, so cadence
readings and player events are never blocked by a slow fetch.

Refill policy is one track ahead: a fetch starts only when the internal
queue is empty, i.e. after the track this service queued has played out.
"""
import logging
import random
import threading
from typing import Any, Callable, Dict, List, Optional

from stepbeat.core.recommendation_gate import RecommendationGate
from stepbeat.core.tempo_target import resolve
from stepbeat.errors import StepBeatError
from stepbeat.models.cadence import RunState, TempoTarget
from stepbeat.models.playback import PlayerState
from stepbeat.models.settings import Settings, TempoMode
from stepbeat.models.track import Track

logger = logging.getLogger(__name__)

Dispatch = Callable[[Callable[[], None]], None]


def _spawn(work: Callable[[], None]) -> None:
    threading.Thread(target=work, daemon=True).start()


class QueueReconciler:
    def __init__(
        self,
        catalog,
        engine,
        settings_provider: Callable[[], Settings],
        gate: Optional[RecommendationGate] = None,
        dispatch: Dispatch = _spawn,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._catalog = catalog
        self._engine = engine
        self._settings_provider = settings_provider
        self.gate = gate or RecommendationGate()
        self._dispatch = dispatch
        self._rng = rng or random.Random()
        self._lock = threading.Lock()
        self._queue: List[Track] = []
        self._run_state = RunState.IDLE
        self._cadence_spm = 0.0
        self._current_uri: Optional[str] = None
        self._last_result: Dict[str, Any] = {}

    @property
    def queue(self) -> List[Track]:
        with self._lock:
            return list(self._queue)

    @property
    def run_state(self) -> RunState:
        with self._lock:
            return self._run_state

    @property
    def last_result(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._last_result)

    def start(self) -> None:
        with self._lock:
            self._run_state = RunState.TRACKING
        logger.info("Reconciler: tracking")

    def stop(self) -> None:
        """Go idle. An in-flight fetch is left to settle; its result is ignored."""
        with self._lock:
            self._run_state = RunState.IDLE
        logger.info("Reconciler: idle")

    def on_cadence(self, cadence_spm: float) -> Dict[str, Any]:
        with self._lock:
            self._cadence_spm = cadence_spm
        return self.refill_if_needed()

    def on_player_state(self, state: PlayerState) -> None:
        with self._lock:
            self._current_uri = state.track_uri

    def on_track_finished(self, track_uri: str) -> bool:
        """Retire the head if it is the track that just stopped being active; refill if that empties the queue."""
        with self._lock:
            if not self._queue or self._queue[0].uri != track_uri:
                return False
            retired = self._queue.pop(0)
            now_empty = not self._queue
        logger.info("Reconciler: retired %s (%s)", retired.name, retired.uri)
        if now_empty:
            self.refill_if_needed()
        return True

    def refill_if_needed(self, settings: Optional[Settings] = None) -> Dict[str, Any]:
        """Start a recommendation fetch if tracking, the queue is empty and no fetch is in flight.

        Returns {"ok": bool, "reason": str}; reason is one of idle, queue_filled,
        no_cadence, gate_busy, dispatched.
        """
        settings = settings or self._settings_provider()
        with self._lock:
            if self._run_state != RunState.TRACKING:
                return {"ok": False, "reason": "idle"}
            if self._queue:
                return {"ok": False, "reason": "queue_filled"}
            if settings.mode == TempoMode.DYNAMIC and self._cadence_spm <= 0:
                return {"ok": False, "reason": "no_cadence"}
            if not self.gate.try_acquire():
                logger.debug("Refill: gate busy, skipping")
                return {"ok": False, "reason": "gate_busy"}
            cadence = self._cadence_spm

        target = resolve(cadence, settings, self._rng)
        logger.info(
            "Refill: fetching for %.1f BPM (%.1f-%.1f, %s)",
            target.bpm,
            target.min_tempo,
            target.max_tempo,
            settings.mode.value,
        )
        try:
            self._dispatch(lambda: self._fetch_and_append(target, settings.genre_seeds))
        except Exception as e:
            logger.warning("Refill: could not dispatch fetch: %s", e)
            self.gate.release()
            return {"ok": False, "reason": "dispatch_failed"}
        return {"ok": True, "reason": "dispatched", "target_bpm": target.bpm}

    def _fetch_and_append(self, target: TempoTarget, genre_seeds) -> None:
        """Fetch continuation. Releases the gate on every path."""
        result: Dict[str, Any] = {"ok": False, "reason": "error"}
        try:
            result = self._fetch_and_append_inner(target, genre_seeds)
        except Exception as e:
            logger.warning("Refill: unexpected error: %s", e)
        finally:
            self.gate.release()
            with self._lock:
                self._last_result = result

    def _fetch_and_append_inner(self, target: TempoTarget, genre_seeds) -> Dict[str, Any]:
        try:
            candidates = self._catalog.recommend(target, genre_seeds)
        except StepBeatError as e:
            logger.warning("Refill: fetch failed (%s): %s", e.code, e)
            return {"ok": False, "reason": e.code}
        if not candidates:
            logger.info("Refill: no tracks for %.1f BPM", target.bpm)
            return {"ok": False, "reason": "empty_result"}

        with self._lock:
            tracking = self._run_state == RunState.TRACKING
            excluded = {t.uri for t in self._queue}
            if self._current_uri:
                excluded.add(self._current_uri)
        if not tracking:
            logger.info("Refill: tracking stopped, ignoring late result")
            return {"ok": False, "reason": "stale"}
        fresh = [t for t in candidates if t.uri not in excluded]
        if not fresh:
            logger.info("Refill: all candidates already queued or playing")
            return {"ok": False, "reason": "duplicate"}

        track = self._rng.choice(fresh)
        try:
            self._engine.enqueue(track.uri)
        except StepBeatError as e:
            logger.warning("Refill: enqueue failed (%s): %s", e.code, e)
            return {"ok": False, "reason": e.code}
        with self._lock:
            self._queue.append(track)
        logger.info("Refill: queued %s by %s (%s)", track.name, track.artist, track.uri)
        return {"ok": True, "reason": "appended", "track_uri": track.uri}

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "run_state": self._run_state.value,
                "cadence_spm": self._cadence_spm,
                "fetch_in_flight": self.gate.in_flight,
                "queue": [_track_to_dict(t) for t in self._queue],
                "last_result": dict(self._last_result),
            }


def _track_to_dict(t: Track) -> dict:
    return {
        "uri": t.uri,
        "name": t.name,
        "artist": t.artist,
        "duration_sec": t.duration_sec,
        "image_url": t.image_url,
        "tempo": t.tempo,
    }
