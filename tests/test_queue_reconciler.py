"""Queue reconciler: refill-on-empty, single-flight, gate release, retirement."""
import random
import threading
import time

import pytest

from conftest import DeferredDispatch, FakeCatalog, make_track, run_inline
from stepbeat.core.queue_reconciler import QueueReconciler
from stepbeat.errors import MalformedResponse, NoCredential, NotConnected, TransportFailure
from stepbeat.models.cadence import RunState
from stepbeat.models.playback import PlayerState
from stepbeat.models.settings import Settings, TempoMode


def test_idle_reconciler_does_not_fetch(reconciler, catalog):
    result = reconciler.on_cadence(160.0)
    assert result == {"ok": False, "reason": "idle"}
    assert catalog.calls == []


def test_cadence_160_dynamic_appends_exactly_one(reconciler, catalog, engine, gate):
    reconciler.start()
    result = reconciler.on_cadence(160.0)

    assert result["reason"] == "dispatched"
    assert len(catalog.calls) == 1
    target, _ = catalog.calls[0]
    assert target.min_tempo == pytest.approx(158.5)
    assert target.max_tempo == pytest.approx(162.0)
    assert target.min_danceability == pytest.approx(0.55)
    assert 0.75 <= target.target_danceability < 1.0

    queue = reconciler.queue
    assert len(queue) == 1
    assert queue[0] in catalog.tracks
    assert engine.enqueued == [queue[0].uri]
    assert not gate.in_flight
    assert gate.acquired == gate.released == 1
    assert reconciler.last_result["reason"] == "appended"


def test_genre_seeds_from_settings_snapshot(reconciler, catalog, settings_box):
    settings_box["settings"] = Settings(genre_seeds=("pop", "edm"))
    reconciler.start()
    reconciler.on_cadence(170.0)
    assert catalog.calls[0][1] == ("pop", "edm")


def test_manual_mode_ignores_cadence(reconciler, catalog, settings_box):
    settings_box["settings"] = Settings(mode=TempoMode.MANUAL, manual_tempo=150.0)
    reconciler.start()
    reconciler.on_cadence(0.0)
    target, _ = catalog.calls[0]
    assert target.bpm == 150.0
    assert target.min_tempo == pytest.approx(148.5)


def test_dynamic_mode_waits_for_first_cadence(reconciler, catalog):
    reconciler.start()
    assert reconciler.refill_if_needed()["reason"] == "no_cadence"
    assert catalog.calls == []


def test_no_refill_while_queue_filled(reconciler, catalog):
    reconciler.start()
    reconciler.on_cadence(160.0)
    assert len(catalog.calls) == 1

    for spm in (161.0, 165.0, 120.0):
        assert reconciler.on_cadence(spm)["reason"] == "queue_filled"
    assert len(catalog.calls) == 1
    assert len(reconciler.queue) == 1


def test_update_while_fetch_in_flight_is_dropped(catalog, engine, gate):
    dispatch = DeferredDispatch()
    rec = QueueReconciler(catalog, engine, Settings, gate=gate, dispatch=dispatch)
    rec.start()

    assert rec.on_cadence(160.0)["reason"] == "dispatched"
    assert gate.in_flight
    assert rec.on_cadence(162.0) == {"ok": False, "reason": "gate_busy"}
    assert len(dispatch.pending) == 1
    assert catalog.calls == []
    assert rec.queue == []

    dispatch.run_all()
    assert len(catalog.calls) == 1
    assert len(rec.queue) == 1
    assert not gate.in_flight


@pytest.mark.parametrize(
    "tracks,error,reason",
    [
        ([], None, "empty_result"),
        (None, TransportFailure("boom"), "transport_failure"),
        (None, MalformedResponse("bad"), "malformed_response"),
        (None, NoCredential("no token"), "no_credential"),
    ],
)
def test_failed_fetch_releases_gate_and_leaves_queue(engine, gate, tracks, error, reason):
    catalog = FakeCatalog(tracks=tracks, error=error)
    rec = QueueReconciler(catalog, engine, Settings, gate=gate, dispatch=run_inline)
    rec.start()
    rec.on_cadence(160.0)

    assert rec.queue == []
    assert engine.enqueued == []
    assert not gate.in_flight
    assert gate.acquired == gate.released == 1
    assert rec.last_result == {"ok": False, "reason": reason}


def test_enqueue_failure_releases_gate(reconciler, engine, gate):
    engine.enqueue_error = NotConnected("no device")
    reconciler.start()
    reconciler.on_cadence(160.0)
    assert reconciler.queue == []
    assert gate.acquired == gate.released == 1
    assert reconciler.last_result["reason"] == "not_connected"


def test_unexpected_error_still_releases_gate(engine, gate):
    catalog = FakeCatalog(error=RuntimeError("surprise"))
    rec = QueueReconciler(catalog, engine, Settings, gate=gate, dispatch=run_inline)
    rec.start()
    rec.on_cadence(160.0)
    assert not gate.in_flight
    assert gate.released == 1


def test_failed_fetch_is_retried_on_next_trigger_only(engine, gate):
    catalog = FakeCatalog(error=TransportFailure("down"))
    rec = QueueReconciler(catalog, engine, Settings, gate=gate, dispatch=run_inline)
    rec.start()
    rec.on_cadence(160.0)
    assert len(catalog.calls) == 1

    catalog.error = None
    catalog.tracks = [make_track(9)]
    rec.on_cadence(160.0)
    assert len(catalog.calls) == 2
    assert [t.uri for t in rec.queue] == [make_track(9).uri]


def test_late_completion_after_stop_is_ignored(catalog, engine, gate):
    dispatch = DeferredDispatch()
    rec = QueueReconciler(catalog, engine, Settings, gate=gate, dispatch=dispatch)
    rec.start()
    rec.on_cadence(160.0)
    rec.stop()

    dispatch.run_all()
    assert engine.enqueued == []
    assert rec.queue == []
    assert not gate.in_flight
    assert rec.last_result["reason"] == "stale"


def test_currently_playing_track_is_not_requeued(engine):
    playing = make_track(1)
    catalog = FakeCatalog(tracks=[playing, make_track(2)])
    rng = random.Random(0)
    for _ in range(5):
        rec = QueueReconciler(catalog, engine, Settings, dispatch=run_inline, rng=rng)
        rec.on_player_state(PlayerState(track_uri=playing.uri, is_paused=False))
        rec.start()
        rec.on_cadence(160.0)
        assert [t.uri for t in rec.queue] == [make_track(2).uri]


def test_only_candidate_playing_is_duplicate(engine, gate):
    playing = make_track(1)
    catalog = FakeCatalog(tracks=[playing])
    rec = QueueReconciler(catalog, engine, Settings, gate=gate, dispatch=run_inline)
    rec.on_player_state(PlayerState(track_uri=playing.uri, is_paused=False))
    rec.start()
    rec.on_cadence(160.0)
    assert rec.queue == []
    assert rec.last_result["reason"] == "duplicate"
    assert not gate.in_flight


def test_random_choice_varies_across_requests(engine):
    catalog = FakeCatalog(tracks=[make_track(n) for n in range(1, 6)])
    rng = random.Random(3)
    chosen = set()
    for _ in range(30):
        rec = QueueReconciler(catalog, engine, Settings, dispatch=run_inline, rng=rng)
        rec.start()
        rec.on_cadence(160.0)
        chosen.add(rec.queue[0].uri)
    assert len(chosen) > 1


def test_finished_head_is_retired_and_refilled(reconciler, catalog):
    reconciler.start()
    reconciler.on_cadence(160.0)
    head = reconciler.queue[0]

    assert reconciler.on_track_finished(head.uri) is True
    assert len(catalog.calls) == 2
    assert len(reconciler.queue) == 1


def test_finished_track_that_is_not_head_changes_nothing(reconciler, catalog):
    reconciler.start()
    reconciler.on_cadence(160.0)
    before = reconciler.queue

    assert reconciler.on_track_finished("spotify:track:someone-else") is False
    assert reconciler.queue == before
    assert len(catalog.calls) == 1


def test_refill_after_retirement_uses_latest_cadence(reconciler, catalog):
    reconciler.start()
    reconciler.on_cadence(160.0)
    reconciler.on_cadence(175.0)
    reconciler.on_track_finished(reconciler.queue[0].uri)
    assert catalog.calls[-1][0].bpm == 175.0


def test_retired_while_idle_does_not_refill(reconciler, catalog):
    reconciler.start()
    reconciler.on_cadence(160.0)
    reconciler.stop()
    reconciler.on_track_finished(reconciler.queue[0].uri)
    assert reconciler.queue == []
    assert len(catalog.calls) == 1
    assert reconciler.run_state == RunState.IDLE


def test_snapshot(reconciler):
    reconciler.start()
    reconciler.on_cadence(160.0)
    snap = reconciler.snapshot()
    assert snap["run_state"] == "tracking"
    assert snap["cadence_spm"] == 160.0
    assert snap["fetch_in_flight"] is False
    assert len(snap["queue"]) == 1
    assert snap["queue"][0]["uri"].startswith("spotify:track:")


class SlowCatalog(FakeCatalog):
    """Counts concurrent recommend() calls."""

    def __init__(self) -> None:
        super().__init__(tracks=[make_track(1)])
        self.active = 0
        self.max_active = 0
        self._count_lock = threading.Lock()

    def recommend(self, target, genre_seeds):
        with self._count_lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        time.sleep(0.05)
        with self._count_lock:
            self.active -= 1
        return super().recommend(target, genre_seeds)


def test_concurrent_triggers_never_overlap_fetches(engine, gate):
    catalog = SlowCatalog()
    rec = QueueReconciler(catalog, engine, Settings, gate=gate)
    rec.start()
    barrier = threading.Barrier(16)

    def trigger():
        barrier.wait()
        rec.on_cadence(160.0)

    threads = [threading.Thread(target=trigger) for _ in range(16)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    deadline = time.monotonic() + 2.0
    while gate.in_flight and time.monotonic() < deadline:
        time.sleep(0.01)

    assert catalog.max_active == 1
    assert len(catalog.calls) == 1
    assert len(rec.queue) == 1
    assert gate.acquired == gate.released == 1
