"""Fakes for the external collaborators: catalog, playback engine, background host, clock."""
import os
import tempfile

# Keep settings and token cache out of the project tree
os.environ.setdefault("STEPBEAT_DATA_DIR", tempfile.mkdtemp(prefix="stepbeat-test-"))

import random
import threading
from typing import Callable, List, Optional

import pytest

from stepbeat.core.background_window import BackgroundExecutionHost
from stepbeat.core.playback_engine import PlaybackEngine
from stepbeat.core.queue_reconciler import QueueReconciler
from stepbeat.core.recommendation_gate import RecommendationGate
from stepbeat.models.playback import PlayerState
from stepbeat.models.settings import Settings
from stepbeat.models.track import Track


def make_track(n: int, tempo: Optional[float] = None) -> Track:
    return Track(
        uri=f"spotify:track:{n:04d}",
        name=f"Song {n}",
        artist=f"Artist {n}",
        duration_sec=200,
        image_url=f"https://i.scdn.co/image/{n}",
        tempo=tempo,
    )


def run_inline(work: Callable[[], None]) -> None:
    work()


class DeferredDispatch:
    """Holds dispatched work until run_all(), so a fetch stays "in flight"."""

    def __init__(self) -> None:
        self.pending: List[Callable[[], None]] = []

    def __call__(self, work: Callable[[], None]) -> None:
        self.pending.append(work)

    def run_all(self) -> None:
        while self.pending:
            self.pending.pop(0)()


class FakeCatalog:
    def __init__(self, tracks: Optional[List[Track]] = None, error: Optional[Exception] = None) -> None:
        self.tracks = list(tracks or [])
        self.error = error
        self.calls = []
        self.tempos = {}
        self.tempo_error: Optional[Exception] = None
        self.profile = None

    def recommend(self, target, genre_seeds):
        self.calls.append((target, tuple(genre_seeds)))
        if self.error is not None:
            raise self.error
        return list(self.tracks)

    def tempo_of(self, track_uri: str) -> float:
        if self.tempo_error is not None:
            raise self.tempo_error
        return self.tempos[track_uri]

    def user_profile(self):
        if isinstance(self.profile, Exception):
            raise self.profile
        return self.profile


class FakeEngine(PlaybackEngine):
    def __init__(self) -> None:
        self.enqueued: List[str] = []
        self.enqueue_error: Optional[Exception] = None
        self.callback = None
        self.connected = False
        self.playing = False
        self.skips: List[str] = []
        self.error: Optional[Exception] = None

    def authorize(self) -> bool:
        return True

    def connect(self) -> None:
        self.connected = True

    def is_connected(self) -> bool:
        return self.connected

    def current_state(self) -> PlayerState:
        return PlayerState(track_uri=None)

    def enqueue(self, track_uri: str) -> None:
        if self.enqueue_error is not None:
            raise self.enqueue_error
        self.enqueued.append(track_uri)

    def play_pause(self) -> bool:
        if self.error is not None:
            raise self.error
        self.playing = not self.playing
        return self.playing

    def skip_next(self) -> None:
        if self.error is not None:
            raise self.error
        self.skips.append("next")

    def skip_previous(self) -> None:
        if self.error is not None:
            raise self.error
        self.skips.append("previous")

    def subscribe(self, callback) -> None:
        self.callback = callback

    def unsubscribe(self) -> None:
        self.callback = None


class CountingGate(RecommendationGate):
    def __init__(self) -> None:
        super().__init__()
        self.acquired = 0
        self.released = 0

    def try_acquire(self) -> bool:
        ok = super().try_acquire()
        if ok:
            self.acquired += 1
        return ok

    def release(self) -> None:
        if self.in_flight:
            self.released += 1
        super().release()


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.now += seconds


class FakeHost(BackgroundExecutionHost):
    """Grants `allowance` time units counted down on a FakeClock."""

    def __init__(self, clock: FakeClock, allowance: float = 30.0, grant: bool = True) -> None:
        self.clock = clock
        self.allowance = allowance
        self.grant = grant
        self.requests = 0
        self.releases = 0
        self.on_expiry = None
        self._granted_at: Optional[float] = None
        self._lock = threading.Lock()

    def request_extra_time(self, on_expiry) -> bool:
        self.requests += 1
        if not self.grant:
            return False
        self.on_expiry = on_expiry
        self._granted_at = self.clock()
        return True

    def release_extra_time(self) -> None:
        with self._lock:
            self.releases += 1
            self._granted_at = None

    def remaining_time(self) -> float:
        if self._granted_at is None:
            return 0.0
        return max(0.0, self.allowance - (self.clock() - self._granted_at))


@pytest.fixture
def catalog():
    return FakeCatalog(tracks=[make_track(1), make_track(2), make_track(3)])


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def gate():
    return CountingGate()


@pytest.fixture
def settings_box():
    """Mutable holder so a test can change settings between decisions."""
    return {"settings": Settings()}


@pytest.fixture
def reconciler(catalog, engine, gate, settings_box):
    return QueueReconciler(
        catalog,
        engine,
        lambda: settings_box["settings"],
        gate=gate,
        dispatch=run_inline,
        rng=random.Random(7),
    )
