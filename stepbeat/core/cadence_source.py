"""Cadence sources: readings pushed by the phone, or a simulated fixed-rate generator."""
import logging
import threading
import time
from typing import Callable, Optional

from stepbeat.config import SIMULATED_CADENCE_INTERVAL_SEC
from stepbeat.models.cadence import CadenceReading

logger = logging.getLogger(__name__)

ReadingCallback = Callable[[CadenceReading], None]
FailureCallback = Callable[[Exception], None]


class CadenceUnavailable(Exception):
    """The step counter cannot deliver cadence (no sensor, permission denied)."""


class CadenceSource:
    """Emits CadenceReadings to one callback between start() and stop()."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._on_reading: Optional[ReadingCallback] = None
        self._on_failure: Optional[FailureCallback] = None

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._on_reading is not None

    def start(self, on_reading: ReadingCallback, on_failure: Optional[FailureCallback] = None) -> None:
        with self._lock:
            self._on_reading = on_reading
            self._on_failure = on_failure

    def stop(self) -> None:
        """Stop emitting. Idempotent."""
        with self._lock:
            self._on_reading = None
            self._on_failure = None

    def _emit(self, steps_per_sec: float) -> bool:
        with self._lock:
            callback = self._on_reading
        if callback is None:
            return False
        callback(CadenceReading(steps_per_sec=steps_per_sec, timestamp=time.time()))
        return True

    def _fail(self, error: Exception) -> None:
        with self._lock:
            callback = self._on_failure
        logger.warning("Cadence: source failed: %s", error)
        if callback is not None:
            callback(error)


class PushCadenceSource(CadenceSource):
    """Readings arrive from outside (the phone posts its pedometer cadence)."""

    def push(self, steps_per_sec: float) -> bool:
        """Forward a reading. Returns False (dropped) when the source is stopped."""
        if not self._emit(steps_per_sec):
            logger.debug("Cadence: reading dropped, source stopped")
            return False
        return True

    def report_unavailable(self, reason: str) -> None:
        """The phone reports its step counter is gone; tracking cannot continue."""
        self._fail(CadenceUnavailable(reason))


class SimulatedCadenceSource(CadenceSource):
    """Development source: emits a fixed steps/sec every interval from a daemon thread."""

    def __init__(self, steps_per_sec: float, interval_sec: float = SIMULATED_CADENCE_INTERVAL_SEC) -> None:
        super().__init__()
        self.steps_per_sec = steps_per_sec
        self._interval_sec = interval_sec
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def _loop(self) -> None:
        while not self._stop_event.wait(timeout=self._interval_sec):
            try:
                self._emit(self.steps_per_sec)
            except Exception as e:
                self._fail(e)
                return

    def start(self, on_reading: ReadingCallback, on_failure: Optional[FailureCallback] = None) -> None:
        super().start(on_reading, on_failure)
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, daemon=True)
        self._thread.start()
        logger.info("Simulated cadence: started at %.2f steps/sec", self.steps_per_sec)

    def stop(self) -> None:
        super().stop()
        self._stop_event.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=2.0)
