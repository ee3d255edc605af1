"""Bounded extra run time after the app leaves the foreground.

The host grants an allowance; the window runs a cooperative loop that
calls a work item once per interval and stops on its own when the remaining
allowance drops below a safety margin or the elapsed cap is reached,
whichever comes first. The grant is released exactly once.
"""
import logging
import threading
import time
from typing import Callable, Optional

from stepbeat.config import (
    BACKGROUND_ALLOWANCE_SEC,
    BACKGROUND_LOOP_INTERVAL_SEC,
    BACKGROUND_MAX_SEC,
    BACKGROUND_SAFETY_MARGIN_SEC,
)

logger = logging.getLogger(__name__)


class BackgroundExecutionHost:
    """What the environment offers: an extra-time grant with a countdown."""

    def request_extra_time(self, on_expiry: Callable[[], None]) -> bool:
        raise NotImplementedError

    def release_extra_time(self) -> None:
        raise NotImplementedError

    def remaining_time(self) -> float:
        raise NotImplementedError


class AllowanceHost(BackgroundExecutionHost):
    """Grants a fixed allowance per request, measured on the monotonic clock."""

    def __init__(self, allowance_sec: float = BACKGROUND_ALLOWANCE_SEC, clock: Callable[[], float] = time.monotonic) -> None:
        self._allowance_sec = allowance_sec
        self._clock = clock
        self._lock = threading.Lock()
        self._deadline: Optional[float] = None
        self._timer: Optional[threading.Timer] = None

    def request_extra_time(self, on_expiry: Callable[[], None]) -> bool:
        self.release_extra_time()
        with self._lock:
            self._deadline = self._clock() + self._allowance_sec
            self._timer = threading.Timer(self._allowance_sec, on_expiry)
            self._timer.daemon = True
            self._timer.start()
        return True

    def release_extra_time(self) -> None:
        with self._lock:
            timer, self._timer = self._timer, None
            self._deadline = None
        if timer is not None:
            timer.cancel()

    def remaining_time(self) -> float:
        with self._lock:
            if self._deadline is None:
                return 0.0
            return max(0.0, self._deadline - self._clock())


class BackgroundWindow:
    def __init__(
        self,
        host: BackgroundExecutionHost,
        safety_margin_sec: float = BACKGROUND_SAFETY_MARGIN_SEC,
        max_sec: float = BACKGROUND_MAX_SEC,
        interval_sec: float = BACKGROUND_LOOP_INTERVAL_SEC,
        clock: Callable[[], float] = time.monotonic,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self._host = host
        self._safety_margin_sec = safety_margin_sec
        self._max_sec = max_sec
        self._interval_sec = interval_sec
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._held = False
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_held(self) -> bool:
        with self._lock:
            return self._held

    def enter(self, work: Callable[[], object]) -> bool:
        """Request extra time and start the loop thread. Returns False if the host refused."""
        self.exit()
        if not self._host.request_extra_time(self._on_expiry):
            logger.info("Background: extra time not granted")
            return False
        with self._lock:
            self._held = True
        self._stop.clear()
        self._thread = threading.Thread(target=self._run_and_release, args=(work,), daemon=True)
        self._thread.start()
        logger.info("Background: window entered (%.1fs remaining)", self._host.remaining_time())
        return True

    def exit(self) -> None:
        """Stop the loop and release the grant. Safe to call when nothing is held."""
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self._interval_sec + 1.0)
        self._thread = None
        self._release()

    def _release(self) -> None:
        with self._lock:
            if not self._held:
                return
            self._held = False
        self._host.release_extra_time()
        logger.info("Background: extra time released")

    def _on_expiry(self) -> None:
        logger.info("Background: allowance expired")
        self._stop.set()
        self._release()

    def _run_and_release(self, work: Callable[[], object]) -> None:
        reason = self.run_loop(work)
        logger.info("Background: loop ended (%s)", reason)
        self._release()

    def _wait(self, seconds: float) -> None:
        if self._sleep is None:
            self._stop.wait(timeout=seconds)
        else:
            self._sleep(seconds)

    def run_loop(self, work: Callable[[], object]) -> str:
        """Run work once per interval until a limit is hit. Returns the stop reason."""
        start = self._clock()
        while True:
            if self._stop.is_set():
                return "stopped"
            if self._host.remaining_time() < self._safety_margin_sec:
                return "allowance_exhausted"
            left = self._max_sec - (self._clock() - start)
            if left <= 0:
                return "elapsed_cap"
            try:
                work()
            except Exception as e:
                logger.warning("Background: work failed: %s", e)
            left = self._max_sec - (self._clock() - start)
            if left <= 0:
                return "elapsed_cap"
            self._wait(min(self._interval_sec, left))
