"""Latest cadence estimate, published to subscribers in reading order."""
import logging
import threading
from collections import deque
from typing import Callable, Deque, List

from stepbeat.config import CADENCE_WINDOW
from stepbeat.models.cadence import CadenceReading

logger = logging.getLogger(__name__)

CadenceListener = Callable[[float], None]


class CadenceSampler:
    """Turns raw steps/sec readings into a smoothed steps/min value.

    window=1 keeps the last reading. A larger window averages that many
    readings, which still updates on every reading. Listeners get the new
    steps/min value synchronously; readings are delivered one at a time so
    listeners never see them out of order.
    """

    def __init__(self, window: int = CADENCE_WINDOW) -> None:
        self._window: Deque[float] = deque(maxlen=max(1, window))
        self._current = 0.0
        self._lock = threading.Lock()
        self._delivery_lock = threading.Lock()
        self._listeners: List[CadenceListener] = []

    def subscribe(self, listener: CadenceListener) -> None:
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def unsubscribe(self, listener: CadenceListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def current(self) -> float:
        """Current cadence in steps/min."""
        with self._lock:
            return self._current

    def on_reading(self, reading: CadenceReading) -> None:
        if reading.steps_per_sec < 0:
            raise ValueError(f"negative cadence reading: {reading.steps_per_sec}")
        with self._delivery_lock:
            with self._lock:
                self._window.append(reading.steps_per_sec * 60.0)
                self._current = sum(self._window) / len(self._window)
                value = self._current
                listeners = list(self._listeners)
            for listener in listeners:
                try:
                    listener(value)
                except Exception as e:
                    logger.warning("Cadence listener failed: %s", e)

    def reset(self) -> None:
        with self._lock:
            self._window.clear()
            self._current = 0.0
