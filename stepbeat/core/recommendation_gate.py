"""Single-flight guard for recommendation fetches."""
import logging
import threading

logger = logging.getLogger(__name__)


class RecommendationGate:
    """At most one fetch in flight. A denied caller skips its fetch; nothing is queued."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        with self._lock:
            return self._in_flight

    def try_acquire(self) -> bool:
        with self._lock:
            if self._in_flight:
                return False
            self._in_flight = True
            return True

    def release(self) -> None:
        """Clear the in-flight flag. No-op when nothing is held."""
        with self._lock:
            if not self._in_flight:
                logger.debug("Gate: release with nothing in flight")
                return
            self._in_flight = False
