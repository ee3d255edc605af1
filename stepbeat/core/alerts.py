"""One-shot alert messages for the presentation layer (connection failures, disconnects)."""
import threading
from typing import Optional


class AlertBox:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._message: Optional[str] = None

    def post(self, message: str) -> None:
        with self._lock:
            self._message = message

    def take(self) -> Optional[str]:
        """Return the pending message and clear it."""
        with self._lock:
            message, self._message = self._message, None
            return message
