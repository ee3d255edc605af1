"""Start/stop cadence tracking: wires cadence source, sampler, reconciler and background window."""
import logging
import threading
from typing import Any, Dict

from stepbeat.core.background_window import BackgroundWindow
from stepbeat.core.cadence_sampler import CadenceSampler
from stepbeat.core.cadence_source import CadenceSource
from stepbeat.core.queue_reconciler import QueueReconciler
from stepbeat.models.cadence import RunState

logger = logging.getLogger(__name__)


class TrackingService:
    """User-facing start/stop plus foreground/background lifecycle hooks."""

    def __init__(
        self,
        source: CadenceSource,
        sampler: CadenceSampler,
        reconciler: QueueReconciler,
        window: BackgroundWindow,
    ) -> None:
        self.source = source
        self.sampler = sampler
        self.reconciler = reconciler
        self.window = window
        self._lock = threading.Lock()

    @property
    def is_tracking(self) -> bool:
        return self.reconciler.run_state == RunState.TRACKING

    def _background_tick(self) -> None:
        self.reconciler.refill_if_needed()

    def start_tracking(self) -> Dict[str, Any]:
        with self._lock:
            if self.is_tracking:
                return {"ok": True, "reason": "already_tracking"}
            self.reconciler.start()
            self.sampler.subscribe(self.reconciler.on_cadence)
            try:
                self.source.start(self.sampler.on_reading, self.cadence_source_failed)
            except Exception as e:
                logger.warning("Tracking: cadence source failed to start: %s", e)
                self._stop_locked()
                return {"ok": False, "reason": "cadence_source_failed"}
            self.window.enter(self._background_tick)
        logger.info("Tracking: started")
        return {"ok": True, "reason": "started"}

    def stop_tracking(self) -> Dict[str, Any]:
        with self._lock:
            if not self.is_tracking:
                return {"ok": True, "reason": "already_idle"}
            self._stop_locked()
        logger.info("Tracking: stopped")
        return {"ok": True, "reason": "stopped"}

    def _stop_locked(self) -> None:
        self.source.stop()
        self.sampler.unsubscribe(self.reconciler.on_cadence)
        self.reconciler.stop()
        self.window.exit()
        self.sampler.reset()

    def cadence_source_failed(self, error: Exception) -> None:
        """Unrecoverable source failure: back to idle."""
        logger.warning("Tracking: cadence source failed: %s", error)
        self.stop_tracking()

    def app_did_enter_background(self) -> bool:
        """Keep the refill loop running for a bounded time. Returns True if a window is now held."""
        with self._lock:
            if not self.is_tracking:
                return False
            return self.window.enter(self._background_tick)

    def app_will_enter_foreground(self) -> None:
        with self._lock:
            self.window.exit()
