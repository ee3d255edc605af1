"""Shared application state (injected into routes)."""
from stepbeat.config import SIMULATED_CADENCE
from stepbeat.core.alerts import AlertBox
from stepbeat.core.background_window import AllowanceHost, BackgroundWindow
from stepbeat.core.cadence_sampler import CadenceSampler
from stepbeat.core.cadence_source import CadenceSource, PushCadenceSource, SimulatedCadenceSource
from stepbeat.core.playback_engine import PlaybackEngine, SpotifyPlaybackEngine
from stepbeat.core.playback_observer import PlaybackObserver
from stepbeat.core.queue_reconciler import QueueReconciler
from stepbeat.core.settings_store import load_settings, save_settings
from stepbeat.core.spotify_client import SpotifyCatalog
from stepbeat.core.tracking_service import TrackingService
from stepbeat.models.settings import Settings


class AppState:
    def __init__(
        self,
        catalog=None,
        engine: PlaybackEngine | None = None,
        source: CadenceSource | None = None,
        window: BackgroundWindow | None = None,
        alerts: AlertBox | None = None,
        reconciler_kwargs: dict | None = None,
        observer_kwargs: dict | None = None,
    ) -> None:
        self.alerts = alerts or AlertBox()
        self.catalog = catalog or SpotifyCatalog()
        self.engine = engine or SpotifyPlaybackEngine(self.alerts)
        if source is None:
            source = SimulatedCadenceSource(SIMULATED_CADENCE) if SIMULATED_CADENCE > 0 else PushCadenceSource()
        self.sampler = CadenceSampler()
        self._settings = load_settings()
        self.reconciler = QueueReconciler(
            self.catalog, self.engine, self.get_settings, **(reconciler_kwargs or {})
        )
        self.observer = PlaybackObserver(self.reconciler, self.catalog, **(observer_kwargs or {}))
        self.tracking = TrackingService(
            source,
            self.sampler,
            self.reconciler,
            window or BackgroundWindow(AllowanceHost()),
        )

    @property
    def source(self) -> CadenceSource:
        return self.tracking.source

    def get_settings(self) -> Settings:
        return self._settings

    def update_settings(self, settings: Settings) -> Settings:
        save_settings(settings)
        self._settings = settings
        return settings


_state: AppState | None = None


def get_state() -> AppState:
    global _state
    if _state is None:
        _state = AppState()
    return _state
