"""Cadence readings and the tempo target derived from them."""
from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class CadenceReading:
    """One raw reading from the cadence source."""
    steps_per_sec: float
    timestamp: float


@dataclass(frozen=True)
class TempoTarget:
    """Tempo to match plus the catalog filters derived from it."""
    bpm: float
    min_tempo: float
    max_tempo: float
    min_danceability: float
    target_danceability: float


class RunState(str, Enum):
    IDLE = "idle"
    TRACKING = "tracking"
