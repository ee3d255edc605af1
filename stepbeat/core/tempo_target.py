"""Tempo target: what BPM to match, given cadence and the tempo mode."""
import random

from stepbeat.config import (
    MIN_DANCEABILITY,
    TARGET_DANCEABILITY_HIGH,
    TARGET_DANCEABILITY_LOW,
    TEMPO_RANGE_ABOVE,
    TEMPO_RANGE_BELOW,
)
from stepbeat.models.cadence import TempoTarget
from stepbeat.models.settings import Settings, TempoMode


def resolve(cadence_spm: float, settings: Settings, rng: random.Random | None = None) -> TempoTarget:
    """Return the tempo target for one refill decision.

    Manual mode ignores cadence and uses the configured tempo; dynamic mode
    matches the cadence in steps/min one-to-one. Target danceability is drawn
    fresh on every call from [0.75, 1.0).
    """
    rng = rng or random
    bpm = settings.manual_tempo if settings.mode == TempoMode.MANUAL else cadence_spm
    span = TARGET_DANCEABILITY_HIGH - TARGET_DANCEABILITY_LOW
    return TempoTarget(
        bpm=bpm,
        min_tempo=max(0.0, bpm - TEMPO_RANGE_BELOW),
        max_tempo=bpm + TEMPO_RANGE_ABOVE,
        min_danceability=MIN_DANCEABILITY,
        target_danceability=TARGET_DANCEABILITY_LOW + rng.random() * span,
    )
