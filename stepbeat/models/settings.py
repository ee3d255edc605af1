"""User settings snapshot read by the core."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple

from stepbeat.config import (
    DEFAULT_MANUAL_TEMPO,
    MANUAL_TEMPO_MAX,
    MANUAL_TEMPO_MIN,
    MAX_GENRE_SEEDS,
)


class TempoMode(str, Enum):
    MANUAL = "manual"
    DYNAMIC = "dynamic"


@dataclass(frozen=True)
class Settings:
    """Immutable snapshot; take one per refill decision."""
    mode: TempoMode = TempoMode.DYNAMIC
    manual_tempo: float = DEFAULT_MANUAL_TEMPO
    genre_seeds: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        tempo = max(MANUAL_TEMPO_MIN, min(MANUAL_TEMPO_MAX, float(self.manual_tempo)))
        object.__setattr__(self, "manual_tempo", tempo)
        seeds = tuple(dict.fromkeys(s.strip() for s in self.genre_seeds if s and s.strip()))
        object.__setattr__(self, "genre_seeds", seeds[:MAX_GENRE_SEEDS])
        object.__setattr__(self, "mode", TempoMode(self.mode))
