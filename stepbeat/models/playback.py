"""Player state reported by the playback engine."""
from dataclasses import dataclass
from typing import Optional

from stepbeat.config import TRACK_END_TOLERANCE_MS


@dataclass(frozen=True)
class PlayerState:
    """One "now playing" observation. track_uri is None when nothing is loaded."""
    track_uri: Optional[str]
    track_name: str = ""
    artist_name: str = ""
    duration_ms: int = 0
    is_paused: bool = True
    position_ms: int = 0
    image_url: Optional[str] = None

    @property
    def ended(self) -> bool:
        """Stopped at (or past) the end of the track, as opposed to paused mid-track."""
        return (
            self.track_uri is not None
            and self.is_paused
            and self.duration_ms > 0
            and self.position_ms >= self.duration_ms - TRACK_END_TOLERANCE_MS
        )


@dataclass
class NowPlaying:
    """Now-playing view for the presentation layer."""
    track_uri: Optional[str] = None
    track_name: Optional[str] = None
    artist_name: Optional[str] = None
    duration_sec: Optional[int] = None
    is_playing: bool = False
    tempo: Optional[float] = None
    image_url: Optional[str] = None
