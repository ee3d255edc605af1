"""Data models for cadence, tracks, playback and settings."""
from stepbeat.models.cadence import CadenceReading, RunState, TempoTarget
from stepbeat.models.playback import NowPlaying, PlayerState
from stepbeat.models.profile import UserProfile
from stepbeat.models.settings import Settings, TempoMode
from stepbeat.models.track import Track

__all__ = [
    "CadenceReading",
    "NowPlaying",
    "PlayerState",
    "RunState",
    "Settings",
    "TempoMode",
    "TempoTarget",
    "Track",
    "UserProfile",
]
