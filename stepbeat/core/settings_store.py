"""Persist and load user settings (JSON): tempo mode, manual tempo, genre seeds."""
import json
import logging
from pathlib import Path

from stepbeat.config import SETTINGS_PATH, ensure_data_dir
from stepbeat.models.settings import Settings, TempoMode

logger = logging.getLogger(__name__)


def _path() -> Path:
    ensure_data_dir()
    return SETTINGS_PATH


def load_settings(path: Path | None = None) -> Settings:
    """Load settings from disk; defaults when the file is missing or unreadable."""
    p = path or _path()
    if not p.exists():
        return Settings()
    try:
        data = json.loads(p.read_text())
        return Settings(
            mode=TempoMode(data.get("mode", TempoMode.DYNAMIC.value)),
            manual_tempo=float(data.get("manual_tempo", Settings().manual_tempo)),
            genre_seeds=tuple(str(g) for g in data.get("genre_seeds") or []),
        )
    except (json.JSONDecodeError, OSError, ValueError, TypeError, AttributeError) as e:
        logger.warning("Settings: could not read %s (%s), using defaults", p, e)
        return Settings()


def save_settings(settings: Settings, path: Path | None = None) -> None:
    """Save settings to disk."""
    p = path or _path()
    p.write_text(json.dumps(settings_to_dict(settings), indent=2))


def settings_to_dict(settings: Settings) -> dict:
    return {
        "mode": settings.mode.value,
        "manual_tempo": settings.manual_tempo,
        "genre_seeds": list(settings.genre_seeds),
    }
