"""Configuration: env, Spotify credentials, tempo matching and background limits."""
import os
from pathlib import Path

# Base paths (project root = parent of stepbeat package)
BASE_DIR = Path(__file__).resolve().parent.parent

# Load .env from project root so SPOTIFY_CLIENT_ID etc. are set
try:
    from dotenv import load_dotenv
    load_dotenv(BASE_DIR / ".env")
except ImportError:
    pass
DATA_DIR = Path(os.getenv("STEPBEAT_DATA_DIR", str(BASE_DIR / "data")))
SETTINGS_PATH = DATA_DIR / "settings.json"
SPOTIFY_TOKEN_CACHE = DATA_DIR / ".spotify-token"

# API
API_HOST = os.getenv("STEPBEAT_API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("STEPBEAT_API_PORT", "8000"))

# Spotify (OAuth; tokens stored on device after first connect)
SPOTIFY_CLIENT_ID = os.getenv("SPOTIFY_CLIENT_ID", "")
SPOTIFY_CLIENT_SECRET = os.getenv("SPOTIFY_CLIENT_SECRET", "")
SPOTIFY_REDIRECT_URI = os.getenv("SPOTIFY_REDIRECT_URI", "http://localhost:8000/api/spotify/callback")
SPOTIFY_SCOPES = "user-read-playback-state user-modify-playback-state user-read-currently-playing"
# After OAuth callback, redirect here (e.g. http://localhost:5173 for Vite dev)
STEPBEAT_WEB_ORIGIN = os.getenv("STEPBEAT_WEB_ORIGIN", "")

# Tempo matching: catalog range is [target - BELOW, target + ABOVE] BPM
TEMPO_RANGE_BELOW = 1.5
TEMPO_RANGE_ABOVE = 2.0
MIN_DANCEABILITY = 0.55
TARGET_DANCEABILITY_LOW = 0.75
TARGET_DANCEABILITY_HIGH = 1.0
RECOMMENDATION_LIMIT = 10
MAX_GENRE_SEEDS = 5

# Manual tempo (settings slider range)
DEFAULT_MANUAL_TEMPO = 120.0
MANUAL_TEMPO_MIN = 60.0
MANUAL_TEMPO_MAX = 200.0

# Cadence: 1 = last reading wins; >1 = short moving average over that many readings
CADENCE_WINDOW = int(os.getenv("STEPBEAT_CADENCE_WINDOW", "1"))
# Development cadence generator (steps/sec); 0 disables it
SIMULATED_CADENCE = float(os.getenv("STEPBEAT_SIMULATE_CADENCE", "0"))
SIMULATED_CADENCE_INTERVAL_SEC = 1.0

# Background execution window (seconds)
BACKGROUND_SAFETY_MARGIN_SEC = 1.0
BACKGROUND_MAX_SEC = 25.0
BACKGROUND_LOOP_INTERVAL_SEC = 1.0
BACKGROUND_ALLOWANCE_SEC = float(os.getenv("STEPBEAT_BACKGROUND_ALLOWANCE_SEC", "30"))

# Player state poll (Web API has no push; the engine adapter turns polls into events)
PLAYER_POLL_INTERVAL_SEC = float(os.getenv("STEPBEAT_PLAYER_POLL_SEC", "1.0"))
# A paused track this close to its end (ms) has played out, not been paused
TRACK_END_TOLERANCE_MS = 1500


def ensure_data_dir() -> None:
    DATA_DIR.mkdir(parents=True, exist_ok=True)
