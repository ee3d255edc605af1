"""FastAPI app, CORS, and route registration."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Configure logging in the worker process (so core INFO logs are visible with uvicorn --reload)
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s: %(name)s: %(message)s",
)

from stepbeat.api.state import AppState, get_state
from stepbeat.config import ensure_data_dir

# Import routes after state to avoid circular imports
from stepbeat.api.routes import alerts, cadence, playback, queue, settings, spotify, tracking

__all__ = ["app", "AppState", "get_state"]

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    ensure_data_dir()
    state = get_state()
    state.engine.subscribe(state.observer.on_player_state)

    yield

    state.tracking.stop_tracking()
    state.engine.unsubscribe()


app = FastAPI(
    title="StepBeat API",
    description="Local REST API keeping a Spotify queue in step with running cadence",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(tracking.router, prefix="/api/tracking", tags=["tracking"])
app.include_router(cadence.router, prefix="/api/cadence", tags=["cadence"])
app.include_router(queue.router, prefix="/api/queue", tags=["queue"])
app.include_router(settings.router, prefix="/api/settings", tags=["settings"])
app.include_router(playback.router, prefix="/api/playback", tags=["playback"])
app.include_router(spotify.router, prefix="/api/spotify", tags=["spotify"])
app.include_router(alerts.router, prefix="/api/alerts", tags=["alerts"])
