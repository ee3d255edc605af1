"""Internal queue: tracks this service asked Spotify to play next."""
from fastapi import APIRouter, Depends

from stepbeat.api.state import AppState, get_state

router = APIRouter()


@router.get("")
def get_queue(state: AppState = Depends(get_state)):
    return state.reconciler.snapshot()


@router.post("/refill")
def refill(state: AppState = Depends(get_state)):
    """Trigger a refill check now (no-op unless tracking with an empty queue)."""
    return state.reconciler.refill_if_needed()
