"""One-shot alert for the presentation layer."""
from fastapi import APIRouter, Depends

from stepbeat.api.state import AppState, get_state

router = APIRouter()


@router.get("")
def take_alert(state: AppState = Depends(get_state)):
    """Return the pending alert (if any) and clear it."""
    message = state.alerts.take()
    return {"show_alert": message is not None, "message": message or ""}
