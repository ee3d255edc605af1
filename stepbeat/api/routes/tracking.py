"""Start/stop cadence tracking and app lifecycle (background/foreground)."""
from fastapi import APIRouter, Depends

from stepbeat.api.state import AppState, get_state

router = APIRouter()


@router.get("")
def get_tracking(state: AppState = Depends(get_state)):
    """Return run state and whether a background window is held."""
    return {
        "run_state": state.reconciler.run_state.value,
        "background_window": state.tracking.window.is_held,
    }


@router.post("/start")
def start_tracking(state: AppState = Depends(get_state)):
    return state.tracking.start_tracking()


@router.post("/stop")
def stop_tracking(state: AppState = Depends(get_state)):
    return state.tracking.stop_tracking()


@router.post("/background")
def app_did_enter_background(state: AppState = Depends(get_state)):
    """App left the foreground: keep refilling for a bounded time."""
    return {"ok": True, "background_window": state.tracking.app_did_enter_background()}


@router.post("/foreground")
def app_will_enter_foreground(state: AppState = Depends(get_state)):
    """App is back: tear down the background window."""
    state.tracking.app_will_enter_foreground()
    return {"ok": True}
