"""Cadence readings pushed by the phone, and the current smoothed cadence."""
from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel, Field

from stepbeat.api.state import AppState, get_state
from stepbeat.core.cadence_source import PushCadenceSource

router = APIRouter()


class ReadingBody(BaseModel):
    steps_per_sec: float = Field(ge=0)


class UnavailableBody(BaseModel):
    reason: str = "Cadence data is not available."


def _push_source(state: AppState) -> PushCadenceSource:
    source = state.source
    if not isinstance(source, PushCadenceSource):
        raise HTTPException(status_code=409, detail="Cadence is simulated; readings are not accepted.")
    return source


@router.get("")
def get_cadence(state: AppState = Depends(get_state)):
    """Return current cadence in steps/min."""
    return {"cadence_spm": state.sampler.current()}


@router.post("/reading")
def post_reading(body: ReadingBody, state: AppState = Depends(get_state)):
    """Submit one pedometer reading (steps/sec). Dropped unless tracking."""
    accepted = _push_source(state).push(body.steps_per_sec)
    return {"accepted": accepted, "cadence_spm": state.sampler.current()}


@router.post("/unavailable")
def post_unavailable(
    body: UnavailableBody | None = Body(None),
    state: AppState = Depends(get_state),
):
    """Phone reports the step counter is unavailable; tracking stops."""
    _push_source(state).report_unavailable(body.reason if body else UnavailableBody().reason)
    return {"ok": True, "run_state": state.reconciler.run_state.value}
