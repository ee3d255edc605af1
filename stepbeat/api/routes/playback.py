"""Now playing and transport controls (Spotify)."""
from fastapi import APIRouter, Depends, HTTPException

from stepbeat.api.state import AppState, get_state
from stepbeat.errors import NoCredential, StepBeatError

router = APIRouter()


def _raise_for(e: StepBeatError):
    if isinstance(e, NoCredential):
        raise HTTPException(
            status_code=503,
            detail="Spotify not linked. Use the Connect page to log in.",
        )
    raise HTTPException(status_code=502, detail=f"{e.code}: {e}")


@router.get("")
def get_playback(state: AppState = Depends(get_state)):
    """Return the now-playing view (track, artist, duration, tempo, artwork)."""
    return vars(state.observer.now_playing())


@router.post("/play-pause")
def play_pause(state: AppState = Depends(get_state)):
    try:
        is_playing = state.engine.play_pause()
    except StepBeatError as e:
        _raise_for(e)
    return {"ok": True, "is_playing": is_playing}


@router.post("/next")
def skip_next(state: AppState = Depends(get_state)):
    try:
        state.engine.skip_next()
    except StepBeatError as e:
        _raise_for(e)
    return {"ok": True}


@router.post("/previous")
def skip_previous(state: AppState = Depends(get_state)):
    try:
        state.engine.skip_previous()
    except StepBeatError as e:
        _raise_for(e)
    return {"ok": True}
