"""Tempo mode, manual tempo and genre seeds."""
from typing import List, Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from stepbeat.api.state import AppState, get_state
from stepbeat.config import MANUAL_TEMPO_MAX, MANUAL_TEMPO_MIN, MAX_GENRE_SEEDS
from stepbeat.core.settings_store import settings_to_dict
from stepbeat.models.settings import Settings, TempoMode

router = APIRouter()


class SettingsBody(BaseModel):
    mode: Literal["manual", "dynamic"] = "dynamic"
    manual_tempo: float = Field(default=120.0, ge=MANUAL_TEMPO_MIN, le=MANUAL_TEMPO_MAX)
    genre_seeds: List[str] = Field(default_factory=list, max_length=MAX_GENRE_SEEDS)


@router.get("")
def get_settings(state: AppState = Depends(get_state)):
    return settings_to_dict(state.get_settings())


@router.put("")
def put_settings(body: SettingsBody, state: AppState = Depends(get_state)):
    settings = state.update_settings(
        Settings(
            mode=TempoMode(body.mode),
            manual_tempo=body.manual_tempo,
            genre_seeds=tuple(body.genre_seeds),
        )
    )
    return settings_to_dict(settings)
