"""Spotify OAuth: auth URL and callback; signed-in profile."""
import logging
import urllib.parse
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import BaseModel

from stepbeat.api.state import AppState, get_state
from stepbeat.config import (
    SPOTIFY_CLIENT_ID,
    SPOTIFY_REDIRECT_URI,
    SPOTIFY_SCOPES,
    STEPBEAT_WEB_ORIGIN,
)
from stepbeat.core.spotify_client import exchange_code_and_save_token, logout as clear_token
from stepbeat.errors import NoCredential, StepBeatError

router = APIRouter()
logger = logging.getLogger(__name__)


class CompleteLoginBody(BaseModel):
    """Either the full redirect URL (with ?code=...) or the code alone."""
    redirect_url: Optional[str] = None
    code: Optional[str] = None


def _after_login(state: AppState) -> None:
    """Pick a playback device once a credential exists. Failures surface as an alert."""
    try:
        state.engine.connect()
    except StepBeatError as e:
        logger.warning("Spotify: connect after login failed: %s", e)


@router.get("/auth-url")
def get_auth_url(state: AppState = Depends(get_state)):
    """Return Spotify OAuth authorization URL and whether the user is logged in."""
    if not SPOTIFY_CLIENT_ID:
        return {"auth_url": None, "error": "SPOTIFY_CLIENT_ID not set", "logged_in": False}
    logged_in = state.engine.authorize()
    base = "https://accounts.spotify.com/authorize"
    params = {
        "client_id": SPOTIFY_CLIENT_ID,
        "response_type": "code",
        "redirect_uri": SPOTIFY_REDIRECT_URI,
        "scope": SPOTIFY_SCOPES,
    }
    url = f"{base}?{urllib.parse.urlencode(params)}"
    return {"auth_url": url, "logged_in": logged_in}


@router.get("/callback")
def spotify_callback(code: str | None = None, state: AppState = Depends(get_state)):
    """Exchange code for tokens, store on device, then redirect to web app or show success."""
    if not code:
        return HTMLResponse(
            "<body><p>Missing authorization code. Try logging in again from the Connect page.</p></body>",
            status_code=400,
        )
    if not exchange_code_and_save_token(code):
        return HTMLResponse(
            "<body><p>Failed to link Spotify. Check backend logs and try again.</p></body>",
            status_code=500,
        )
    _after_login(state)
    if STEPBEAT_WEB_ORIGIN:
        redirect_url = f"{STEPBEAT_WEB_ORIGIN.rstrip('/')}/connect?spotify=success"
        return RedirectResponse(url=redirect_url, status_code=302)
    return HTMLResponse(
        "<body><p>Spotify linked successfully. You can close this window.</p></body>"
    )


@router.post("/complete-login")
def complete_login(body: CompleteLoginBody, state: AppState = Depends(get_state)):
    """
    Exchange an auth code for tokens and save (manual flow).
    Send either the full redirect URL (after Spotify redirected you and the page failed to load)
    or just the code.
    """
    code: Optional[str] = None
    if body.code:
        code = body.code.strip()
    elif body.redirect_url:
        url = body.redirect_url.strip()
        if "?" in url:
            parsed = urllib.parse.urlparse(url)
            params = urllib.parse.parse_qs(parsed.query)
            code = (params.get("code") or [None])[0]
        if not code:
            raise HTTPException(
                status_code=400,
                detail="No 'code' in redirect URL. Paste the full URL from the address bar after logging in.",
            )
    else:
        raise HTTPException(
            status_code=400,
            detail="Send either 'redirect_url' or 'code' in the request body.",
        )
    if not exchange_code_and_save_token(code):
        raise HTTPException(
            status_code=502,
            detail="Failed to exchange code for tokens. Check SPOTIFY_CLIENT_ID, SPOTIFY_CLIENT_SECRET, and redirect_uri.",
        )
    _after_login(state)
    return {"ok": True, "message": "Spotify linked successfully."}


@router.post("/logout")
def logout(state: AppState = Depends(get_state)):
    """Clear the Spotify token so the user is logged out."""
    clear_token()
    return {"ok": True}


@router.get("/profile")
def get_profile(state: AppState = Depends(get_state)):
    """Display name and avatar of the signed-in user."""
    try:
        profile = state.catalog.user_profile()
    except NoCredential:
        return {"logged_in": False, "display_name": None, "image_url": None}
    except StepBeatError as e:
        raise HTTPException(status_code=502, detail=f"{e.code}: {e}")
    return {"logged_in": True, "display_name": profile.display_name, "image_url": profile.image_url}
