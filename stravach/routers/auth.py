from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import HTMLResponse, RedirectResponse

from stravach.config import settings
from stravach.dependencies import get_store, get_strava
from stravach.errors import StravaError, UserNotFound
from stravach.logging_config import get_logger
from stravach.services.storage_service import SQLStore
from stravach.services.strava_service import StravaClient

logger = get_logger("auth")

router = APIRouter()


@router.get("/auth/{chat_id}")
def start_auth(chat_id: int, strava: StravaClient = Depends(get_strava)):
    redirect_uri = f"{settings.public_url.rstrip('/')}/auth-callback/{chat_id}"
    return RedirectResponse(strava.authorize_url(redirect_uri), status_code=307)


@router.get("/auth-callback/{chat_id}", response_class=HTMLResponse)
def auth_callback(
    chat_id: int,
    code: str = "",
    store: SQLStore = Depends(get_store),
    strava: StravaClient = Depends(get_strava),
):
    """Exchange the OAuth code and attach the Strava athlete to the chat's user."""
    if not code:
        raise HTTPException(status_code=400, detail="Missing authorization code")

    try:
        user = store.get_user_by_chat_id(chat_id)
    except UserNotFound as e:
        raise HTTPException(status_code=404, detail=e.message)

    try:
        auth = strava.authorize(code)
    except StravaError as e:
        logger.error(f"Strava authorization failed for chat {chat_id}: {e.message}")
        raise HTTPException(status_code=502, detail="Strava authorization failed")

    user.strava_access_token = auth.access_token
    user.strava_refresh_token = auth.refresh_token
    user.token_expires_at = auth.expires_at
    user.strava_id = auth.athlete_id
    if auth.username:
        user.username = auth.username
    store.update_user(user)

    logger.info(f"Chat {chat_id} connected Strava athlete {auth.athlete_id}")
    return "<p>Strava connected. You can go back to Telegram.</p>"
