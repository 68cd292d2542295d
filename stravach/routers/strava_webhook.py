from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from stravach.config import settings
from stravach.dependencies import get_ingestion
from stravach.errors import RenameError, StravaError
from stravach.logging_config import get_logger
from stravach.schemas.strava import StravaEvent, StravaEventResponse
from stravach.services.ingestion_service import IngestionService

logger = get_logger("strava_webhook")

router = APIRouter()


@router.get("/webhook")
def verify_subscription(
    mode: str = Query("", alias="hub.mode"),
    verify_token: str = Query("", alias="hub.verify_token"),
    challenge: str = Query("", alias="hub.challenge"),
):
    """Strava push subscription handshake."""
    if mode == "subscribe" and verify_token and verify_token == settings.strava_verify_token:
        logger.info("Strava webhook verified")
        return {"hub.challenge": challenge}

    logger.warning(f"Strava webhook verification rejected: mode={mode}")
    return JSONResponse(status_code=403, content={"detail": "Verification failed"})


@router.post("/webhook", response_model=StravaEventResponse)
async def handle_strava_event(event: StravaEvent, ingestion: IngestionService = Depends(get_ingestion)):
    """Strava expects a quick 200 for every event, including ones we cannot handle."""
    logger.info(
        "Strava event received",
        extra={
            "context": {
                "object_type": event.object_type,
                "aspect_type": event.aspect_type,
                "object_id": event.object_id,
                "owner_id": event.owner_id,
            }
        },
    )
    try:
        queued = await run_in_threadpool(
            ingestion.handle_event, event.object_type, event.aspect_type, event.object_id, event.owner_id
        )
    except RenameError as e:
        logger.warning(f"Strava event not processed: {e.message}")
        return StravaEventResponse(success=False, message=e.message)
    except StravaError as e:
        logger.error(f"Strava event {event.object_id} failed: {e.message}")
        return StravaEventResponse(success=False, message=e.message)

    return StravaEventResponse(success=True, queued=queued)
