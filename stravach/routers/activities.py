from typing import List

from fastapi import APIRouter, Depends, HTTPException

from stravach.dependencies import get_ingestion, get_store
from stravach.errors import ActivityNotFound, UserNotFound
from stravach.schemas.activity import ActivityResponse, EnqueueResponse
from stravach.services.ingestion_service import IngestionService
from stravach.services.storage_service import SQLStore

router = APIRouter()


@router.get("/activities/{chat_id}", response_model=List[ActivityResponse])
def list_activities(chat_id: int, store: SQLStore = Depends(get_store)):
    """Mirrored activities of the user behind a chat."""
    try:
        user = store.get_user_by_chat_id(chat_id)
    except UserNotFound as e:
        raise HTTPException(status_code=404, detail=e.message)
    return store.list_user_activities(user.id)


@router.post("/activity/{activity_id}", response_model=EnqueueResponse)
def request_rename(activity_id: int, ingestion: IngestionService = Depends(get_ingestion)):
    """Offer fresh names for an activity, even one that was renamed before."""
    try:
        queued = ingestion.request_rename(activity_id)
    except (ActivityNotFound, UserNotFound) as e:
        raise HTTPException(status_code=404, detail=e.message)

    if not queued:
        raise HTTPException(status_code=503, detail="Activity queue is full")

    return EnqueueResponse(success=True, activity_id=activity_id, message="Activity sent to the queue")
