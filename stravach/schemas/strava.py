from typing import Optional

from pydantic import BaseModel


class StravaEvent(BaseModel):
    """Strava push subscription event."""

    object_type: str  # activity, athlete
    object_id: int
    aspect_type: str  # create, update, delete
    owner_id: int
    subscription_id: Optional[int] = None
    event_time: Optional[int] = None
    updates: Optional[dict] = None


class StravaEventResponse(BaseModel):
    success: bool
    queued: bool = False
    message: Optional[str] = None
