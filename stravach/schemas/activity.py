from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ActivityResponse(BaseModel):
    id: int
    name: Optional[str] = None
    activity_type: Optional[str] = None
    distance: Optional[float] = None
    moving_time: Optional[int] = None
    elapsed_time: Optional[int] = None
    start_date: Optional[datetime] = None
    average_heartrate: Optional[float] = None
    average_speed: Optional[float] = None
    renamed: bool = False

    model_config = ConfigDict(from_attributes=True)


class EnqueueResponse(BaseModel):
    success: bool
    activity_id: int
    message: Optional[str] = None
