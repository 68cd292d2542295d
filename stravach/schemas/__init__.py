from stravach.schemas.activity import ActivityResponse, EnqueueResponse
from stravach.schemas.strava import StravaEvent, StravaEventResponse
from stravach.schemas.telegram import TelegramUpdate, TelegramWebhookResponse

__all__ = [
    "ActivityResponse",
    "EnqueueResponse",
    "StravaEvent",
    "StravaEventResponse",
    "TelegramUpdate",
    "TelegramWebhookResponse",
]
