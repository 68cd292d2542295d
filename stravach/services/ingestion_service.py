from stravach.logging_config import get_logger
from stravach.models import User, UserActivity
from stravach.services.rename_workflow import RenameWorkflow
from stravach.services.token_guard import TokenGuard

logger = get_logger("ingestion_service")


class IngestionService:
    """Feeds activities from Strava into the local mirror and the rename queue."""

    def __init__(self, store, strava, token_guard: TokenGuard, workflow: RenameWorkflow):
        self.store = store
        self.strava = strava
        self.token_guard = token_guard
        self.workflow = workflow

    def handle_event(self, object_type: str, aspect_type: str, object_id: int, owner_id: int) -> bool:
        """Handle one Strava webhook event. Returns True if names were queued."""
        if object_type != "activity" or aspect_type != "create":
            # Our own rename comes back as an "update" event
            logger.debug(f"Ignoring Strava event {object_type}/{aspect_type} for {object_id}")
            return False

        user = self.store.get_user_by_strava_id(owner_id)
        activity = self._mirror_activity(user, object_id)
        return self.workflow.submit(activity, user.telegram_chat_id)

    def _mirror_activity(self, user: User, activity_id: int) -> UserActivity:
        if self.store.activity_exists(activity_id):
            logger.info(f"Activity {activity_id} already mirrored, probably a redelivery")
            return self.store.get_activity(activity_id)

        activity = self.token_guard.call_with_reauth(user, lambda token: self.strava.get_activity(token, activity_id))
        self.store.create_activities(user.id, [activity])
        return self.store.get_activity(activity_id)

    def request_rename(self, activity_id: int) -> bool:
        """Manual trigger for one mirrored activity, regardless of its renamed flag."""
        activity = self.store.get_activity(activity_id)
        user = self.store.get_user(activity.user_id)
        return self.workflow.request_rename(activity, user.telegram_chat_id)

    def sync_activities(self, user: User) -> int:
        """Pull the athlete's recent activities into the mirror without offering names."""
        activities = self.token_guard.call_with_reauth(user, self.strava.list_activities)
        return self.store.create_activities(user.id, activities)
