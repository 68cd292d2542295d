from stravach.errors import InvalidCallback, PartialSyncFailure, StravaError, UpstreamWriteFailed
from stravach.logging_config import get_logger
from stravach.models import UserActivity
from stravach.services.callback_codec import clean_name
from stravach.services.token_guard import TokenGuard

logger = get_logger("update_committer")


class UpdateCommitter:
    """Writes a chosen name to Strava, then marks the local mirror renamed.

    There is no transaction across the two writes: an upstream success followed
    by a local failure surfaces as PartialSyncFailure and must not be retried
    as a whole, since Strava already has the new name.
    """

    def __init__(self, strava, store, token_guard: TokenGuard):
        self.strava = strava
        self.store = store
        self.token_guard = token_guard

    def commit(self, chat_id: int, activity_id: int, name: str) -> UserActivity:
        new_name = clean_name(name)
        if not new_name:
            raise UpstreamWriteFailed("Chosen name is empty after cleanup")

        activity = self.store.get_activity(activity_id)
        user = self.store.get_user_by_chat_id(chat_id)
        if activity.user_id != user.id:
            raise InvalidCallback(f"Activity {activity_id} does not belong to chat {chat_id}")

        renamed = UserActivity(id=activity.id, user_id=activity.user_id, name=new_name)
        try:
            self.token_guard.call_with_reauth(user, lambda token: self.strava.update_activity_name(token, renamed))
        except StravaError as e:
            logger.error(f"Strava rename failed for activity {activity_id}: {e.message}")
            raise UpstreamWriteFailed(f"Strava rejected the new name: {e.message}") from e

        activity.name = new_name
        activity.renamed = True
        try:
            self.store.update_activity(activity)
        except Exception as e:
            logger.error(
                "Activity renamed on Strava but local update failed",
                extra={"context": {"activity_id": activity_id, "chat_id": chat_id, "error": str(e)}},
            )
            raise PartialSyncFailure(f"Activity {activity_id} renamed on Strava but not saved locally") from e

        logger.info(
            "Activity renamed",
            extra={"context": {"activity_id": activity_id, "chat_id": chat_id, "name": new_name}},
        )
        return activity
