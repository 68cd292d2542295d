from typing import Callable, Iterable, Optional

from sqlalchemy.orm import Session

from stravach.errors import ActivityNotFound, UserNotFound
from stravach.logging_config import get_logger
from stravach.models import User, UserActivity

logger = get_logger("storage_service")


class SQLStore:
    """Users and mirrored activities.

    Each call opens its own session so the store can be shared between the
    rename worker thread and request threads. Returned rows are detached.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def get_user_by_chat_id(self, chat_id: int) -> User:
        with self.session_factory() as db:
            user = db.query(User).filter(User.telegram_chat_id == chat_id).first()
        if user is None:
            raise UserNotFound(f"No user for chat {chat_id}")
        return user

    def get_user(self, user_id: int) -> User:
        with self.session_factory() as db:
            user = db.get(User, user_id)
        if user is None:
            raise UserNotFound(f"User {user_id} not found")
        return user

    def get_user_by_strava_id(self, strava_id: int) -> User:
        with self.session_factory() as db:
            user = db.query(User).filter(User.strava_id == strava_id).first()
        if user is None:
            raise UserNotFound(f"No user for Strava athlete {strava_id}")
        return user

    def user_exists(self, chat_id: int) -> bool:
        with self.session_factory() as db:
            return db.query(User.id).filter(User.telegram_chat_id == chat_id).first() is not None

    def create_user(self, chat_id: int, username: Optional[str] = None) -> User:
        user = User(telegram_chat_id=chat_id, username=username or "anonymous")
        with self.session_factory() as db:
            db.add(user)
            db.commit()
            db.refresh(user)
        logger.info(f"Created user {user.id} for chat {chat_id}")
        return user

    def update_user(self, user: User) -> User:
        with self.session_factory() as db:
            merged = db.merge(user)
            db.commit()
        return merged

    def get_activity(self, activity_id: int) -> UserActivity:
        with self.session_factory() as db:
            activity = db.get(UserActivity, activity_id)
        if activity is None:
            raise ActivityNotFound(f"Activity {activity_id} not found")
        return activity

    def activity_exists(self, activity_id: int) -> bool:
        with self.session_factory() as db:
            return db.query(UserActivity.id).filter(UserActivity.id == activity_id).first() is not None

    def update_activity(self, activity: UserActivity) -> UserActivity:
        with self.session_factory() as db:
            merged = db.merge(activity)
            db.commit()
        return merged

    def create_activities(self, user_id: int, activities: Iterable[UserActivity]) -> int:
        """Upsert activities for a user. The local `renamed` flag is never reset."""
        count = 0
        with self.session_factory() as db:
            for activity in activities:
                existing = db.get(UserActivity, activity.id)
                if existing is None:
                    activity.user_id = user_id
                    activity.renamed = bool(activity.renamed)
                    db.add(activity)
                else:
                    existing.name = activity.name
                    existing.distance = activity.distance
                    existing.moving_time = activity.moving_time
                    existing.elapsed_time = activity.elapsed_time
                    existing.activity_type = activity.activity_type
                    existing.start_date = activity.start_date
                    existing.average_heartrate = activity.average_heartrate
                    existing.average_speed = activity.average_speed
                count += 1
            db.commit()
        logger.info(f"Stored {count} activities for user {user_id}")
        return count

    def list_user_activities(self, user_id: int, limit: int = 50) -> list[UserActivity]:
        with self.session_factory() as db:
            return (
                db.query(UserActivity)
                .filter(UserActivity.user_id == user_id)
                .order_by(UserActivity.start_date.desc())
                .limit(limit)
                .all()
            )
