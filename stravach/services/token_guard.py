import time
from typing import Callable, TypeVar

from stravach.errors import CredentialRefreshFailed, StravaError, StravaUnauthorized
from stravach.logging_config import get_logger
from stravach.models import User

logger = get_logger("token_guard")

T = TypeVar("T")


class TokenGuard:
    """Keeps a user's Strava access token usable before upstream calls."""

    def __init__(self, strava, store, clock: Callable[[], float] = time.time):
        self.strava = strava
        self.store = store
        self.clock = clock

    def ensure_valid_token(self, user: User) -> User:
        """Refresh and persist the token if it is missing or expired. No-op otherwise."""
        if not user.auth_required(self.clock()):
            return user
        return self.refresh(user)

    def refresh(self, user: User) -> User:
        if not user.strava_refresh_token:
            raise CredentialRefreshFailed(f"User {user.id} has no Strava refresh token")

        try:
            auth = self.strava.refresh_access_token(user.strava_refresh_token)
        except StravaError as e:
            logger.warning(f"Token refresh rejected for user {user.id}: {e.message}")
            raise CredentialRefreshFailed(f"Strava token refresh failed: {e.message}") from e

        user.strava_access_token = auth.access_token
        user.strava_refresh_token = auth.refresh_token
        user.token_expires_at = auth.expires_at

        try:
            self.store.update_user(user)
        except Exception as e:
            logger.error(f"Failed to persist refreshed token for user {user.id}: {e}")
            raise CredentialRefreshFailed("Refreshed token could not be saved") from e

        logger.info(f"Refreshed Strava token for user {user.id}")
        return user

    def call_with_reauth(self, user: User, fn: Callable[[str], T]) -> T:
        """Run fn(access_token); on a 401 refresh once and retry once."""
        self.ensure_valid_token(user)
        try:
            return fn(user.strava_access_token)
        except StravaUnauthorized:
            logger.info(f"Access token rejected for user {user.id}, refreshing and retrying once")
            self.refresh(user)
            return fn(user.strava_access_token)
