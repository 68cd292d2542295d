from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import httpx

from stravach.errors import StravaError, StravaUnauthorized
from stravach.logging_config import get_logger
from stravach.models import UserActivity

logger = get_logger("strava_service")


@dataclass
class AuthData:
    access_token: str
    refresh_token: str
    expires_at: int
    athlete_id: Optional[int] = None
    username: Optional[str] = None


def activity_from_payload(data: dict, user_id: Optional[int] = None) -> UserActivity:
    """Map a Strava activity JSON object onto the local mirror model."""
    start_date = None
    if data.get("start_date"):
        start_date = datetime.fromisoformat(data["start_date"].replace("Z", "+00:00"))

    return UserActivity(
        id=int(data["id"]),
        user_id=user_id,
        name=data.get("name") or "",
        distance=float(data.get("distance") or 0.0),
        moving_time=int(data.get("moving_time") or 0),
        elapsed_time=int(data.get("elapsed_time") or 0),
        activity_type=data.get("sport_type") or data.get("type"),
        start_date=start_date,
        average_heartrate=data.get("average_heartrate"),
        average_speed=data.get("average_speed"),
        renamed=False,
    )


class StravaClient:
    """Client for the Strava v3 API and OAuth token endpoint."""

    AUTH_URL = "https://www.strava.com/oauth/token"
    AUTHORIZE_URL = "https://www.strava.com/oauth/authorize"
    API_URL = "https://www.strava.com/api/v3"
    SCOPES = "read_all,activity:write,activity:read_all"

    def __init__(self, client_id: str, client_secret: str, timeout_seconds: float = 20.0, max_pages: int = 1):
        self.client_id = client_id
        self.client_secret = client_secret
        self.timeout_seconds = timeout_seconds
        self.max_pages = max_pages

    def _request(
        self,
        method: str,
        url: str,
        access_token: Optional[str] = None,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
    ):
        headers = {}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        try:
            with httpx.Client(timeout=self.timeout_seconds) as client:
                response = client.request(method, url, headers=headers, params=params, json=json)
        except httpx.HTTPError as e:
            logger.error(f"Strava request failed: {method} {url}: {e}")
            raise StravaError(f"Strava request failed: {e}") from e

        if response.status_code == 401:
            raise StravaUnauthorized("Strava rejected the access token", status_code=401)
        if response.status_code >= 300:
            logger.error(
                "Strava returned an error",
                extra={"context": {"url": url, "status": response.status_code, "body": response.text[:500]}},
            )
            raise StravaError(f"Strava API error: {response.status_code}", status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise StravaError("Strava returned a non-JSON body") from e

    def authorize_url(self, redirect_uri: str) -> str:
        request = httpx.Request(
            "GET",
            self.AUTHORIZE_URL,
            params={
                "client_id": self.client_id,
                "response_type": "code",
                "redirect_uri": redirect_uri,
                "approval_prompt": "force",
                "scope": self.SCOPES,
            },
        )
        return str(request.url)

    def _auth(self, params: dict) -> AuthData:
        data = self._request(
            "POST",
            self.AUTH_URL,
            params={"client_id": self.client_id, "client_secret": self.client_secret, **params},
        )
        try:
            athlete = data.get("athlete") or {}
            return AuthData(
                access_token=data["access_token"],
                refresh_token=data["refresh_token"],
                expires_at=int(data["expires_at"]),
                athlete_id=athlete.get("id"),
                username=athlete.get("username"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise StravaError(f"Malformed token response: {e}") from e

    def authorize(self, code: str) -> AuthData:
        """Exchange an OAuth code for tokens."""
        return self._auth({"code": code, "grant_type": "authorization_code"})

    def refresh_access_token(self, refresh_token: str) -> AuthData:
        return self._auth({"refresh_token": refresh_token, "grant_type": "refresh_token"})

    def get_activity(self, access_token: str, activity_id: int) -> UserActivity:
        data = self._request(
            "GET",
            f"{self.API_URL}/activities/{activity_id}",
            access_token=access_token,
            params={"include_all_efforts": "false"},
        )
        return activity_from_payload(data)

    def update_activity_name(self, access_token: str, activity: UserActivity) -> UserActivity:
        data = self._request(
            "PUT",
            f"{self.API_URL}/activities/{activity.id}",
            access_token=access_token,
            json={"name": activity.name},
        )
        logger.info(f"Strava activity {activity.id} renamed to {data.get('name')!r}")
        return activity_from_payload(data, user_id=activity.user_id)

    def list_activities(self, access_token: str, per_page: int = 30) -> list[UserActivity]:
        """Fetch the athlete's activities page by page, up to max_pages."""
        activities: list[UserActivity] = []
        for page in range(1, self.max_pages + 1):
            data = self._request(
                "GET",
                f"{self.API_URL}/athlete/activities",
                access_token=access_token,
                params={"page": page, "per_page": per_page},
            )
            if not data:
                break
            activities.extend(activity_from_payload(item) for item in data)
        logger.info(f"Fetched {len(activities)} activities from Strava")
        return activities
