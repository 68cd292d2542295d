from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from stravach.config import settings
from stravach.dependencies import get_ingestion, get_store, get_strava
from stravach.errors import ActivityNotFound, StravaError, UserNotFound
from stravach.main import app
from stravach.models import User, UserActivity
from stravach.services.strava_service import AuthData

EVENT = {
    "object_type": "activity",
    "object_id": 42,
    "aspect_type": "create",
    "owner_id": 555,
    "subscription_id": 1,
    "event_time": 1702000000,
    "updates": {},
}


@pytest.fixture
def overrides():
    ingestion = Mock()
    store = Mock()
    strava = Mock()
    app.dependency_overrides[get_ingestion] = lambda: ingestion
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_strava] = lambda: strava
    yield ingestion, store, strava
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


class TestHealth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}


class TestStravaWebhook:
    def test_verify(self, client, monkeypatch):
        monkeypatch.setattr(settings, "strava_verify_token", "secret")

        response = client.get(
            "/webhook", params={"hub.mode": "subscribe", "hub.verify_token": "secret", "hub.challenge": "abc"}
        )

        assert response.status_code == 200
        assert response.json() == {"hub.challenge": "abc"}

    def test_verify_wrong_token(self, client, monkeypatch):
        monkeypatch.setattr(settings, "strava_verify_token", "secret")

        response = client.get(
            "/webhook", params={"hub.mode": "subscribe", "hub.verify_token": "guess", "hub.challenge": "abc"}
        )

        assert response.status_code == 403

    def test_event_is_handed_to_ingestion(self, client, overrides):
        ingestion, _, _ = overrides
        ingestion.handle_event.return_value = True

        response = client.post("/webhook", json=EVENT)

        assert response.json() == {"success": True, "queued": True, "message": None}
        ingestion.handle_event.assert_called_once_with("activity", "create", 42, 555)

    def test_unknown_athlete_still_acknowledged(self, client, overrides):
        ingestion, _, _ = overrides
        ingestion.handle_event.side_effect = UserNotFound("No user for Strava athlete 555")

        response = client.post("/webhook", json=EVENT)

        assert response.status_code == 200
        assert response.json()["success"] is False

    def test_strava_failure_still_acknowledged(self, client, overrides):
        ingestion, _, _ = overrides
        ingestion.handle_event.side_effect = StravaError("Strava API error: 500", status_code=500)

        response = client.post("/webhook", json=EVENT)

        assert response.status_code == 200
        assert response.json()["message"] == "Strava API error: 500"


class TestActivityRoutes:
    def test_request_rename(self, client, overrides):
        ingestion, _, _ = overrides
        ingestion.request_rename.return_value = True

        response = client.post("/activity/42")

        assert response.status_code == 200
        assert response.json()["activity_id"] == 42
        ingestion.request_rename.assert_called_once_with(42)

    def test_request_rename_unknown_activity(self, client, overrides):
        ingestion, _, _ = overrides
        ingestion.request_rename.side_effect = ActivityNotFound("Activity 42 not found")

        assert client.post("/activity/42").status_code == 404

    def test_request_rename_queue_full(self, client, overrides):
        ingestion, _, _ = overrides
        ingestion.request_rename.return_value = False

        assert client.post("/activity/42").status_code == 503

    def test_list_activities(self, client, overrides):
        _, store, _ = overrides
        store.get_user_by_chat_id.return_value = User(id=1, telegram_chat_id=777)
        store.list_user_activities.return_value = [
            UserActivity(id=42, user_id=1, name="Dawn Patrol", activity_type="Run", renamed=True)
        ]

        body = client.get("/activities/777").json()

        assert body[0]["id"] == 42
        assert body[0]["name"] == "Dawn Patrol"
        assert body[0]["renamed"] is True
        store.list_user_activities.assert_called_once_with(1)

    def test_list_activities_unknown_chat(self, client, overrides):
        _, store, _ = overrides
        store.get_user_by_chat_id.side_effect = UserNotFound("No user for chat 777")

        assert client.get("/activities/777").status_code == 404


class TestAuthRoutes:
    def test_redirects_to_strava(self, client, overrides, monkeypatch):
        _, _, strava = overrides
        strava.authorize_url.return_value = "https://www.strava.com/oauth/authorize?client_id=123"
        monkeypatch.setattr(settings, "public_url", "https://bot.example.com")

        response = client.get("/auth/777", follow_redirects=False)

        assert response.status_code == 307
        assert response.headers["location"] == "https://www.strava.com/oauth/authorize?client_id=123"
        strava.authorize_url.assert_called_once_with("https://bot.example.com/auth-callback/777")

    def test_callback_stores_tokens(self, client, overrides):
        _, store, strava = overrides
        store.get_user_by_chat_id.return_value = User(id=1, telegram_chat_id=777, username="anonymous")
        strava.authorize.return_value = AuthData(
            access_token="a1", refresh_token="r1", expires_at=1702021600, athlete_id=555, username="ann_runs"
        )

        response = client.get("/auth-callback/777", params={"code": "code-1"})

        assert response.status_code == 200
        strava.authorize.assert_called_once_with("code-1")
        saved = store.update_user.call_args.args[0]
        assert saved.strava_id == 555
        assert saved.strava_access_token == "a1"
        assert saved.strava_refresh_token == "r1"
        assert saved.token_expires_at == 1702021600
        assert saved.username == "ann_runs"

    def test_callback_without_code(self, client, overrides):
        assert client.get("/auth-callback/777").status_code == 400

    def test_callback_strava_rejects_code(self, client, overrides):
        _, store, strava = overrides
        store.get_user_by_chat_id.return_value = User(id=1, telegram_chat_id=777)
        strava.authorize.side_effect = StravaError("Strava API error: 400", status_code=400)

        assert client.get("/auth-callback/777", params={"code": "bad"}).status_code == 502
        store.update_user.assert_not_called()
