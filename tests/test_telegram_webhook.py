from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from stravach.dependencies import get_commands, get_workflow
from stravach.main import app
from stravach.schemas.telegram import TelegramCallbackQuery, TelegramUpdate
from stravach.services.result import Result

MESSAGE_UPDATE = {
    "update_id": 1,
    "message": {
        "message_id": 100,
        "date": 1702000000,
        "chat": {"id": 777, "type": "private"},
        "from": {"id": 777, "is_bot": False, "first_name": "Ann", "username": "ann_runs"},
        "text": "golden hour",
    },
}

CALLBACK_UPDATE = {
    "update_id": 2,
    "callback_query": {
        "id": "cq-1",
        "from": {"id": 777, "is_bot": False, "first_name": "Ann"},
        "message": {"message_id": 101, "date": 1702000000, "chat": {"id": 777, "type": "private"}},
        "data": "activity:42:2",
    },
}


@pytest.fixture
def services():
    workflow = Mock()
    workflow.handle_callback.return_value = Result.success("Dawn Patrol")
    workflow.handle_text.return_value = Result.success("golden hour")
    commands = Mock()
    commands.handle.return_value = Result.success("https://bot.example.com/auth/777")
    app.dependency_overrides[get_workflow] = lambda: workflow
    app.dependency_overrides[get_commands] = lambda: commands
    yield workflow, commands
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


class TestTelegramSchemas:
    def test_callback_query_chat_from_message(self):
        callback = TelegramCallbackQuery(**CALLBACK_UPDATE["callback_query"])
        assert callback.chat_id == 777
        assert callback.from_user.first_name == "Ann"

    def test_callback_query_chat_falls_back_to_user(self):
        callback = TelegramCallbackQuery(id="cq-1", data="activity:42:0", **{"from": {"id": 555, "first_name": "Bo"}})
        assert callback.chat_id == 555

    def test_parse_message_update(self):
        update = TelegramUpdate(**MESSAGE_UPDATE)
        assert update.message.from_user.username == "ann_runs"
        assert update.callback_query is None


class TestTelegramWebhook:
    def test_callback_goes_to_workflow(self, client, services):
        workflow, commands = services

        response = client.post("/telegram-webhook", json=CALLBACK_UPDATE)

        assert response.status_code == 200
        assert response.json()["success"] is True
        workflow.handle_callback.assert_called_once_with(777, "activity:42:2", "cq-1")
        commands.handle.assert_not_called()

    def test_text_goes_to_workflow(self, client, services):
        workflow, commands = services

        client.post("/telegram-webhook", json=MESSAGE_UPDATE)

        workflow.handle_text.assert_called_once_with(777, "golden hour")
        commands.handle.assert_not_called()

    def test_command_goes_to_command_service(self, client, services):
        workflow, commands = services
        update = {**MESSAGE_UPDATE, "message": {**MESSAGE_UPDATE["message"], "text": "/start"}}

        client.post("/telegram-webhook", json=update)

        commands.handle.assert_called_once_with(777, "/start", "ann_runs")
        workflow.handle_text.assert_not_called()

    def test_failure_is_reported(self, client, services):
        workflow, _ = services
        workflow.handle_callback.return_value = Result.failure("Option 5 is out of range", "invalid_selection")

        body = client.post("/telegram-webhook", json=CALLBACK_UPDATE).json()

        assert body["success"] is False
        assert body["error_code"] == "invalid_selection"

    def test_bot_messages_ignored(self, client, services):
        workflow, _ = services
        message = {**MESSAGE_UPDATE["message"], "from": {"id": 1, "is_bot": True, "first_name": "Bot"}}

        body = client.post("/telegram-webhook", json={**MESSAGE_UPDATE, "message": message}).json()

        assert body["success"] is True
        workflow.handle_text.assert_not_called()

    def test_update_without_content(self, client, services):
        body = client.post("/telegram-webhook", json={"update_id": 3}).json()
        assert body == {"success": True, "message": "No actionable content", "error_code": None}

    def test_unexpected_error_returns_200(self, client, services):
        workflow, _ = services
        workflow.handle_callback.side_effect = RuntimeError("boom")

        response = client.post("/telegram-webhook", json=CALLBACK_UPDATE)

        assert response.status_code == 200
        assert response.json()["success"] is False

    def test_invalid_payload(self, client, services):
        response = client.post(
            "/telegram-webhook", content=b"not json", headers={"Content-Type": "application/json"}
        )
        assert response.json()["success"] is False
