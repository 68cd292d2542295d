from unittest.mock import MagicMock, Mock

import httpx
import pytest

from stravach.errors import GenerationFailed
from stravach.models import UserActivity
from stravach.services.llm import LLMError, LLMResponse, OpenAIProvider
from stravach.services.name_service import NameSuggestionService, parse_names


def make_activity():
    return UserActivity(
        id=42, user_id=1, name="Morning Jog", activity_type="Run", distance=5230.0, elapsed_time=1800, renamed=False
    )


def make_service(content="Sunrise Sprint\nDawn Patrol", max_options=9):
    provider = Mock()
    provider.generate.return_value = LLMResponse(content=content, model="test-model")
    return NameSuggestionService(provider, max_options=max_options, timeout_seconds=5.0)


class TestParseNames:
    def test_plain_lines(self):
        assert parse_names("Sunrise Sprint\nDawn Patrol") == ["Sunrise Sprint", "Dawn Patrol"]

    def test_strips_list_markers(self):
        content = "1. Sunrise Sprint\n2) Dawn Patrol\n- Early Bird\n* Coffee Run\n--5-- Last Lap"
        assert parse_names(content) == ["Sunrise Sprint", "Dawn Patrol", "Early Bird", "Coffee Run", "Last Lap"]

    def test_strips_quotes_and_blank_lines(self):
        assert parse_names('"Sunrise Sprint"\n\n   \n"Dawn Patrol"') == ["Sunrise Sprint", "Dawn Patrol"]

    def test_deduplicates(self):
        assert parse_names("Dawn Patrol\n2. Dawn Patrol") == ["Dawn Patrol"]

    def test_caps_at_max_options(self):
        content = "\n".join(f"Name {chr(65 + i)}" for i in range(12))
        assert len(parse_names(content, max_options=9)) == 9

    def test_cleans_names(self):
        assert parse_names("🏃 Run #1 today") == ["Run 1 today"]


class TestGenerate:
    def test_returns_options(self):
        service = make_service()
        assert service.generate(make_activity(), "English") == ["Sunrise Sprint", "Dawn Patrol"]

    def test_prompt_contains_activity_details(self):
        service = make_service()
        service.generate(make_activity(), "German")

        messages = service.provider.generate.call_args.args[0]
        prompt = messages[-1]["content"]
        assert "Morning Jog" in prompt
        assert "Run" in prompt
        assert "5.2 km" in prompt
        assert "German" in prompt

    def test_passes_timeout(self):
        service = make_service()
        service.generate(make_activity(), "English")
        assert service.provider.generate.call_args.kwargs["timeout_seconds"] == 5.0

    def test_provider_error(self):
        service = make_service()
        service.provider.generate.side_effect = LLMError("LLM request timed out after 5.0s")
        with pytest.raises(GenerationFailed):
            service.generate(make_activity(), "English")

    def test_empty_completion(self):
        service = make_service(content="\n  \n")
        with pytest.raises(GenerationFailed):
            service.generate(make_activity(), "English")


class TestGenerateWithPrompt:
    def test_custom_prompt_is_included(self):
        service = make_service(content="Evening Run")
        names = service.generate_with_prompt(make_activity(), "English", "  evening run  ")

        prompt = service.provider.generate.call_args.args[0][-1]["content"]
        assert "'evening run'" in prompt
        assert names == ["Evening Run"]


class TestOpenAIProvider:
    def _client_returning(self, monkeypatch, response=None, error=None):
        client = MagicMock()
        client.__enter__.return_value = client
        client.__exit__.return_value = False
        if error:
            client.post.side_effect = error
        else:
            client.post.return_value = response
        monkeypatch.setattr(httpx, "Client", Mock(return_value=client))
        return client

    def test_parses_content(self, monkeypatch):
        response = Mock(status_code=200)
        response.json.return_value = {"model": "gpt-4o-mini", "choices": [{"message": {"content": "Dawn Patrol"}}]}
        client = self._client_returning(monkeypatch, response=response)

        provider = OpenAIProvider("key", base_url="https://llm.example.com/v1/")
        result = provider.generate([{"role": "user", "content": "hi"}])

        assert result.content == "Dawn Patrol"
        assert client.post.call_args.args[0] == "https://llm.example.com/v1/chat/completions"

    def test_timeout(self, monkeypatch):
        self._client_returning(monkeypatch, error=httpx.ReadTimeout("timed out"))
        with pytest.raises(LLMError):
            OpenAIProvider("key").generate([{"role": "user", "content": "hi"}], timeout_seconds=1.0)

    def test_non_200(self, monkeypatch):
        self._client_returning(monkeypatch, response=Mock(status_code=500, text="oops"))
        with pytest.raises(LLMError):
            OpenAIProvider("key").generate([{"role": "user", "content": "hi"}])

    def test_malformed_body(self, monkeypatch):
        response = Mock(status_code=200)
        response.json.return_value = {"choices": []}
        self._client_returning(monkeypatch, response=response)
        with pytest.raises(LLMError):
            OpenAIProvider("key").generate([{"role": "user", "content": "hi"}])
