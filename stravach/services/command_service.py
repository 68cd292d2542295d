import html
from typing import Optional, Tuple

from stravach.errors import CredentialRefreshFailed, GenerationFailed, StravaError, UserNotFound
from stravach.logging_config import get_logger
from stravach.models import UserActivity
from stravach.services.ingestion_service import IngestionService
from stravach.services.name_service import NameSuggestionService
from stravach.services.result import Result
from stravach.services.telegram_service import TelegramService

logger = get_logger("command_service")

AUTH_LINK_MESSAGE = 'Please authorize yourself in Strava: <a href="{link}">connect Strava</a>'
ACTIVITIES_REFRESHED_MESSAGE = "Activities are refreshed ({count} synced)."
REFRESH_FAILED_MESSAGE = "Failed to refresh activities. Please try again."
SET_LANGUAGE_USAGE = "Message should be /set_language Language"
LANGUAGE_SET_MESSAGE = "Your language was set to {language}"
TEST_PROMPT_USAGE = "Usage: /test_prompt &lt;type&gt; &lt;prompt&gt;"
NOT_REGISTERED_MESSAGE = "User not found. Please send /start first."
CREDENTIALS_MESSAGE = "Your Strava authorization has expired. Please send /start to connect again."
GENERATION_FAILED_MESSAGE = "Failed to generate names."


def parse_test_prompt_command(text: str) -> Optional[Tuple[str, str]]:
    """Split `/test_prompt <type> <prompt...>`; a fully double-quoted prompt is unquoted."""
    parts = text.split()
    if len(parts) < 3:
        return None

    activity_type = parts[1].lower()
    prompt = " ".join(parts[2:])
    if len(prompt) > 1 and prompt.startswith('"') and prompt.endswith('"'):
        prompt = prompt[1:-1]
    return activity_type, prompt


class CommandService:
    """Slash commands sent to the bot."""

    def __init__(
        self,
        store,
        telegram: TelegramService,
        ingestion: IngestionService,
        names: NameSuggestionService,
        public_url: str,
        default_language: str = "English",
    ):
        self.store = store
        self.telegram = telegram
        self.ingestion = ingestion
        self.names = names
        self.public_url = public_url.rstrip("/")
        self.default_language = default_language

    def handle(self, chat_id: int, text: str, username: Optional[str] = None) -> Result[Optional[str]]:
        command = text.split()[0].split("@")[0]
        handlers = {
            "/start": lambda: self.start(chat_id, username),
            "/refresh_activities": lambda: self.refresh_activities(chat_id),
            "/set_language": lambda: self.set_language(chat_id, text),
            "/test_prompt": lambda: self.test_prompt(chat_id, text),
        }
        handler = handlers.get(command)
        if handler is None:
            logger.debug(f"Unknown command {command} from chat {chat_id}")
            return Result.success(None)
        return handler()

    def start(self, chat_id: int, username: Optional[str] = None) -> Result[str]:
        if not self.store.user_exists(chat_id):
            self.store.create_user(chat_id, username)

        link = f"{self.public_url}/auth/{chat_id}"
        logger.info(f"Sending auth link to chat {chat_id}")
        self.telegram.send_message(chat_id, AUTH_LINK_MESSAGE.format(link=html.escape(link)))
        return Result.success(link)

    def refresh_activities(self, chat_id: int) -> Result[int]:
        try:
            user = self.store.get_user_by_chat_id(chat_id)
            count = self.ingestion.sync_activities(user)
        except UserNotFound as e:
            self.telegram.send_message(chat_id, NOT_REGISTERED_MESSAGE)
            return Result.from_error(e)
        except CredentialRefreshFailed as e:
            self.telegram.send_message(chat_id, CREDENTIALS_MESSAGE)
            return Result.from_error(e)
        except StravaError as e:
            logger.error(f"Refreshing activities failed for chat {chat_id}: {e.message}")
            self.telegram.send_message(chat_id, REFRESH_FAILED_MESSAGE)
            return Result.failure(e.message, "strava_error")

        self.telegram.send_message(chat_id, ACTIVITIES_REFRESHED_MESSAGE.format(count=count))
        return Result.success(count)

    def set_language(self, chat_id: int, text: str) -> Result[str]:
        parts = text.split()
        if len(parts) != 2:
            self.telegram.send_message(chat_id, SET_LANGUAGE_USAGE)
            return Result.failure("Bad /set_language usage", "usage")

        try:
            user = self.store.get_user_by_chat_id(chat_id)
        except UserNotFound as e:
            self.telegram.send_message(chat_id, NOT_REGISTERED_MESSAGE)
            return Result.from_error(e)

        user.language = parts[1]
        self.store.update_user(user)
        self.telegram.send_message(chat_id, LANGUAGE_SET_MESSAGE.format(language=html.escape(parts[1])))
        return Result.success(parts[1])

    def test_prompt(self, chat_id: int, text: str) -> Result[list[str]]:
        """Try a prompt against a throwaway activity; no buttons, no rename state."""
        parsed = parse_test_prompt_command(text)
        if parsed is None:
            self.telegram.send_message(chat_id, TEST_PROMPT_USAGE)
            return Result.failure("Bad /test_prompt usage", "usage")
        activity_type, prompt = parsed

        try:
            user = self.store.get_user_by_chat_id(chat_id)
        except UserNotFound as e:
            self.telegram.send_message(chat_id, NOT_REGISTERED_MESSAGE)
            return Result.from_error(e)

        activity = UserActivity(name="default", activity_type=activity_type, user_id=user.id)
        try:
            names = self.names.generate_with_prompt(activity, user.language or self.default_language, prompt)
        except GenerationFailed as e:
            self.telegram.send_message(chat_id, GENERATION_FAILED_MESSAGE)
            return Result.from_error(e)

        listing = "\n".join(f"{index}. {html.escape(name)}" for index, name in enumerate(names, start=1))
        self.telegram.send_message(chat_id, listing)
        return Result.success(names)
