"""Process-wide service instances, shared by routes and the rename worker."""

from functools import lru_cache

from stravach.config import settings
from stravach.database import SessionLocal
from stravach.services.activity_queue import ActivityQueue
from stravach.services.command_service import CommandService
from stravach.services.conversation_state import ConversationStateStore
from stravach.services.ingestion_service import IngestionService
from stravach.services.llm import OpenAIProvider
from stravach.services.name_service import NameSuggestionService
from stravach.services.rename_workflow import RenameWorkflow
from stravach.services.storage_service import SQLStore
from stravach.services.strava_service import StravaClient
from stravach.services.telegram_service import TelegramService
from stravach.services.token_guard import TokenGuard
from stravach.services.update_committer import UpdateCommitter


@lru_cache
def get_store() -> SQLStore:
    return SQLStore(SessionLocal)


@lru_cache
def get_strava() -> StravaClient:
    return StravaClient(
        settings.strava_client_id,
        settings.strava_client_secret,
        timeout_seconds=settings.strava_timeout_seconds,
        max_pages=settings.strava_max_pages,
    )


@lru_cache
def get_telegram() -> TelegramService:
    return TelegramService(settings.telegram_bot_token, timeout_seconds=settings.telegram_timeout_seconds)


@lru_cache
def get_name_service() -> NameSuggestionService:
    provider = OpenAIProvider(
        settings.llm_api_key,
        default_model=settings.llm_model,
        base_url=settings.llm_base_url,
        timeout_seconds=settings.llm_timeout_seconds,
    )
    return NameSuggestionService(
        provider,
        max_options=settings.max_name_options,
        timeout_seconds=settings.llm_timeout_seconds,
    )


@lru_cache
def get_token_guard() -> TokenGuard:
    return TokenGuard(get_strava(), get_store())


@lru_cache
def get_workflow() -> RenameWorkflow:
    store = get_store()
    token_guard = get_token_guard()
    return RenameWorkflow(
        store=store,
        state=ConversationStateStore(),
        queue=ActivityQueue(maxsize=settings.activity_queue_size, put_timeout=settings.enqueue_timeout_seconds),
        names=get_name_service(),
        telegram=get_telegram(),
        token_guard=token_guard,
        committer=UpdateCommitter(get_strava(), store, token_guard),
        default_language=settings.default_language,
    )


@lru_cache
def get_ingestion() -> IngestionService:
    return IngestionService(get_store(), get_strava(), get_token_guard(), get_workflow())


@lru_cache
def get_commands() -> CommandService:
    return CommandService(
        get_store(),
        get_telegram(),
        get_ingestion(),
        get_name_service(),
        public_url=settings.public_url,
        default_language=settings.default_language,
    )
