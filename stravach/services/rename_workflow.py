"""Rename workflow: activity event -> name suggestions in chat -> write-back.

Per (chat, activity) the flow is
idle -> suggestions_offered -> (awaiting_prompt | committing) -> idle.
Suggestions are produced only by the queue consumer (`run_once` / `process`),
one item at a time. Button taps and free text arrive on request threads and
go through `handle_callback` / `handle_text`.
"""

from typing import Optional

from stravach.errors import (
    ActivityNotFound,
    CredentialRefreshFailed,
    GenerationFailed,
    InvalidCallback,
    OptionsNotFound,
    PartialSyncFailure,
    RenameError,
    UpstreamWriteFailed,
    UserNotFound,
)
from stravach.logging_config import chat_logger, get_logger
from stravach.models import UserActivity
from stravach.services.activity_queue import ActivityForUpdate, ActivityQueue, UpdateSource
from stravach.services.callback_codec import CallbackAction, decode_callback
from stravach.services.conversation_state import ConversationStateStore
from stravach.services.name_service import NameSuggestionService
from stravach.services.result import Result
from stravach.services.state_machine import RenameState
from stravach.services.telegram_service import TelegramService, build_name_buttons, format_names_message
from stravach.services.token_guard import TokenGuard
from stravach.services.update_committer import UpdateCommitter

logger = get_logger("rename_workflow")

RENAMED_MESSAGE = "✅ Activity renamed to <b>{name}</b>"
INVALID_SELECTION_MESSAGE = "That option is not available. Please tap 🔄 Regenerate for a fresh list."
NO_LONGER_AVAILABLE_MESSAGE = "These names are no longer available. Please tap 🔄 Regenerate."
INVALID_CALLBACK_MESSAGE = "This button is no longer valid. Please regenerate the names."
GENERATION_FAILED_MESSAGE = "I couldn't come up with names this time. Tap 🔄 Regenerate to try again."
CREDENTIALS_MESSAGE = "Your Strava authorization has expired. Please send /start to connect again."
UPSTREAM_FAILED_MESSAGE = "Strava did not accept the new name. Nothing was changed, you can pick again."
PARTIAL_SYNC_MESSAGE = (
    "The name was updated on Strava, but I couldn't save it locally. "
    "Please run /refresh_activities, no need to rename again."
)
NOT_REGISTERED_MESSAGE = "I don't know you yet. Please send /start first."
ACTIVITY_MISSING_MESSAGE = "I can't find this activity anymore. Try /refresh_activities."
PROMPT_REQUEST_MESSAGE = "Please enter your custom prompt for generating activity names:"
PROMPT_ACCEPTED_MESSAGE = "Got it, generating names for your prompt…"
BUSY_MESSAGE = "I'm busy with other activities right now. Please try again in a minute."


class RenameWorkflow:
    def __init__(
        self,
        store,
        state: ConversationStateStore,
        queue: ActivityQueue,
        names: NameSuggestionService,
        telegram: TelegramService,
        token_guard: TokenGuard,
        committer: UpdateCommitter,
        default_language: str = "English",
    ):
        self.store = store
        self.state = state
        self.queue = queue
        self.names = names
        self.telegram = telegram
        self.token_guard = token_guard
        self.committer = committer
        self.default_language = default_language

    # Producers

    def submit(self, activity: UserActivity, chat_id: int) -> bool:
        """Ingestion entry point. Renamed or already offered activities are not offered again."""
        if activity.renamed:
            logger.info(f"Activity {activity.id} already renamed, not offering names")
            return False
        if self.state.get_state(chat_id, activity.id) != RenameState.IDLE:
            logger.info(f"Activity {activity.id} already has names offered in chat {chat_id}")
            return False
        return self.queue.offer(ActivityForUpdate(activity=activity, chat_id=chat_id, source=UpdateSource.INGEST))

    def request_rename(self, activity: UserActivity, chat_id: int) -> bool:
        """Explicit user request; bypasses the renamed guard."""
        return self.queue.offer(ActivityForUpdate(activity=activity, chat_id=chat_id, source=UpdateSource.USER))

    # Consumer

    def run_once(self, timeout: float = 1.0) -> bool:
        """Process at most one queued item. Returns False if the queue stayed empty."""
        item = self.queue.take(timeout=timeout)
        if item is None:
            return False
        try:
            self.process(item)
        except Exception as e:
            logger.error(
                "Rename worker failed to process item",
                extra={"context": {"activity_id": item.activity.id, "chat_id": item.chat_id, "error": str(e)}},
                exc_info=True,
            )
            self._drop_prompt(item)
        finally:
            self.queue.task_done(item)
        return True

    def process(self, item: ActivityForUpdate) -> Result[list[str]]:
        """Generate names for one item and offer them in the chat."""
        log = chat_logger("rename_workflow", item.chat_id)
        activity = self._fresh_activity(item.activity)

        if item.source == UpdateSource.INGEST and activity.renamed:
            log.info(f"Activity {activity.id} was renamed while queued, skipping")
            return Result.failure("Activity already renamed", "already_renamed")

        try:
            user = self.store.get_user_by_chat_id(item.chat_id)
            self.token_guard.ensure_valid_token(user)
            language = user.language or self.default_language
            if item.custom_prompt:
                options = self.names.generate_with_prompt(activity, language, item.custom_prompt)
            else:
                options = self.names.generate(activity, language)
        except UserNotFound as e:
            self._drop_prompt(item)
            self.telegram.send_message(item.chat_id, NOT_REGISTERED_MESSAGE)
            return Result.from_error(e)
        except CredentialRefreshFailed as e:
            log.warning(f"Cannot offer names for activity {activity.id}: {e.message}")
            self._drop_prompt(item)
            self.telegram.send_message(item.chat_id, CREDENTIALS_MESSAGE)
            return Result.from_error(e)
        except GenerationFailed as e:
            log.warning(f"Name generation failed for activity {activity.id}: {e.message}")
            self._drop_prompt(item)
            self.telegram.send_message(
                item.chat_id, GENERATION_FAILED_MESSAGE, reply_markup=build_name_buttons(activity.id, 0)
            )
            return Result.from_error(e)

        with self.state.lock(item.chat_id, activity.id):
            self.state.set_options(item.chat_id, activity.id, options)
            self.state.transition(item.chat_id, activity.id, RenameState.SUGGESTIONS_OFFERED)

        response = self.telegram.send_message(
            item.chat_id,
            format_names_message(activity.name, options),
            reply_markup=build_name_buttons(activity.id, len(options)),
        )
        if not response.get("ok"):
            log.error(f"Failed to send names for activity {activity.id}")

        log.info(
            "Names offered",
            context={"activity_id": activity.id, "count": len(options), "source": item.source.value},
        )
        return Result.success(options)

    def _fresh_activity(self, snapshot: UserActivity) -> UserActivity:
        try:
            return self.store.get_activity(snapshot.id)
        except ActivityNotFound:
            return snapshot

    def _drop_prompt(self, item: ActivityForUpdate) -> None:
        """A custom prompt that produced no names must not leave the key waiting for text."""
        if not item.custom_prompt:
            return
        chat_id, activity_id = item.key
        with self.state.lock(chat_id, activity_id):
            if self.state.get_state(chat_id, activity_id) != RenameState.AWAITING_PROMPT:
                return
            if self.state.get_last_activity(chat_id) == activity_id:
                # The user already asked for another prompt on this activity
                return
            self._release_prompt(chat_id, activity_id)

    # Inbound chat events

    def handle_callback(self, chat_id: int, data: Optional[str], callback_query_id: Optional[str] = None) -> Result:
        try:
            payload = decode_callback(data)
        except InvalidCallback as e:
            logger.info(f"Ignoring invalid callback from chat {chat_id}: {e.message}")
            self._answer(callback_query_id)
            self.telegram.send_message(chat_id, INVALID_CALLBACK_MESSAGE)
            return Result.from_error(e)

        if payload.action == CallbackAction.REGENERATE:
            result = self._regenerate(chat_id, payload.activity_id)
        elif payload.action == CallbackAction.CUSTOM_PROMPT:
            result = self._request_prompt(chat_id, payload.activity_id)
        else:
            result = self._select(chat_id, payload.activity_id, payload.action)

        self._answer(callback_query_id, "Done" if result.ok else None)
        return result

    def handle_text(self, chat_id: int, text: str) -> Result[Optional[str]]:
        """Treat free text as a custom prompt when the chat asked for one; otherwise ignore it."""
        if not text or text.startswith("/"):
            return Result.success(None)

        activity_id = self.state.pop_last_activity(chat_id)
        if activity_id is None:
            return Result.success(None)

        try:
            activity = self.store.get_activity(activity_id)
        except ActivityNotFound as e:
            self.telegram.send_message(chat_id, ACTIVITY_MISSING_MESSAGE)
            return Result.from_error(e)

        item = ActivityForUpdate(activity=activity, chat_id=chat_id, source=UpdateSource.USER, custom_prompt=text)
        if not self.queue.offer(item):
            self.state.set_last_activity(chat_id, activity_id)
            self.telegram.send_message(chat_id, BUSY_MESSAGE)
            return Result.failure("Activity queue is full", "queue_full")

        self.telegram.send_message(chat_id, PROMPT_ACCEPTED_MESSAGE)
        return Result.success(text)

    def _select(self, chat_id: int, activity_id: int, index: int) -> Result[str]:
        with self.state.lock(chat_id, activity_id):
            try:
                options = self.state.get_options(chat_id, activity_id)
            except OptionsNotFound as e:
                self.telegram.send_message(chat_id, NO_LONGER_AVAILABLE_MESSAGE)
                return Result.from_error(e)

            if not 1 <= index <= len(options):
                logger.info(f"Chat {chat_id} picked option {index} of {len(options)} for activity {activity_id}")
                self.telegram.send_message(chat_id, INVALID_SELECTION_MESSAGE)
                return Result.failure(f"Option {index} is out of range", "invalid_selection")

            name = options[index - 1]
            self.state.transition(chat_id, activity_id, RenameState.COMMITTING)
            try:
                activity = self.committer.commit(chat_id, activity_id, name)
            except PartialSyncFailure as e:
                self._finish(chat_id, activity_id)
                self.telegram.send_message(chat_id, PARTIAL_SYNC_MESSAGE)
                return Result.from_error(e)
            except (UpstreamWriteFailed, CredentialRefreshFailed) as e:
                self.state.transition(chat_id, activity_id, RenameState.SUGGESTIONS_OFFERED)
                message = CREDENTIALS_MESSAGE if isinstance(e, CredentialRefreshFailed) else UPSTREAM_FAILED_MESSAGE
                self.telegram.send_message(chat_id, message)
                return Result.from_error(e)
            except RenameError as e:
                self._finish(chat_id, activity_id)
                return self._reject(chat_id, e)
            except Exception:
                self.state.transition(chat_id, activity_id, RenameState.SUGGESTIONS_OFFERED)
                raise

            self._finish(chat_id, activity_id)

        self.telegram.send_message(chat_id, RENAMED_MESSAGE.format(name=activity.name))
        return Result.success(activity.name)

    def _finish(self, chat_id: int, activity_id: int) -> None:
        self.state.transition(chat_id, activity_id, RenameState.IDLE)
        self.state.clear(chat_id, activity_id)

    def _owned_activity(self, chat_id: int, activity_id: int) -> UserActivity:
        activity = self.store.get_activity(activity_id)
        user = self.store.get_user_by_chat_id(chat_id)
        if activity.user_id != user.id:
            raise InvalidCallback(f"Activity {activity_id} does not belong to chat {chat_id}")
        return activity

    def _regenerate(self, chat_id: int, activity_id: int) -> Result[str]:
        try:
            activity = self._owned_activity(chat_id, activity_id)
        except RenameError as e:
            return self._reject(chat_id, e)

        if not self.request_rename(activity, chat_id):
            self.telegram.send_message(chat_id, BUSY_MESSAGE)
            return Result.failure("Activity queue is full", "queue_full")
        return Result.success("regenerate")

    def _request_prompt(self, chat_id: int, activity_id: int) -> Result[str]:
        try:
            self._owned_activity(chat_id, activity_id)
        except RenameError as e:
            return self._reject(chat_id, e)

        previous = self.state.get_last_activity(chat_id)
        if previous is not None and previous != activity_id:
            with self.state.lock(chat_id, previous):
                if self.state.get_state(chat_id, previous) == RenameState.AWAITING_PROMPT:
                    self._release_prompt(chat_id, previous)

        with self.state.lock(chat_id, activity_id):
            self.state.set_last_activity(chat_id, activity_id)
            self.state.transition(chat_id, activity_id, RenameState.AWAITING_PROMPT)

        self.telegram.send_message(chat_id, PROMPT_REQUEST_MESSAGE)
        return Result.success("custom_prompt")

    def _release_prompt(self, chat_id: int, activity_id: int) -> None:
        """A newer activity took over free text; fall back to the buttons already sent, if any."""
        try:
            self.state.get_options(chat_id, activity_id)
        except OptionsNotFound:
            self._finish(chat_id, activity_id)
            return
        self.state.transition(chat_id, activity_id, RenameState.SUGGESTIONS_OFFERED)

    def _reject(self, chat_id: int, error: RenameError) -> Result:
        if isinstance(error, UserNotFound):
            message = NOT_REGISTERED_MESSAGE
        elif isinstance(error, ActivityNotFound):
            message = ACTIVITY_MISSING_MESSAGE
        else:
            message = INVALID_CALLBACK_MESSAGE
        logger.info(f"Rejected callback from chat {chat_id}: {error.message}")
        self.telegram.send_message(chat_id, message)
        return Result.from_error(error)

    def _answer(self, callback_query_id: Optional[str], text: Optional[str] = None) -> None:
        if callback_query_id:
            self.telegram.answer_callback_query(callback_query_id, text)
