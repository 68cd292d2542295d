"""In-memory per-chat rename state.

Holds, per chat, the activity that free-text replies resolve against and, per
(chat, activity), the last offered names plus the explicit RenameState.
Every method takes the store lock, so single operations are atomic from any
thread. Multi-step work on one key (look up options, commit, clear) must run
inside ``with store.lock(chat_id, activity_id):`` so the key has one writer.
"""

import threading
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Optional

from stravach.errors import OptionsNotFound
from stravach.logging_config import get_logger
from stravach.services.state_machine import RenameState, transition

logger = get_logger("conversation_state")


@dataclass
class _KeyState:
    state: RenameState = RenameState.IDLE
    options: Optional[list[str]] = None


@dataclass
class _KeyLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


@dataclass
class _ChatState:
    last_activity_id: Optional[int] = None
    keys: dict[int, _KeyState] = field(default_factory=dict)


class ConversationStateStore:
    def __init__(self):
        self._mutex = threading.Lock()
        self._chats: dict[int, _ChatState] = defaultdict(_ChatState)
        self._key_locks: dict[tuple[int, int], _KeyLock] = {}

    @contextmanager
    def lock(self, chat_id: int, activity_id: int) -> Iterator[None]:
        """Exclusive section for one key. The lock lives only while someone holds or waits on it."""
        key = (chat_id, activity_id)
        with self._mutex:
            key_lock = self._key_locks.setdefault(key, _KeyLock())
            key_lock.users += 1
        try:
            with key_lock.lock:
                yield
        finally:
            with self._mutex:
                key_lock.users -= 1
                if key_lock.users == 0:
                    del self._key_locks[key]

    def held_locks(self) -> int:
        with self._mutex:
            return len(self._key_locks)

    def _key(self, chat_id: int, activity_id: int) -> _KeyState:
        return self._chats[chat_id].keys.setdefault(activity_id, _KeyState())

    def set_options(self, chat_id: int, activity_id: int, options: list[str]) -> None:
        """Store a new batch of names; any older batch for the same activity is replaced."""
        with self._mutex:
            self._key(chat_id, activity_id).options = list(options)

    def get_options(self, chat_id: int, activity_id: int) -> list[str]:
        with self._mutex:
            chat = self._chats.get(chat_id)
            key = chat.keys.get(activity_id) if chat else None
            if key is None or not key.options:
                raise OptionsNotFound(f"No name options for activity {activity_id} in chat {chat_id}")
            return list(key.options)

    def clear(self, chat_id: int, activity_id: int) -> None:
        """Forget options for the activity and return it to idle."""
        with self._mutex:
            chat = self._chats.get(chat_id)
            if chat is None:
                return
            chat.keys.pop(activity_id, None)
            if chat.last_activity_id == activity_id:
                chat.last_activity_id = None
            if not chat.keys and chat.last_activity_id is None:
                del self._chats[chat_id]
        logger.debug(f"Cleared rename state: chat={chat_id}, activity={activity_id}")

    def set_last_activity(self, chat_id: int, activity_id: int) -> None:
        with self._mutex:
            previous = self._chats[chat_id].last_activity_id
            self._chats[chat_id].last_activity_id = activity_id
        if previous is not None and previous != activity_id:
            logger.debug(f"Chat {chat_id} switched free-text target {previous} -> {activity_id}")

    def get_last_activity(self, chat_id: int) -> Optional[int]:
        with self._mutex:
            chat = self._chats.get(chat_id)
            return chat.last_activity_id if chat else None

    def pop_last_activity(self, chat_id: int) -> Optional[int]:
        """Consume the free-text target so a single reply is used once."""
        with self._mutex:
            chat = self._chats.get(chat_id)
            if chat is None:
                return None
            activity_id = chat.last_activity_id
            chat.last_activity_id = None
            return activity_id

    def get_state(self, chat_id: int, activity_id: int) -> RenameState:
        with self._mutex:
            chat = self._chats.get(chat_id)
            key = chat.keys.get(activity_id) if chat else None
            return key.state if key else RenameState.IDLE

    def transition(self, chat_id: int, activity_id: int, to_state: RenameState) -> RenameState:
        """Move the key to `to_state`. Raises InvalidTransitionError on an illegal move."""
        with self._mutex:
            key = self._key(chat_id, activity_id)
            key.state = transition(key.state, to_state)
            return key.state
