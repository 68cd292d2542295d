import queue
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from stravach.logging_config import get_logger
from stravach.models import UserActivity

logger = get_logger("activity_queue")


class UpdateSource(str, Enum):
    INGEST = "ingest"  # webhook / sync, subject to the renamed guard
    USER = "user"  # regenerate, custom prompt, manual request


@dataclass
class ActivityForUpdate:
    activity: UserActivity
    chat_id: int
    source: UpdateSource = UpdateSource.INGEST
    custom_prompt: Optional[str] = None

    @property
    def key(self) -> tuple[int, int]:
        return self.chat_id, self.activity.id


class ActivityQueue:
    """Bounded hand-off between producers and the single rename consumer.

    Producers wait up to `put_timeout` for room, then the item is dropped with
    a warning. An ingested item counts as pending from `offer` until the
    consumer calls `task_done(item)`, and a pending item is not queued twice.
    """

    def __init__(self, maxsize: int = 100, put_timeout: float = 2.0):
        self._queue: queue.Queue[ActivityForUpdate] = queue.Queue(maxsize=maxsize)
        self._put_timeout = put_timeout
        self._pending_ingest: set[tuple[int, int]] = set()
        self._lock = threading.Lock()

    def offer(self, item: ActivityForUpdate) -> bool:
        """Enqueue `item`. Returns False if it was a duplicate or the queue stayed full."""
        is_ingest = item.source == UpdateSource.INGEST
        if is_ingest:
            with self._lock:
                if item.key in self._pending_ingest:
                    logger.info(f"Activity {item.activity.id} already queued for chat {item.chat_id}, skipping")
                    return False
                self._pending_ingest.add(item.key)

        try:
            self._queue.put(item, timeout=self._put_timeout)
        except queue.Full:
            if is_ingest:
                with self._lock:
                    self._pending_ingest.discard(item.key)
            logger.warning(
                "Activity queue full, dropping item",
                extra={"context": {"activity_id": item.activity.id, "chat_id": item.chat_id, "source": item.source}},
            )
            return False
        return True

    def take(self, timeout: float = 1.0) -> Optional[ActivityForUpdate]:
        """Block up to `timeout` for the next item. Returns None when idle."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def task_done(self, item: ActivityForUpdate) -> None:
        """Mark a taken item as processed; its ingest key may be queued again."""
        if item.source == UpdateSource.INGEST:
            with self._lock:
                self._pending_ingest.discard(item.key)
        self._queue.task_done()

    def qsize(self) -> int:
        return self._queue.qsize()
