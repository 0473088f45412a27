"""In-memory thread store with append-only, timestamp-ordered message logs."""

import dataclasses
import logging
import time
import uuid
from collections.abc import Callable

from parley.errors import ThreadKindError, ThreadNotFoundError
from parley.models import Message, Thread, ThreadKind

logger = logging.getLogger(__name__)

AppendCallback = Callable[[Thread, Message], None]


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class MessageLog:
    """Threads and their message sequences.

    Timestamps are the ordering key: ``append`` stamps every message with a
    value strictly greater than the previous append on the same thread, even
    when the wall clock stalls or steps backwards.

    No locking happens here. Callers must route all appends for a thread
    through a single writer (the orchestrator's active operation).
    """

    def __init__(self, on_append: AppendCallback | None = None) -> None:
        self._threads: dict[str, Thread] = {}
        self._last_stamp: dict[str, int] = {}
        self._on_append = on_append

    def create_thread(
        self,
        name: str = "New Thread",
        kind: ThreadKind = ThreadKind.CHAT,
        thread_id: str | None = None,
    ) -> Thread:
        thread_id = thread_id or uuid.uuid4().hex
        if thread_id in self._threads:
            raise ValueError(f"Thread already exists: {thread_id}")
        now = _now_ms()
        thread = Thread(id=thread_id, name=name, kind=kind, created_at=now, updated_at=now)
        self._threads[thread_id] = thread
        logger.debug("Created %s thread %s", kind.value, thread_id)
        return thread

    def get_thread(self, thread_id: str) -> Thread:
        try:
            return self._threads[thread_id]
        except KeyError:
            raise ThreadNotFoundError(thread_id) from None

    def has_thread(self, thread_id: str) -> bool:
        return thread_id in self._threads

    def threads(self) -> list[Thread]:
        return list(self._threads.values())

    def delete_thread(self, thread_id: str) -> None:
        if self._threads.pop(thread_id, None) is not None:
            self._last_stamp.pop(thread_id, None)
            logger.debug("Deleted thread %s", thread_id)

    def _chat_thread(self, thread_id: str) -> Thread:
        thread = self.get_thread(thread_id)
        if thread.kind is not ThreadKind.CHAT:
            raise ThreadKindError(thread_id)
        return thread

    def append(self, thread_id: str, message: Message) -> Message:
        """Stamp and store ``message``; return the stored copy."""
        thread = self._chat_thread(thread_id)
        last = self._last_stamp.get(thread_id)
        if last is None and thread.messages:
            last = max(m.timestamp for m in thread.messages)
        stamp = _now_ms()
        if last is not None and stamp <= last:
            stamp = last + 1

        stored = dataclasses.replace(message, timestamp=stamp)
        thread.messages.append(stored)
        thread.updated_at = stamp
        self._last_stamp[thread_id] = stamp

        if self._on_append:
            self._on_append(thread, stored)
        return stored

    def remove_by_timestamp(self, thread_id: str, timestamp: int) -> bool:
        """Remove the message stamped ``timestamp``. Missing stamps are a no-op."""
        thread = self._chat_thread(thread_id)
        for index, message in enumerate(thread.messages):
            if message.timestamp == timestamp:
                del thread.messages[index]
                thread.updated_at = _now_ms()
                return True
        return False

    def list(self, thread_id: str) -> list[Message]:
        thread = self._chat_thread(thread_id)
        return sorted(thread.messages, key=lambda m: m.timestamp)

    def set_last_used_model(self, thread_id: str, model_id: str) -> None:
        self.get_thread(thread_id).last_used_model_id = model_id
