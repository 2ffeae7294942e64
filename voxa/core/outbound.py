"""
Outbound channel to the host environment.

Everything the pipeline wants the host to do or know leaves through here as
a {"type": ..., "data": ...} message: window intents (open_window,
close_window, update_window, reorganize_windows, search, ...), per-call
lifecycle (task_started / task_completed / task_failed), batch_result and
conversational_reply.

Messages are handed to synchronous subscribers (a CLI printer, a test
recorder). A channel built with queued=True also puts them on an
asyncio.Queue for a consumer task; otherwise nothing is queued.
"""
import asyncio
from typing import Any, Callable, Dict, List, Optional

from voxa.core.logger import get_logger

Message = Dict[str, Any]
Subscriber = Callable[[Message], None]

LIFECYCLE_TYPES = ("task_started", "task_completed", "task_failed")


class OutboundChannel:
    """Queue + subscriber fan-out for outbound messages"""

    def __init__(self, queued: bool = False, maxsize: int = 0):
        self.queued = queued
        self._queue: "asyncio.Queue[Message]" = asyncio.Queue(maxsize=maxsize)
        self._subscribers: List[Subscriber] = []
        self.logger = get_logger()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a synchronous subscriber; returns an unsubscribe function"""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    async def publish(self, msg_type: str, data: Optional[Dict[str, Any]] = None) -> Message:
        """Notify subscribers, and queue the message when a consumer reads the queue"""
        message: Message = {"type": msg_type, "data": data or {}}
        if self.queued:
            await self._queue.put(message)
        for callback in list(self._subscribers):
            try:
                callback(message)
            except Exception as e:
                # A broken subscriber must not fail the dispatch that published
                self.logger.error(f"[DISPATCH] subscriber {callback!r} failed on {msg_type}: {e}")
        return message

    async def get(self) -> Message:
        return await self._queue.get()

    def get_nowait(self) -> Message:
        return self._queue.get_nowait()

    def drain(self) -> List[Message]:
        """Take every queued message without waiting"""
        drained = []
        while not self._queue.empty():
            drained.append(self._queue.get_nowait())
        return drained

    def qsize(self) -> int:
        return self._queue.qsize()
