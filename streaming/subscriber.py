"""Reconnecting consumer for a server-sent event channel"""

import asyncio
import logging
from enum import Enum
from typing import AsyncIterator, Callable, Dict, Optional

from settings import STREAM_RETRY_DELAY
from .sse_parser import SSEEvent

logger = logging.getLogger(__name__)

CONNECTED_EVENT = "connected"

EventSource = Callable[[], AsyncIterator[SSEEvent]]
EventHandler = Callable[[str], None]


class StreamStatus(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    RETRY_SCHEDULED = "retry_scheduled"
    CLOSED = "closed"


class StreamSubscriber:
    """Keeps one push channel alive until closed

    The subscriber runs a single asyncio task: connect, read until the stream
    ends or fails, wait ``retry_delay`` seconds, connect again. The delay is
    constant and there is no retry limit. Only the server's ``connected``
    event marks the channel as live; an open transport that has not sent it
    is still reported as disconnected.

    Nothing is ever raised to the caller. Transport failures go into the
    retry loop, handler failures are logged and the event is dropped.
    """

    def __init__(self, name: str, source: EventSource, retry_delay: Optional[float] = None):
        """
        Args:
            name: Channel name used in log messages (e.g. "logs")
            source: Zero-argument callable returning an async iterator of
                    events for one connection attempt
            retry_delay: Seconds between reconnect attempts
        """
        self.name = name
        self._source = source
        self.retry_delay = STREAM_RETRY_DELAY if retry_delay is None else retry_delay
        self.status = StreamStatus.IDLE
        self.attempts = 0
        self._handlers: Dict[str, EventHandler] = {}
        self._task: Optional[asyncio.Task] = None
        self._closed = True

    @property
    def connected(self) -> bool:
        return self.status == StreamStatus.OPEN

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def open(self, handlers: Dict[str, EventHandler]) -> None:
        """Start consuming the channel; must be called from a running event loop

        An already running subscription is closed first so handlers are
        never attached twice.
        """
        if self._task is not None:
            self.close()
        self._handlers = dict(handlers)
        self._closed = False
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name=f"stream:{self.name}"
        )

    def close(self) -> None:
        """Stop the subscription. Safe to call repeatedly."""
        self._closed = True
        self._handlers = {}
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
        if self.status != StreamStatus.CLOSED and task is not None:
            logger.info(f"[{self.name}] stream closed")
        self.status = StreamStatus.CLOSED

    async def _run(self) -> None:
        while not self._closed:
            self.status = StreamStatus.CONNECTING
            self.attempts += 1
            try:
                async for event in self._source():
                    if self._closed:
                        return
                    self._dispatch(event)
                logger.info(f"[{self.name}] stream ended by server")
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(f"[{self.name}] stream error: {e}")

            if self._closed:
                return
            self.status = StreamStatus.RETRY_SCHEDULED
            logger.info(f"[{self.name}] reconnecting in {self.retry_delay}s")
            await asyncio.sleep(self.retry_delay)

    def _dispatch(self, event: SSEEvent) -> None:
        if event.event == CONNECTED_EVENT:
            if self.status != StreamStatus.OPEN:
                logger.info(f"[{self.name}] stream connected")
            self.status = StreamStatus.OPEN

        handler = self._handlers.get(event.event)
        if handler is None:
            return
        try:
            handler(event.data)
        except Exception as e:
            logger.debug(f"[{self.name}] dropped {event.event} event: {e}")
