"""Bounded mailbox of console notifications"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from rich.console import Console

from settings import NOTIFICATION_CAPACITY
from streaming.payloads import NotificationPayload
from .models import NotificationDraft, NotificationItem, NotificationType

logger = logging.getLogger(__name__)


def _terminal_bell() -> None:
    Console(stderr=True).bell()


def draft_from_push(payload: NotificationPayload) -> NotificationDraft:
    """Turn a server push into a draft, filling the defaults the UI expects"""
    try:
        kind = NotificationType((payload.type or "info").lower())
    except ValueError:
        kind = NotificationType.INFO
    return NotificationDraft(
        type=kind,
        title=payload.title or "Notification",
        message=payload.message or "",
    )


class NotificationCenter:
    """Keeps the most recent notifications, oldest evicted first"""

    def __init__(
        self,
        capacity: Optional[int] = None,
        sound_enabled: bool = False,
        chime: Optional[Callable[[], None]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.capacity = NOTIFICATION_CAPACITY if capacity is None else capacity
        if self.capacity <= 0:
            raise ValueError("capacity must be positive")
        self.sound_enabled = sound_enabled
        self._chime = chime or _terminal_bell
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._items: List[NotificationItem] = []

    def __len__(self) -> int:
        return len(self._items)

    @property
    def items(self) -> Tuple[NotificationItem, ...]:
        return tuple(self._items)

    def post(self, draft: NotificationDraft) -> NotificationItem:
        item = NotificationItem(
            id=uuid.uuid4().hex,
            type=draft.type,
            title=draft.title,
            message=draft.message,
            timestamp=self._clock(),
        )
        self._items.append(item)
        if len(self._items) > self.capacity:
            del self._items[: len(self._items) - self.capacity]

        if self.sound_enabled:
            self._play_chime()
        return item

    def post_push(self, payload: NotificationPayload) -> NotificationItem:
        return self.post(draft_from_push(payload))

    def dismiss(self, notification_id: str) -> bool:
        """Remove an item; returns False if no item has that id"""
        for index, item in enumerate(self._items):
            if item.id == notification_id:
                del self._items[index]
                return True
        return False

    def clear(self) -> None:
        self._items.clear()

    def _play_chime(self) -> None:
        # Audible cue is best-effort only
        try:
            self._chime()
        except Exception as e:
            logger.debug(f"Notification chime failed: {e}")
