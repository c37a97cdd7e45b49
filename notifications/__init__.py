"""Console notification mailbox"""

from .models import NotificationType, NotificationDraft, NotificationItem
from .center import NotificationCenter, draft_from_push

__all__ = [
    "NotificationType",
    "NotificationDraft",
    "NotificationItem",
    "NotificationCenter",
    "draft_from_push",
]
