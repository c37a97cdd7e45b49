"""Data models for console notifications"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class NotificationType(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class NotificationDraft:
    """A notification before it is posted (no id or timestamp yet)"""
    type: NotificationType
    title: str
    message: str


@dataclass(frozen=True)
class NotificationItem:
    """A posted notification

    Attributes:
        id: Unique identifier, used to dismiss the item
        type: Severity
        title: Short heading
        message: Body text
        timestamp: Time the item was posted
    """
    id: str
    type: NotificationType
    title: str
    message: str
    timestamp: datetime
