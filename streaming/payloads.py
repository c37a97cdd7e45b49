"""
Pydantic models for push-channel payloads.
"""
import json
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, field_validator


class LogEventPayload(BaseModel):
    """``log`` event on logs/stream"""
    timestamp: datetime  # ISO-8601 string or epoch milliseconds
    level: str
    message: str

    @field_validator("timestamp", mode="before")
    @classmethod
    def _epoch_millis(cls, value):
        # The gateway's recent-logs endpoint and older builds send Date.now()
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        return value

    @field_validator("timestamp")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_validator("level")
    @classmethod
    def _lower_level(cls, value: str) -> str:
        return value.strip().lower()


class NotificationPayload(BaseModel):
    """``notification`` event on notifications/stream"""
    type: Optional[str] = None
    title: Optional[str] = None
    message: Optional[str] = None


def parse_log_event(data: str) -> LogEventPayload:
    """Decode a ``log`` event body

    Raises:
        ValueError: on invalid JSON or a payload that does not validate
            (pydantic's ValidationError is a ValueError)
    """
    return LogEventPayload.model_validate(json.loads(data))


def parse_notification_event(data: str) -> NotificationPayload:
    """Decode a ``notification`` event body

    Raises:
        ValueError: on invalid JSON or a payload that does not validate
    """
    return NotificationPayload.model_validate(json.loads(data))
