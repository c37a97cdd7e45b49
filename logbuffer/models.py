"""Data models for the console log buffer"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union

from streaming.payloads import LogEventPayload


class LogLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    SUCCESS = "success"


# Spellings the gateway logger has used for the same levels
_LEVEL_ALIASES = {
    "warning": LogLevel.WARN,
    "fatal": LogLevel.ERROR,
    "trace": LogLevel.DEBUG,
    "log": LogLevel.INFO,
    "start": LogLevel.INFO,
    "ready": LogLevel.SUCCESS,
}


def parse_level(value: str) -> LogLevel:
    """Map a level name onto LogLevel

    Raises:
        ValueError: if the name is not a known level
    """
    name = value.strip().lower()
    if name in _LEVEL_ALIASES:
        return _LEVEL_ALIASES[name]
    return LogLevel(name)


@dataclass(frozen=True)
class LogEntry:
    """One gateway log line

    Attributes:
        timestamp: Timezone-aware time the line was emitted
        level: Severity
        message: Log text
    """
    timestamp: datetime
    level: LogLevel
    message: str

    @classmethod
    def from_payload(cls, payload: Union[LogEventPayload, Dict[str, Any]]) -> "LogEntry":
        """Build an entry from a push payload or a /logs/recent item

        Raises:
            ValueError: if the payload is malformed or the level is unknown
        """
        if not isinstance(payload, LogEventPayload):
            payload = LogEventPayload.model_validate(payload)
        return cls(
            timestamp=payload.timestamp,
            level=parse_level(payload.level),
            message=payload.message,
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "timestamp": format_timestamp(self.timestamp),
            "level": self.level.value,
            "message": self.message,
        }


def format_timestamp(value: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a ``Z`` suffix"""
    return (
        value.astimezone(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


@dataclass(frozen=True)
class LogFilter:
    """Criteria for LogBuffer.query

    Attributes:
        level: "all" or a LogLevel; ignored when errors_only is set
        errors_only: Keep only error entries
        search: Case-insensitive substring matched against message or level
        date_from: Inclusive lower bound
        date_to: Inclusive upper bound
    """
    level: Union[str, LogLevel] = "all"
    errors_only: bool = False
    search: str = ""
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
