"""Push-channel ingestion: SSE parsing, payload models, reconnecting subscriber"""

from .sse_parser import SSEEvent, SSEParser
from .payloads import LogEventPayload, NotificationPayload, parse_log_event, parse_notification_event
from .subscriber import StreamSubscriber, StreamStatus, CONNECTED_EVENT

__all__ = [
    "SSEEvent",
    "SSEParser",
    "LogEventPayload",
    "NotificationPayload",
    "parse_log_event",
    "parse_notification_event",
    "StreamSubscriber",
    "StreamStatus",
    "CONNECTED_EVENT",
]
