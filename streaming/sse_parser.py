"""
Server-Sent Events (SSE) parser for the console push channels.
"""
from dataclasses import dataclass
from typing import List, Optional


@dataclass
class SSEEvent:
    """A dispatched Server-Sent Events frame."""
    event: str
    data: str
    id: Optional[str] = None
    retry: Optional[int] = None


class SSEParser:
    """Incremental parser for text/event-stream payloads.

    Frames without an ``event:`` field are dispatched as ``message``. A frame
    left incomplete when the stream ends is never dispatched.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self.last_event_id: Optional[str] = None
        self._reset_frame()

    def _reset_frame(self) -> None:
        self._event: Optional[str] = None
        self._data: List[str] = []
        self._retry: Optional[int] = None
        self._has_fields = False

    def feed(self, chunk: str) -> List[SSEEvent]:
        """Consume raw chunk text and return the frames it completed."""
        events: List[SSEEvent] = []
        if not chunk:
            return events

        self._buffer += chunk
        while True:
            newline_idx = self._buffer.find("\n")
            if newline_idx == -1:
                break

            line = self._buffer[:newline_idx]
            self._buffer = self._buffer[newline_idx + 1:]
            if line.endswith("\r"):
                line = line[:-1]

            if line == "":
                if self._has_fields:
                    events.append(SSEEvent(
                        event=self._event or "message",
                        data="\n".join(self._data),
                        id=self.last_event_id,
                        retry=self._retry,
                    ))
                self._reset_frame()
                continue

            if line.startswith(":"):
                # Comment / keep-alive
                continue

            field, sep, value = line.partition(":")
            if sep and value.startswith(" "):
                value = value[1:]
            self._apply_field(field, value)

        return events

    def _apply_field(self, field: str, value: str) -> None:
        if field == "event":
            self._event = value
        elif field == "data":
            self._data.append(value)
        elif field == "id":
            if "\0" not in value:
                self.last_event_id = value
        elif field == "retry":
            if value.isdigit():
                self._retry = int(value)
        else:
            # Unknown fields are ignored per the event-stream format
            return
        self._has_fields = True

    def reset(self) -> None:
        """Drop any partial frame, e.g. after the connection was lost."""
        self._buffer = ""
        self._reset_frame()
