from __future__ import annotations

import asyncio
from typing import List

import httpx

from api.client import ConsoleAPIClient
from streaming.sse_parser import SSEEvent
from streaming.subscriber import StreamStatus, StreamSubscriber


def test_reconnects_after_failure_with_fixed_delay() -> None:
    attempts: List[int] = []
    received: List[str] = []

    async def source():
        attempts.append(len(attempts) + 1)
        if len(attempts) == 1:
            raise ConnectionError("gateway restarting")
        yield SSEEvent(event="connected", data="{}")
        yield SSEEvent(event="log", data="hello")
        await asyncio.sleep(10)

    subscriber = StreamSubscriber("logs", source, retry_delay=0.01)

    async def scenario() -> None:
        subscriber.open({"log": received.append})
        await asyncio.sleep(0.1)
        assert subscriber.connected
        subscriber.close()

    asyncio.run(scenario())
    assert received == ["hello"]
    assert subscriber.attempts == 2
    assert subscriber.status == StreamStatus.CLOSED


def test_open_transport_without_connected_event_is_not_live() -> None:
    async def source():
        yield SSEEvent(event="heartbeat", data="")
        await asyncio.sleep(10)

    subscriber = StreamSubscriber("logs", source, retry_delay=0.01)

    async def scenario() -> None:
        subscriber.open({})
        await asyncio.sleep(0.05)
        assert not subscriber.connected
        assert subscriber.status == StreamStatus.CONNECTING
        subscriber.close()

    asyncio.run(scenario())


def test_handler_failure_drops_only_that_event() -> None:
    received: List[str] = []

    def handler(data: str) -> None:
        if data == "bad":
            raise ValueError("malformed")
        received.append(data)

    async def source():
        yield SSEEvent(event="log", data="bad")
        yield SSEEvent(event="log", data="good")
        await asyncio.sleep(10)

    subscriber = StreamSubscriber("logs", source, retry_delay=0.01)

    async def scenario() -> None:
        subscriber.open({"log": handler})
        await asyncio.sleep(0.05)
        subscriber.close()

    asyncio.run(scenario())
    assert received == ["good"]
    assert subscriber.attempts == 1


def test_close_stops_reconnecting() -> None:
    async def source():
        raise ConnectionError("down")
        yield  # pragma: no cover

    subscriber = StreamSubscriber("logs", source, retry_delay=0.01)

    async def scenario() -> int:
        subscriber.open({})
        await asyncio.sleep(0.05)
        subscriber.close()
        seen = subscriber.attempts
        await asyncio.sleep(0.05)
        return seen

    seen = asyncio.run(scenario())
    assert seen >= 2
    assert subscriber.attempts == seen
    assert not subscriber.running


def test_events_from_gateway_stream() -> None:
    body = (
        b"event: connected\ndata: {}\n\n"
        b": heartbeat comment\n\n"
        b"event: log\ndata: {\"timestamp\": \"2024-05-01T12:00:00Z\", \"level\": \"info\", \"message\": \"hi\"}\n\n"
    )

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/logs/stream"
        assert request.headers["accept"] == "text/event-stream"
        return httpx.Response(200, content=body, headers={"content-type": "text/event-stream"})

    api = ConsoleAPIClient(base_url="http://gateway.test", transport=httpx.MockTransport(handler))

    async def scenario() -> List[SSEEvent]:
        return [event async for event in api.stream_events("/logs/stream")]

    events = asyncio.run(scenario())
    assert [e.event for e in events] == ["connected", "log"]
    assert '"message": "hi"' in events[1].data


def test_reopen_replaces_running_task_without_duplicate_dispatch() -> None:
    connections: List[asyncio.Queue] = []
    received: List[str] = []

    async def source():
        queue: asyncio.Queue = asyncio.Queue()
        connections.append(queue)
        yield SSEEvent(event="connected", data="{}")
        while True:
            yield await queue.get()

    subscriber = StreamSubscriber("logs", source, retry_delay=0.01)

    def stream_tasks() -> List[asyncio.Task]:
        return [t for t in asyncio.all_tasks() if t.get_name() == "stream:logs" and not t.done()]

    async def scenario() -> None:
        subscriber.open({"log": received.append})
        await asyncio.sleep(0.02)
        first = stream_tasks()
        subscriber.open({"log": received.append})
        await asyncio.sleep(0.02)
        assert len(stream_tasks()) == 1
        assert stream_tasks() != first
        for queue in connections:
            queue.put_nowait(SSEEvent(event="log", data="one"))
        await asyncio.sleep(0.02)
        subscriber.close()

    asyncio.run(scenario())
    assert received == ["one"]
    assert len(connections) == 2
