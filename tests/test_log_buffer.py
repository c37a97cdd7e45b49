from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest

from logbuffer.buffer import LogBuffer, filter_entries
from logbuffer.export import default_export_name, export_csv, export_json, write_export
from logbuffer.models import LogEntry, LogFilter, LogLevel, parse_level

BASE = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def _entry(i: int, level: LogLevel = LogLevel.INFO, message: str | None = None) -> LogEntry:
    return LogEntry(timestamp=BASE + timedelta(seconds=i), level=level, message=message or f"line {i}")


def test_capacity_keeps_most_recent_in_order() -> None:
    buffer = LogBuffer(capacity=500)
    for i in range(730):
        buffer.accept(_entry(i))
        assert len(buffer) <= 500

    messages = [e.message for e in buffer.entries]
    assert messages == [f"line {i}" for i in range(230, 730)]


def test_paused_buffer_ignores_accept() -> None:
    buffer = LogBuffer(capacity=10)
    buffer.accept(_entry(1))
    buffer.pause()

    assert buffer.accept(_entry(2)) is False
    assert [e.message for e in buffer.entries] == ["line 1"]

    buffer.resume()
    assert buffer.accept(_entry(3)) is True
    assert len(buffer) == 2


def test_toggle_pause() -> None:
    buffer = LogBuffer()
    assert buffer.toggle_pause() is True
    assert buffer.paused
    assert buffer.toggle_pause() is False


@pytest.mark.parametrize("level", ["all", "info", "warn", "debug"])
def test_errors_only_ignores_level_filter(level: str) -> None:
    buffer = LogBuffer()
    levels = [LogLevel.INFO, LogLevel.ERROR, LogLevel.WARN, LogLevel.ERROR, LogLevel.SUCCESS]
    for i, lvl in enumerate(levels):
        buffer.accept(_entry(i, lvl))

    everything = buffer.query(LogFilter(level="all"))
    errors = buffer.query(LogFilter(level=level, errors_only=True))

    assert all(e.level == LogLevel.ERROR for e in errors)
    assert all(e in everything for e in errors)
    assert [e.message for e in errors] == ["line 1", "line 3"]


def test_level_filter() -> None:
    entries = [_entry(0, LogLevel.INFO), _entry(1, LogLevel.WARN)]
    assert filter_entries(entries, LogFilter(level=LogLevel.WARN)) == [entries[1]]
    assert filter_entries(entries, LogFilter(level="warn")) == [entries[1]]


def test_search_matches_message_or_level() -> None:
    entries = [
        _entry(0, LogLevel.INFO, "Request to gpt-4o"),
        _entry(1, LogLevel.ERROR, "upstream failed"),
        _entry(2, LogLevel.INFO, "nothing here"),
    ]
    assert filter_entries(entries, LogFilter(search="GPT")) == [entries[0]]
    assert filter_entries(entries, LogFilter(search="error")) == [entries[1]]


def test_blank_search_is_ignored() -> None:
    entries = [_entry(0), _entry(1)]
    assert filter_entries(entries, LogFilter(search="   ")) == entries


def test_date_bounds_are_inclusive() -> None:
    entries = [_entry(i) for i in range(5)]
    result = filter_entries(entries, LogFilter(date_from=BASE + timedelta(seconds=1), date_to=BASE + timedelta(seconds=3)))
    assert [e.message for e in result] == ["line 1", "line 2", "line 3"]


def test_no_filter_returns_everything() -> None:
    buffer = LogBuffer()
    buffer.replace([_entry(0), _entry(1)])
    assert len(buffer.query()) == 2
    buffer.clear()
    assert buffer.query() == []


def test_replace_keeps_newest_within_capacity() -> None:
    buffer = LogBuffer(capacity=3)
    buffer.replace(_entry(i) for i in range(5))
    assert [e.message for e in buffer.entries] == ["line 2", "line 3", "line 4"]


def test_from_payload_accepts_epoch_millis_and_aliases() -> None:
    entry = LogEntry.from_payload({"timestamp": 1714564800000, "level": "WARNING", "message": "slow"})
    assert entry.level == LogLevel.WARN
    assert entry.timestamp == datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def test_unknown_level_is_rejected() -> None:
    with pytest.raises(ValueError):
        parse_level("loud")
    with pytest.raises(ValueError):
        LogEntry.from_payload({"timestamp": "2024-05-01T12:00:00Z", "level": "loud", "message": "x"})


def test_export_json() -> None:
    data = json.loads(export_json([_entry(0, LogLevel.ERROR, "boom")]))
    assert data == [{"timestamp": "2024-05-01T12:00:00.000Z", "level": "error", "message": "boom"}]


def test_export_csv_quotes_messages() -> None:
    text = export_csv([_entry(0, LogLevel.INFO, 'said "hi", twice')])
    assert text.splitlines() == [
        "Timestamp,Level,Message",
        '2024-05-01T12:00:00.000Z,info,"said ""hi"", twice"',
    ]


def test_write_export(tmp_path) -> None:
    path = tmp_path / "out.csv"
    assert write_export([_entry(0), _entry(1)], path, "csv") == 2
    assert path.read_text(encoding="utf-8").startswith("Timestamp,Level,Message")
    with pytest.raises(ValueError):
        write_export([], tmp_path / "out.xml", "xml")


def test_default_export_name() -> None:
    assert default_export_name("json", now=BASE) == "gateway-logs-2024-05-01T12-00-00.json"
