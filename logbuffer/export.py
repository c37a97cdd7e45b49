"""JSON and CSV export of filtered log views"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from .models import LogEntry, format_timestamp

CSV_HEADER = "Timestamp,Level,Message"


def export_json(entries: Iterable[LogEntry]) -> str:
    return json.dumps([entry.to_dict() for entry in entries], indent=2)


def export_csv(entries: Iterable[LogEntry]) -> str:
    """Render entries as CSV; the message column is always quoted"""
    rows = [CSV_HEADER]
    for entry in entries:
        message = entry.message.replace('"', '""')
        rows.append(f'{format_timestamp(entry.timestamp)},{entry.level.value},"{message}"')
    return "\n".join(rows)


def default_export_name(extension: str, now: Optional[datetime] = None) -> str:
    """File name like ``gateway-logs-2024-05-01T10-20-30.csv``"""
    now = now or datetime.now(timezone.utc)
    stamp = now.astimezone(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S")
    return f"gateway-logs-{stamp}.{extension}"


def write_export(entries: Iterable[LogEntry], path: Path, fmt: str = "json") -> int:
    """Write entries to ``path`` in ``fmt`` ("json" or "csv")

    Returns:
        Number of entries written
    """
    entries = list(entries)
    if fmt == "json":
        text = export_json(entries)
    elif fmt == "csv":
        text = export_csv(entries)
    else:
        raise ValueError(f"Unsupported export format: {fmt}")
    path.write_text(text, encoding="utf-8")
    return len(entries)
