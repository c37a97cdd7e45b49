"""Bounded log buffer, filter pipeline and exports"""

from .models import LogEntry, LogFilter, LogLevel, parse_level, format_timestamp
from .buffer import LogBuffer, filter_entries
from .export import export_json, export_csv, write_export, default_export_name

__all__ = [
    "LogEntry",
    "LogFilter",
    "LogLevel",
    "parse_level",
    "format_timestamp",
    "LogBuffer",
    "filter_entries",
    "export_json",
    "export_csv",
    "write_export",
    "default_export_name",
]
