"""Shared utilities for the gateway console"""

from .timers import TimerRegistry
from .debug_console import (
    DebugCapturingConsole,
    create_debug_console,
    setup_debug_logger,
)

__all__ = [
    "TimerRegistry",
    "DebugCapturingConsole",
    "create_debug_console",
    "setup_debug_logger",
]
