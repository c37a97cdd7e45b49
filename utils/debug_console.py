"""Rich console that mirrors what it prints into the debug log

With ``--debug`` the CLI writes everything the operator sees, as plain text,
to the same file the runtime loggers write to, so a session can be replayed
from one file.
"""

import io
import logging
import re
from typing import Optional

from rich.console import Console as RichConsole

from settings import DEBUG_LOG_FILE

ANSI_ESCAPE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")

DEBUG_LOGGER_NAME = "console_debug"


class DebugCapturingConsole(RichConsole):
    """Console that also logs a markup-free copy of each ``print``"""

    def __init__(self, debug_logger: Optional[logging.Logger] = None, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.debug_logger = debug_logger
        self._log_prefix = "[CONSOLE] "

    def print(self, *objects, **kwargs):
        super().print(*objects, **kwargs)

        if self.debug_logger and self.debug_logger.isEnabledFor(logging.DEBUG):
            plain_text = self._render_to_plain_text(*objects, **kwargs)
            if plain_text.strip():
                self.debug_logger.debug(f"{self._log_prefix}{plain_text}")

    def _render_to_plain_text(self, *objects, **kwargs) -> str:
        buffer = io.StringIO()
        capture = RichConsole(
            file=buffer,
            force_terminal=False,
            width=self.width,
            legacy_windows=False,
        )
        capture.print(*objects, **kwargs)
        return ANSI_ESCAPE.sub("", buffer.getvalue()).rstrip()


def create_debug_console(debug_enabled: bool = False,
                         debug_logger: Optional[logging.Logger] = None) -> RichConsole:
    """DebugCapturingConsole in debug mode, a plain rich Console otherwise"""
    if debug_enabled and debug_logger:
        return DebugCapturingConsole(debug_logger=debug_logger)
    return RichConsole()


def setup_debug_logger(log_file: str = DEBUG_LOG_FILE) -> logging.Logger:
    """Send console output and every runtime logger to ``log_file``

    Args:
        log_file: Path of the debug log, opened in append mode

    Returns:
        The logger used for captured console output
    """
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)

    debug_logger = logging.getLogger(DEBUG_LOGGER_NAME)
    debug_logger.setLevel(logging.DEBUG)
    for handler in debug_logger.handlers[:]:
        debug_logger.removeHandler(handler)
    debug_logger.addHandler(file_handler)
    # Root gets the same handler; stop here to avoid writing console lines twice
    debug_logger.propagate = False

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    root.addHandler(file_handler)

    # httpx logs every request at INFO; keep the file readable
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    return debug_logger
