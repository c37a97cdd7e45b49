"""Debug console setup for CLI"""

from rich.console import Console

from settings import DEBUG_LOG_FILE
from utils.debug_console import create_debug_console, setup_debug_logger


def setup_debug_console(debug: bool, base_url: str) -> Console:
    """
    Setup debug console based on debug mode

    Args:
        debug: Whether debug mode is enabled
        base_url: Gateway the CLI talks to

    Returns:
        Console instance (either regular or debug-enabled)
    """
    if not debug:
        return Console()

    debug_logger = setup_debug_logger(DEBUG_LOG_FILE)
    console = create_debug_console(debug_enabled=True, debug_logger=debug_logger)
    debug_logger.debug("[CLI] ===== CLI SESSION STARTED =====")
    debug_logger.debug(f"[CLI] Gateway: {base_url}")
    return console
