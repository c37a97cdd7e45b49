"""Console session orchestration"""

from .console import ConsoleSession, VersionCheck, SESSION_EXPIRED_NOTICE
from .validation import validate_rate_limit

__all__ = [
    "ConsoleSession",
    "VersionCheck",
    "SESSION_EXPIRED_NOTICE",
    "validate_rate_limit",
]
