"""Log alert rules"""

from .detector import AlertSettings, detect, RATE_LIMIT_TITLE, ACCOUNT_ERROR_TITLE

__all__ = [
    "AlertSettings",
    "detect",
    "RATE_LIMIT_TITLE",
    "ACCOUNT_ERROR_TITLE",
]
