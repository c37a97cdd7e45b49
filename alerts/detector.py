"""Pattern-based alerting over accepted log entries"""

from dataclasses import dataclass
from typing import Any, Dict, List

from logbuffer.models import LogEntry
from notifications.models import NotificationDraft, NotificationType

RATE_LIMIT_PATTERNS = ("rate limit", "ratelimit", "429")
ACCOUNT_ERROR_PATTERNS = ("error", "failed", "deactivat")

RATE_LIMIT_TITLE = "Rate Limit Warning"
ACCOUNT_ERROR_TITLE = "Account Error"


@dataclass
class AlertSettings:
    """Which alert rules are active, and whether posting plays a sound"""
    rate_limit_alerts: bool = True
    account_error_alerts: bool = True
    sound_enabled: bool = False

    @classmethod
    def from_preferences(cls, prefs: Dict[str, Any], base: "AlertSettings") -> "AlertSettings":
        """Overlay camelCase preferences (as stored in alerts.json) on ``base``"""
        return cls(
            rate_limit_alerts=prefs.get("rateLimitAlerts", base.rate_limit_alerts),
            account_error_alerts=prefs.get("accountErrorAlerts", base.account_error_alerts),
            sound_enabled=prefs.get("soundEnabled", base.sound_enabled),
        )


def detect(entry: LogEntry, settings: AlertSettings) -> List[NotificationDraft]:
    """Return the alert drafts a log entry triggers (zero, one or two)

    Rules are matched on the lower-cased message and evaluated independently.
    The drafts carry the original message text.
    """
    message = entry.message.lower()
    drafts: List[NotificationDraft] = []

    if settings.rate_limit_alerts and any(p in message for p in RATE_LIMIT_PATTERNS):
        drafts.append(NotificationDraft(
            type=NotificationType.WARNING,
            title=RATE_LIMIT_TITLE,
            message=entry.message,
        ))

    # "deactivat" catches deactivated / deactivating
    if (
        settings.account_error_alerts
        and "account" in message
        and any(p in message for p in ACCOUNT_ERROR_PATTERNS)
    ):
        drafts.append(NotificationDraft(
            type=NotificationType.ERROR,
            title=ACCOUNT_ERROR_TITLE,
            message=entry.message,
        ))

    return drafts
