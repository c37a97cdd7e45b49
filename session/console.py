"""One authenticated console session against a gateway

ConsoleSession wires the REST client, the two push channels, the log buffer,
the alert rules, the notification mailbox, the account pool and the device
flow together, and owns the timers that keep the dashboard data fresh.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Dict, List, Optional

from accounts.pool import AccountPoolController, ConfirmGate
from alerts.detector import AlertSettings, detect
from api.client import ConsoleAPIClient
from api.errors import ConsoleError, RemoteOperationError, SessionExpiredError
from config.loader import load_alert_settings
from logbuffer.buffer import LogBuffer
from logbuffer.models import LogEntry
from notifications.center import NotificationCenter
from notifications.models import NotificationItem
from oauth.device_flow import OAuthDeviceFlow
from settings import (
    ACCOUNT_ERROR_ALERTS,
    ALERTS_FILE,
    DATA_REFRESH_INTERVAL,
    NOTIFICATION_SOUND,
    RATE_LIMIT_ALERTS,
    RECENT_LOGS_LIMIT,
    VERSION_CHECK_INTERVAL,
)
from streaming.payloads import parse_log_event, parse_notification_event
from streaming.subscriber import StreamSubscriber
from utils.timers import TimerRegistry
from .validation import RATE_LIMIT_FIELD, validate_rate_limit

logger = logging.getLogger(__name__)

SESSION_EXPIRED_NOTICE = "Session expired. Please login again."
DEFAULT_UPDATE_COMMAND = "git pull origin main"

# Receives (level, message); level is one of "success", "info", "warning", "error"
NoticeCallback = Callable[[str, str], None]


@dataclass(frozen=True)
class VersionCheck:
    checking: bool = False
    blocked: bool = False
    local: Optional[str] = None
    remote: Optional[str] = None
    message: str = ""
    update_command: str = ""


def _log_notice(level: str, message: str) -> None:
    logger.info(f"[{level}] {message}")


class ConsoleSession:
    """Lifecycle of the console: start, login, periodic refresh, teardown

    Teardown (``end_session``) is synchronous: once it returns, both push
    channels are closed, no timer is pending, the device flow is idle and
    the log buffer and mailbox are empty.
    """

    def __init__(
        self,
        api: Optional[ConsoleAPIClient] = None,
        alert_settings: Optional[AlertSettings] = None,
        on_notice: Optional[NoticeCallback] = None,
        confirm: Optional[ConfirmGate] = None,
        retry_delay: Optional[float] = None,
        refresh_interval: Optional[float] = None,
        version_interval: Optional[float] = None,
    ):
        self.api = api or ConsoleAPIClient()
        self.api.on_session_expired = self._on_session_expired
        self.on_notice = on_notice or _log_notice
        self.on_log: Optional[Callable[[LogEntry], None]] = None
        self.on_notification: Optional[Callable[[NotificationItem], None]] = None

        if alert_settings is None:
            defaults = AlertSettings(
                rate_limit_alerts=RATE_LIMIT_ALERTS,
                account_error_alerts=ACCOUNT_ERROR_ALERTS,
                sound_enabled=NOTIFICATION_SOUND,
            )
            alert_settings = AlertSettings.from_preferences(load_alert_settings(ALERTS_FILE), defaults)
        self.alert_settings = alert_settings

        self.timers = TimerRegistry()
        self.logs = LogBuffer()
        self.notifications = NotificationCenter(sound_enabled=alert_settings.sound_enabled)
        self.pool = AccountPoolController(self.api, timers=self.timers, confirm=confirm)
        self.device_flow = OAuthDeviceFlow(self.api, timers=self.timers)
        self.log_stream = StreamSubscriber(
            "logs", lambda: self.api.stream_events("/logs/stream"), retry_delay=retry_delay
        )
        self.notification_stream = StreamSubscriber(
            "notifications", lambda: self.api.stream_events("/notifications/stream"), retry_delay=retry_delay
        )
        self.refresh_interval = DATA_REFRESH_INTERVAL if refresh_interval is None else refresh_interval
        self.version_interval = VERSION_CHECK_INTERVAL if version_interval is None else version_interval

        self.authenticated = False
        self.password_required = True
        self.active = False
        self.connected = False
        self.loading = False
        self._activation = 0

        self.status: Dict[str, Any] = {}
        self.models: List[Dict[str, Any]] = []
        self.usage_stats: Dict[str, Any] = {}
        self.copilot_usage: Dict[str, Any] = {}
        self.config: Dict[str, Any] = {}
        self.version_check = VersionCheck()

    @property
    def can_poll(self) -> bool:
        return self.authenticated or not self.password_required

    async def aclose(self) -> None:
        self.end_session()
        await self.api.aclose()

    async def __aenter__(self) -> "ConsoleSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # Authentication

    async def check_auth(self) -> bool:
        try:
            data = await self.api.auth_status()
            self.authenticated = bool(data.get("authenticated"))
            self.password_required = bool(data.get("passwordRequired", True))
        except ConsoleError as e:
            logger.error(f"Auth check failed: {e}")
            self.authenticated = False
            self.password_required = True
        return self.can_poll

    async def start(self) -> bool:
        """Check auth status and activate if no login is needed

        Returns:
            True if the session was activated
        """
        if await self.check_auth():
            await self._activate()
            return True
        logger.info("Gateway requires a password; waiting for login")
        return False

    async def login(self, password: str) -> None:
        """Log in and activate

        Raises:
            AuthenticationError: if the password was rejected
        """
        await self.api.login(password)
        self.authenticated = True
        self.on_notice("success", "Login successful")
        await self._activate()

    async def logout(self) -> None:
        await self.api.logout()
        self.end_session()
        self.on_notice("info", "Logged out")

    def _on_session_expired(self) -> None:
        was_live = self.active or self.authenticated
        self.end_session()
        self.password_required = True
        if was_live:
            self.on_notice("warning", SESSION_EXPIRED_NOTICE)

    def end_session(self) -> None:
        """Tear the session down; safe to call any number of times"""
        self.log_stream.close()
        self.notification_stream.close()
        cancelled = self.timers.cancel_all()
        self.device_flow.reset()
        self.pool.reset()
        self.logs.clear()
        self.notifications.clear()
        self.authenticated = False
        self.connected = False
        if self.active:
            logger.info(f"Console session ended ({cancelled} timer(s) cancelled)")
        self.active = False

    async def _activate(self) -> None:
        if self.active:
            logger.debug("Console session already active")
            return
        self.active = True
        self._activation += 1
        activation = self._activation

        def current() -> bool:
            return self.active and activation == self._activation

        await self.fetch_data()
        if not current():
            return
        await self.load_recent_logs()
        if not current():
            return
        self.open_streams()
        await self.check_version()
        if not current():
            return
        self.timers.every(
            self.refresh_interval,
            self.refresh_dashboard,
            guard=lambda: self.can_poll and not self.loading,
            name="data-refresh",
        )
        self.timers.every(self.version_interval, self.check_version, guard=lambda: self.can_poll, name="version-check")
        logger.info("Console session active")

    # Push channels

    def open_streams(self) -> None:
        self.log_stream.open({"log": self._handle_log})
        self.notification_stream.open({"notification": self._handle_notification})

    def _handle_log(self, data: str) -> None:
        entry = LogEntry.from_payload(parse_log_event(data))
        if not self.logs.accept(entry):
            return
        if self.on_log is not None:
            self.on_log(entry)
        for draft in detect(entry, self.alert_settings):
            self._announce(self.notifications.post(draft))

    def _handle_notification(self, data: str) -> None:
        self._announce(self.notifications.post_push(parse_notification_event(data)))

    def _announce(self, item: NotificationItem) -> None:
        if self.on_notification is not None:
            self.on_notification(item)

    # Dashboard data

    async def _fetch(self, name: str, call: Callable[[], Awaitable[Any]]) -> bool:
        try:
            result = await call()
        except SessionExpiredError:
            raise
        except RemoteOperationError as e:
            logger.warning(f"Failed to fetch {name}: {e.message}")
            return False

        if name == "status":
            self.status = result
        elif name == "models":
            self.models = result.get("models") or []
        elif name == "usage stats":
            self.usage_stats = result
        elif name == "copilot usage":
            self.copilot_usage = result
        elif name == "config":
            self.config = result.get("config") or {}
        return True

    async def fetch_data(self) -> bool:
        """Load every dashboard panel concurrently

        Returns:
            True if every request succeeded
        """
        self.loading = True
        try:
            results = await asyncio.gather(
                self._fetch("status", self.api.get_status),
                self._fetch("models", self.api.get_models),
                self._fetch("usage stats", self.api.get_usage_stats),
                self._fetch("copilot usage", self.api.get_copilot_usage),
                self._fetch("config", self.api.get_config),
                self._fetch("accounts", self.pool.refresh),
                return_exceptions=True,
            )
        finally:
            self.loading = False

        if any(isinstance(result, SessionExpiredError) for result in results):
            return False
        for result in results:
            if isinstance(result, BaseException) and not isinstance(result, ConsoleError):
                raise result

        self.connected = all(result is True for result in results)
        if not self.connected:
            self.on_notice("error", "Failed to connect to server")
        return self.connected

    async def refresh_dashboard(self) -> None:
        """Periodic refresh of status, usage stats and Copilot usage"""
        await asyncio.gather(
            self._fetch("status", self.api.get_status),
            self._fetch("usage stats", self.api.get_usage_stats),
            self._fetch("copilot usage", self.api.get_copilot_usage),
        )

    async def load_recent_logs(self, limit: int = RECENT_LOGS_LIMIT) -> int:
        """Seed the log buffer with the gateway's backlog

        Malformed entries are skipped. Returns the number of entries loaded.
        """
        try:
            data = await self.api.get_recent_logs(limit)
        except RemoteOperationError as e:
            logger.error(f"Failed to load recent logs: {e.message}")
            return 0

        entries = []
        for raw in data.get("logs") or []:
            try:
                entries.append(LogEntry.from_payload(raw))
            except (TypeError, ValueError) as e:
                logger.debug(f"Skipping malformed backlog entry: {e}")
        self.logs.replace(entries)
        return len(entries)

    async def check_version(self) -> VersionCheck:
        """Compare the console version with the published one

        Three outcomes: an ``ok`` answer carrying both versions (blocked when
        they differ), an explicit ``outdated`` answer, or a failure that keeps
        the previous versions and only updates the message.
        """
        self.version_check = replace(self.version_check, checking=True)
        try:
            data = await self.api.version_check()
        except ConsoleError as e:
            self.version_check = replace(
                self.version_check, checking=False, message=str(e) or "Version check failed."
            )
            return self.version_check

        local, remote = data.get("local"), data.get("remote")
        if data.get("status") == "ok" and local and remote:
            up_to_date = local == remote
            message = data.get("message") or ""
            if not up_to_date:
                message = message or "Dashboard is outdated."
            self.version_check = VersionCheck(
                blocked=not up_to_date,
                local=local,
                remote=remote,
                message=message,
                update_command=data.get("updateCommand") or "",
            )
        elif data.get("status") == "outdated":
            self.version_check = VersionCheck(
                blocked=True,
                local=local or None,
                remote=remote or None,
                message=data.get("message") or "Dashboard is outdated.",
                update_command=data.get("updateCommand") or DEFAULT_UPDATE_COMMAND,
            )
        else:
            self.version_check = replace(
                self.version_check,
                checking=False,
                message=data.get("message") or "Version check failed.",
            )

        if self.version_check.blocked:
            logger.warning(f"Console is outdated: {self.version_check.message}")
        return self.version_check

    # Settings

    async def save_settings(self, values: Dict[str, Any]) -> Dict[str, Any]:
        """Validate and save gateway settings, then reload them

        Raises:
            ValidationError: before any request when a value is out of range
            RemoteOperationError: if the gateway rejected the settings
        """
        values = dict(values)
        if RATE_LIMIT_FIELD in values:
            rate_limit = validate_rate_limit(values.pop(RATE_LIMIT_FIELD))
            if rate_limit is not None:
                values[RATE_LIMIT_FIELD] = rate_limit

        data = await self.api.save_config(values)
        await self._fetch("config", self.api.get_config)
        self.on_notice("success", "Settings saved")
        return data

    async def reset_settings(self) -> None:
        await self.api.reset_config()
        await self._fetch("config", self.api.get_config)
        self.on_notice("success", "Settings reset to defaults")

    # Accounts

    async def add_account(self, label: Optional[str] = None):
        """Start the device flow; finish it with ``complete_add_account``"""
        return await self.device_flow.start(label)

    async def complete_add_account(self) -> Dict[str, Any]:
        data = await self.device_flow.complete()
        if not data:
            return data
        try:
            await self.pool.refresh()
        except RemoteOperationError as e:
            logger.warning(f"Account pool refresh after adding an account failed: {e.message}")
        login = (data.get("account") or {}).get("login")
        self.on_notice("success", f"Account {login} added successfully!" if login else "Account added")
        return data

    async def use_account(self, account_id: str):
        """Make an account current, then reload status so the shown user follows"""
        state = await self.pool.set_current(account_id)
        await self._fetch("status", self.api.get_status)
        return state
