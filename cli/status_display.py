"""Rich renderings of dashboard state"""

from datetime import datetime
from typing import Iterable, Optional

from rich.table import Table
from rich.text import Text

from accounts.models import Account, AccountPoolState
from accounts.quota import (
    effective_percent,
    filter_accounts,
    is_low_quota,
    pool_summary,
    premium_quota_summary,
    quota_reset_date,
    usage_status_label,
)
from logbuffer.models import LogEntry, LogLevel
from notifications.models import NotificationItem, NotificationType

LEVEL_STYLES = {
    LogLevel.DEBUG: "dim",
    LogLevel.INFO: "cyan",
    LogLevel.WARN: "yellow",
    LogLevel.ERROR: "bold red",
    LogLevel.SUCCESS: "green",
}

NOTIFICATION_STYLES = {
    NotificationType.INFO: "cyan",
    NotificationType.WARNING: "yellow",
    NotificationType.ERROR: "red",
}

NOTICE_STYLES = {
    "success": "green",
    "info": "cyan",
    "warning": "yellow",
    "error": "red",
}


def format_percent(percent: Optional[int]) -> str:
    return "-" if percent is None else f"{percent}%"


def _quota_style(account: Account) -> str:
    if account.quota is None:
        return "dim"
    return "red" if is_low_quota(account) else "green"


def show_status(session, console) -> None:
    """Gateway status, version check and pool summary"""
    status = session.status
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="cyan", width=20)
    table.add_column()

    if session.connected:
        table.add_row("Gateway:", f"[green]✓ Connected[/green] [dim]{session.api.base_url}[/dim]")
    else:
        table.add_row("Gateway:", f"[red]✗ Not connected[/red] [dim]{session.api.base_url}[/dim]")
    table.add_row("Version:", str(status.get("version") or "-"))
    table.add_row("Uptime:", str(status.get("uptime") or "-"))
    table.add_row("User:", str(status.get("user") or "-"))
    table.add_row("Account Type:", str(status.get("accountType") or "-"))
    table.add_row("Models:", str(status.get("modelsCount") or len(session.models)))

    check = session.version_check
    if check.blocked:
        table.add_row("Console:", f"[yellow]Outdated ({check.local} → {check.remote})[/yellow]")
        if check.update_command:
            table.add_row("", f"[dim]Update with: {check.update_command}[/dim]")
    elif check.local:
        table.add_row("Console:", f"[green]Up to date ({check.local})[/green]")
    elif check.message:
        table.add_row("Console:", f"[dim]{check.message}[/dim]")

    state = session.pool.state
    summary = pool_summary(state.accounts, state.configured_count)
    pool_text = "enabled" if state.enabled else "disabled"
    table.add_row("Account Pool:", f"{pool_text}, strategy [bold]{state.strategy}[/bold]")
    table.add_row(
        "Accounts:",
        f"{summary.total} total, {summary.active} active, {summary.paused} paused, "
        f"[red]{summary.low_quota}[/red] low quota, [dim]{summary.no_quota} without quota data[/dim]",
    )

    premium = premium_quota_summary(state.accounts)
    premium_text = premium.text
    if premium.percent is not None:
        premium_text += f" ({premium.percent}%)"
    table.add_row("Premium Quota:", premium_text)
    reset_date = quota_reset_date(state.accounts, session.copilot_usage.get("quota_reset_date"))
    table.add_row("Quota Resets:", reset_date or "-")

    console.print(table)


def accounts_table(state: AccountPoolState, mode: str = "all") -> Table:
    """Account list, optionally restricted to low or healthy quota"""
    table = Table(title="Account Pool")
    table.add_column("", width=1)
    table.add_column("ID", style="cyan")
    table.add_column("Label")
    table.add_column("Status")
    table.add_column("Quota", justify="right")
    table.add_column("Requests", justify="right")
    table.add_column("Errors", justify="right")
    table.add_column("Last Used", style="dim")
    table.add_column("Last Error", style="dim", overflow="fold")

    for account in filter_accounts(state.accounts, mode):
        marker = "*" if account.id == state.current_account_id else ""
        table.add_row(
            marker,
            account.id,
            account.label,
            usage_status_label(account),
            Text(format_percent(effective_percent(account)), style=_quota_style(account)),
            str(account.request_count),
            str(account.error_count),
            format_timestamp(account.last_used),
            account.last_error or "",
        )
    return table


def show_accounts(state: AccountPoolState, console, mode: str = "all") -> None:
    console.print(accounts_table(state, mode))
    summary = pool_summary(state.accounts, state.configured_count)
    console.print(
        f"[dim]{summary.total} configured · {summary.active} active · {summary.paused} paused · "
        f"{summary.low_quota} low quota · {summary.no_quota} without quota data · "
        f"* current account[/dim]"
    )


def format_log_line(entry: LogEntry) -> Text:
    local = entry.timestamp.astimezone()
    line = Text()
    line.append(local.strftime("%H:%M:%S "), style="dim")
    line.append(f"{entry.level.value.upper():<7} ", style=LEVEL_STYLES.get(entry.level, ""))
    line.append(entry.message)
    return line


def show_logs(entries: Iterable[LogEntry], console) -> None:
    for entry in entries:
        console.print(format_log_line(entry))


def format_notification(item: NotificationItem) -> Text:
    style = NOTIFICATION_STYLES.get(item.type, "")
    line = Text()
    line.append(f"[{item.title}] ", style=f"bold {style}")
    line.append(item.message)
    return line


def format_notice(level: str, message: str) -> str:
    style = NOTICE_STYLES.get(level, "")
    return f"[{style}]{message}[/{style}]" if style else message


def format_timestamp(value: Optional[float]) -> str:
    """Epoch milliseconds as local time, or "-" """
    if not value:
        return "-"
    return datetime.fromtimestamp(value / 1000).strftime("%Y-%m-%d %H:%M:%S")
