"""Main CLI application class for the gateway console"""

import asyncio
from pathlib import Path
from typing import Optional

from rich.panel import Panel
from rich.table import Table

import settings
from api.client import ConsoleAPIClient
from api.errors import AuthenticationError
from logbuffer.buffer import filter_entries
from logbuffer.export import default_export_name, write_export
from logbuffer.models import LogEntry, LogFilter
from notifications.models import NotificationItem
from session.console import ConsoleSession
from cli.account_handlers import add_account, ask_text, confirm_removal
from cli.debug_setup import setup_debug_console
from cli.status_display import (
    format_log_line,
    format_notice,
    format_notification,
    show_accounts,
    show_logs,
    show_status,
)


class GatewayConsoleCLI:
    """Terminal front end over one ConsoleSession"""

    def __init__(
        self,
        debug: bool = False,
        base_url: Optional[str] = None,
        password: Optional[str] = None,
    ):
        self.debug = debug
        self.base_url = base_url or settings.CONSOLE_BASE_URL
        self.password = password or settings.CONSOLE_PASSWORD

        self.console = setup_debug_console(debug, self.base_url)
        if debug:
            self.console.print(
                f"[yellow]Debug mode enabled - verbose logging will be written to {settings.DEBUG_LOG_FILE}[/yellow]"
            )

        self.session = ConsoleSession(
            api=ConsoleAPIClient(base_url=self.base_url),
            on_notice=self.notice,
            confirm=confirm_removal(self.console),
        )

        self.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.loop)

    def notice(self, level: str, message: str) -> None:
        self.console.print(format_notice(level, message))

    def run(self, command) -> None:
        """Connect, run one command coroutine, then end the session"""
        try:
            self.loop.run_until_complete(self._run(command))
        finally:
            self.loop.run_until_complete(self.session.aclose())
            self.loop.close()

    async def _run(self, command) -> None:
        if not await self.connect():
            return
        await command()

    async def connect(self) -> bool:
        """Start the session, logging in first when the gateway wants a password"""
        if await self.session.start():
            return self.session.active

        password = self.password or await ask_text(self.console, "Console password", password=True)
        try:
            await self.session.login(password)
        except AuthenticationError as e:
            self.console.print(f"[red]Login failed:[/red] {e.message}")
            return False
        return self.session.active

    def display_header(self):
        self.console.print(Panel.fit(
            "[bold cyan]Gateway Console[/bold cyan]\n"
            f"[dim]{self.base_url}[/dim]",
            border_style="cyan"
        ))

    # Commands

    async def status(self) -> None:
        self.display_header()
        show_status(self.session, self.console)

    async def accounts(self, mode: str = "all") -> None:
        show_accounts(self.session.pool.state, self.console, mode)

    async def set_paused(self, account_id: str, paused: bool) -> None:
        await self.session.pool.set_paused(account_id, paused)
        self.notice("success", f"Account {account_id} {'paused' if paused else 'resumed'}")
        show_accounts(self.session.pool.state, self.console)

    async def remove(self, account_id: str, assume_yes: bool = False) -> None:
        gate = (lambda _: True) if assume_yes else None
        if await self.session.pool.remove(account_id, confirm=gate):
            self.notice("success", f"Account {account_id} removed")
            show_accounts(self.session.pool.state, self.console)

    async def use(self, account_id: str) -> None:
        state = await self.session.use_account(account_id)
        self.notice("success", f"Now using account {state.current_account_id}")

    async def refresh_tokens(self) -> None:
        pool = self.session.pool
        await pool.refresh_tokens()
        self.notice("info", "Token refresh started")
        with self.console.status("Waiting for the gateway to refresh tokens..."):
            await asyncio.sleep(pool.resync_delay + 0.5)
        show_accounts(pool.state, self.console)

    async def refresh_quotas(self) -> None:
        state = await self.session.pool.refresh_quotas()
        self.notice("success", "Quota information refreshed")
        show_accounts(state, self.console)

    async def pool(self, enabled: Optional[bool] = None, strategy: Optional[str] = None) -> None:
        state = self.session.pool.state
        if enabled is None and strategy is None:
            self.console.print(
                f"Pool {'enabled' if state.enabled else 'disabled'}, strategy [bold]{state.strategy}[/bold]"
            )
            return
        state = await self.session.pool.update_pool_config(
            state.enabled if enabled is None else enabled,
            strategy or state.strategy,
        )
        self.notice("success", f"Pool {'enabled' if state.enabled else 'disabled'}, strategy {state.strategy}")

    async def add_account(self, label: Optional[str] = None) -> None:
        if await add_account(self.session, self.console, label):
            show_accounts(self.session.pool.state, self.console)

    async def config(self, rate_limit: Optional[str] = None) -> None:
        if rate_limit is not None:
            await self.session.save_settings({"rateLimitSeconds": rate_limit})

        table = Table(title="Gateway Settings")
        table.add_column("Setting", style="cyan")
        table.add_column("Value")
        for key, value in sorted(self.session.config.items()):
            table.add_row(key, str(value))
        self.console.print(table)

    async def logout(self) -> None:
        await self.session.logout()

    async def logs(self, log_filter: LogFilter, export: Optional[str] = None, fmt: str = "json") -> None:
        """Print the recent backlog, optionally exporting the filtered view"""
        entries = self.session.logs.query(log_filter)
        show_logs(entries, self.console)
        if export is not None:
            path = Path(export) if export else Path(default_export_name(fmt))
            count = write_export(entries, path, fmt)
            self.notice("success", f"Exported {count} log entries to {path}")

    async def tail(self, log_filter: LogFilter) -> None:
        """Follow the live log stream until interrupted or the session ends"""
        session = self.session

        def on_log(entry: LogEntry) -> None:
            if filter_entries([entry], log_filter):
                self.console.print(format_log_line(entry))

        def on_notification(item: NotificationItem) -> None:
            self.console.print(format_notification(item))

        show_logs(session.logs.query(log_filter), self.console)
        session.on_log = on_log
        session.on_notification = on_notification
        self.console.print("[dim]Following gateway logs, press Ctrl+C to stop[/dim]")
        try:
            while session.active:
                await asyncio.sleep(1)
        finally:
            session.on_log = None
            session.on_notification = None
