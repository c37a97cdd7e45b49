"""Interactive account handlers for CLI

Prompts run in a worker thread so the push streams and timers keep going
while the operator reads or types.
"""

import asyncio
import webbrowser
from typing import Optional

from rich.panel import Panel
from rich.prompt import Confirm, Prompt

from api.errors import FlowExpiredError, RemoteOperationError
from session.console import ConsoleSession


async def ask_confirm(console, question: str, default: bool = False) -> bool:
    return await asyncio.to_thread(Confirm.ask, question, default=default, console=console)


async def ask_text(console, question: str, **kwargs) -> str:
    return await asyncio.to_thread(Prompt.ask, question, console=console, **kwargs)


def confirm_removal(console):
    """Async confirmation gate for account removal backed by a rich prompt"""
    async def gate(account_id: str) -> bool:
        return await ask_confirm(console, f"Remove account [cyan]{account_id}[/cyan]?")
    return gate


async def add_account(session: ConsoleSession, console, label: Optional[str] = None) -> bool:
    """
    Walk the operator through the device authorization flow

    Args:
        session: Active console session
        console: Rich console for output
        label: Optional label for the new account

    Returns:
        True if an account was added
    """
    state = await session.add_account(label)

    console.print()
    console.print(Panel.fit(
        f"Open [bold]{state.verification_uri}[/bold]\n"
        f"and enter the code [bold cyan]{state.user_code}[/bold cyan]\n"
        f"[dim]The code expires in {state.expires_in // 60} minute(s)[/dim]",
        title="Authorize GitHub Account",
        border_style="cyan",
    ))

    open_browser = state.verification_uri and await ask_confirm(
        console, "Open the verification page in your browser?", default=True
    )
    if open_browser:
        try:
            webbrowser.open(state.verification_uri)
        except webbrowser.Error as e:
            console.print(f"[yellow]Could not open a browser:[/yellow] {e}")

    while True:
        answer = await ask_text(
            console,
            "Press Enter once the code is authorized, or type [bold]c[/bold] to cancel",
            default="",
            show_default=False,
        )
        if answer.strip().lower() in ("c", "cancel"):
            await session.device_flow.cancel()
            console.print("[yellow]Account setup cancelled[/yellow]")
            return False

        try:
            with console.status("Waiting for the gateway to finish authorization..."):
                data = await session.complete_add_account()
        except FlowExpiredError as e:
            console.print(f"[red]{e}[/red]")
            return False
        except RemoteOperationError as e:
            console.print(f"[red]Failed to complete OAuth:[/red] {e.message}")
            if not await ask_confirm(console, "Try again?", default=True):
                await session.device_flow.cancel()
                return False
            continue

        return bool(data)
