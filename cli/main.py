"""CLI entry point and argument parsing"""

import argparse
import sys
from datetime import datetime

from rich.console import Console

from api.errors import ConsoleError
from accounts.quota import QUOTA_FILTERS
from logbuffer.models import LogFilter, LogLevel
from cli.cli_app import GatewayConsoleCLI


console = Console()


def _parse_datetime(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date/time: {value} (expected ISO 8601)")


def _add_log_filter_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--level",
        choices=["all"] + [level.value for level in LogLevel],
        default="all",
        help="Only show entries of this level",
    )
    parser.add_argument("--errors-only", action="store_true", help="Only show error entries")
    parser.add_argument("--search", default="", help="Case-insensitive text to look for")
    parser.add_argument("--from", dest="date_from", type=_parse_datetime, default=None, help="Earliest timestamp")
    parser.add_argument("--to", dest="date_to", type=_parse_datetime, default=None, help="Latest timestamp")


def _log_filter(args) -> LogFilter:
    return LogFilter(
        level=args.level,
        errors_only=args.errors_only,
        search=args.search,
        date_from=args.date_from,
        date_to=args.date_to,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Gateway operational console")
    parser.add_argument("--debug", "-d", action="store_true", help="Enable debug logging")
    parser.add_argument("--url", default=None, help="Gateway base URL (default: from config)")
    parser.add_argument("--password", default=None, help="Console password (default: CONSOLE_PASSWORD)")

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("status", help="Show gateway status and pool summary")

    accounts = commands.add_parser("accounts", help="List pool accounts")
    accounts.add_argument("--quota", choices=QUOTA_FILTERS, default="all", help="Filter by quota health")

    for name, text in (("pause", "Pause an account"), ("resume", "Resume a paused account"),
                       ("use", "Make an account the current one")):
        sub = commands.add_parser(name, help=text)
        sub.add_argument("account_id")

    remove = commands.add_parser("remove", help="Remove an account from the pool")
    remove.add_argument("account_id")
    remove.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")

    commands.add_parser("refresh-tokens", help="Refresh every account's tokens")
    commands.add_parser("refresh-quotas", help="Refresh every account's quota")

    pool = commands.add_parser("pool", help="Show or change pool configuration")
    toggle = pool.add_mutually_exclusive_group()
    toggle.add_argument("--enabled", dest="enabled", action="store_true", default=None)
    toggle.add_argument("--disabled", dest="enabled", action="store_false", default=None)
    pool.add_argument("--strategy", default=None, help="Selection strategy (sticky, round-robin, ...)")

    add = commands.add_parser("add-account", help="Add an account with the device flow")
    add.add_argument("--label", default=None)

    config = commands.add_parser("config", help="Show gateway settings")
    config.add_argument("--rate-limit", default=None, help="Seconds between upstream requests (empty to clear)")

    commands.add_parser("logout", help="End the console session on the gateway")

    logs = commands.add_parser("logs", help="Show recent gateway logs")
    _add_log_filter_arguments(logs)
    logs.add_argument("--export", nargs="?", const="", default=None, help="Write the filtered logs to a file")
    logs.add_argument("--format", dest="fmt", choices=["json", "csv"], default="json")

    tail = commands.add_parser("tail", help="Follow gateway logs and alerts")
    _add_log_filter_arguments(tail)

    return parser


def main():
    """Entry point for the CLI"""
    args = build_parser().parse_args()

    try:
        cli = GatewayConsoleCLI(debug=args.debug, base_url=args.url, password=args.password)

        command = args.command
        if command == "status":
            action = cli.status
        elif command == "accounts":
            action = lambda: cli.accounts(args.quota)
        elif command in ("pause", "resume"):
            action = lambda: cli.set_paused(args.account_id, command == "pause")
        elif command == "remove":
            action = lambda: cli.remove(args.account_id, args.yes)
        elif command == "use":
            action = lambda: cli.use(args.account_id)
        elif command == "refresh-tokens":
            action = cli.refresh_tokens
        elif command == "refresh-quotas":
            action = cli.refresh_quotas
        elif command == "pool":
            action = lambda: cli.pool(args.enabled, args.strategy)
        elif command == "add-account":
            action = lambda: cli.add_account(args.label)
        elif command == "config":
            action = lambda: cli.config(args.rate_limit)
        elif command == "logout":
            action = cli.logout
        elif command == "logs":
            action = lambda: cli.logs(_log_filter(args), args.export, args.fmt)
        else:
            action = lambda: cli.tail(_log_filter(args))

        cli.run(action)

    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
    except ConsoleError as e:
        console.print(f"\n[red]Error:[/red] {getattr(e, 'message', None) or e}")
        sys.exit(1)
    except Exception as e:
        console.print(f"\n[red]Fatal error:[/red] {e}")
        if args.debug:
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
