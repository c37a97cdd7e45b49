"""CLI package for the gateway console

This package provides the command-line front end over a ConsoleSession.
"""

from cli.cli_app import GatewayConsoleCLI
from cli.main import main

__all__ = [
    "GatewayConsoleCLI",
    "main",
]
