"""Entry point for the Zeabur monitor."""

from __future__ import annotations

import argparse
import logging
import sys

import uvicorn
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from zeabur_monitor.accounts import AccountCatalog, parse_env_accounts
from zeabur_monitor.auth import AdminPassword
from zeabur_monitor.config import settings
from zeabur_monitor.storage import ACCOUNTS_FILE, PASSWORD_FILE, JsonDocument

console = Console()
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)


def _catalog() -> AccountCatalog:
    return AccountCatalog(
        JsonDocument(settings.config_path / ACCOUNTS_FILE),
        parse_env_accounts(settings.accounts),
    )


def _password_status() -> str:
    password = AdminPassword(JsonDocument(settings.config_path / PASSWORD_FILE), settings.admin_password)
    if password.from_environment:
        return "[green]set via ADMIN_PASSWORD[/green]"
    if password.is_configured():
        return "[green]saved to file[/green]"
    return "[yellow]not set, set it on first visit[/yellow]"


def run_server() -> None:
    """Start the FastAPI server."""
    catalog = _catalog()
    console.print(
        Panel(
            f"Listening on http://{settings.api_host}:{settings.api_port}\n"
            f"Admin password: {_password_status()}\n"
            f"Accounts: {len(catalog.env_accounts)} from environment, "
            f"{len(catalog.persisted())} saved",
            title="Zeabur Monitor",
            style="bold green",
        )
    )
    uvicorn.run(
        "zeabur_monitor.api.server:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
    )


def list_accounts() -> None:
    """Print the merged account catalog (names and sources only)."""
    catalog = _catalog()
    table = Table(title="Accounts")
    table.add_column("#", justify="right")
    table.add_column("Name")
    table.add_column("Source")

    env_count = len(catalog.env_accounts)
    for i, account in enumerate(catalog.all()):
        table.add_row(str(i), account.name, "environment" if i < env_count else "saved")

    console.print(table)


def main() -> None:
    parser = argparse.ArgumentParser(description="Zeabur multi-account monitor")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("serve", help="Start the API server")
    sub.add_parser("accounts", help="List configured accounts")

    args = parser.parse_args()

    if args.command == "serve":
        run_server()
    elif args.command == "accounts":
        list_accounts()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
