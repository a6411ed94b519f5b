"""Shared CLI application context and setup helpers."""

from __future__ import annotations

import typer
from rich.console import Console

from staffbot import __logo__, __version__

app = typer.Typer(
    name="staffbot",
    help=f"{__logo__} staffbot - Staff RPC tooling for the bot list",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"{__logo__} staffbot v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(None, "--version", "-v", callback=version_callback, is_eager=True),
) -> None:
    """staffbot - Staff RPC tooling for the bot list."""


@app.command()
def onboard() -> None:
    """Initialize staffbot configuration and the listing database."""
    from staffbot.config.loader import get_config_path, save_config
    from staffbot.config.schema import Config
    from staffbot.storage.store import ListingStore

    config_path = get_config_path()

    if config_path.exists():
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    config = Config()
    save_config(config)
    console.print(f"[green]✓[/green] Created config at {config_path}")

    store = ListingStore(config.database.resolved_path)
    console.print(f"[green]✓[/green] Created listing database at {store.db_path}")

    console.print(f"\n{__logo__} staffbot is ready!")
    console.print("\nNext steps:")
    console.print("  1. Add your bot token to [cyan]~/.staffbot/config.json[/cyan] (discord.token)")
    console.print("  2. Mark staff: [cyan]staffbot staff add <user id>[/cyan]")
    console.print("  3. Start: [cyan]staffbot run[/cyan]")


def make_services(config=None):
    """RPC core from ~/.staffbot/config.json (or the given config)."""
    from staffbot.app.bootstrap import build_rpc_services
    from staffbot.config.loader import load_config

    return build_rpc_services(config or load_config())
