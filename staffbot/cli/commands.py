"""CLI entry point: gateway run and status commands plus registered sub-apps."""

from __future__ import annotations

import asyncio

import typer
from loguru import logger

from staffbot import __logo__

from . import rpc_commands, staff_commands  # noqa: F401  (register commands)
from .core import app, console


@app.command()
def run(
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Log at DEBUG level"),
) -> None:
    """Start the Discord gateway and the RPC API."""
    import sys

    from staffbot.app.bootstrap import build_gateway_runtime
    from staffbot.config.loader import load_config
    from staffbot.utils.helpers import get_logs_path

    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")
    logger.add(get_logs_path() / "staffbot.log", rotation="10 MB", retention=5, level="DEBUG")

    config = load_config()
    console.print(f"{__logo__} Starting staffbot...")

    if config.discord.enabled and not config.discord.token:
        console.print("[red]Error: discord.enabled is set but no token is configured.[/red]")
        raise typer.Exit(1)

    runtime = build_gateway_runtime(config)
    if runtime.bot is not None:
        console.print("[green]✓[/green] Discord gateway enabled")
    if runtime.api is not None:
        console.print(f"[green]✓[/green] RPC API on http://{config.api.host}:{config.api.port}")
    if config.telemetry.prometheus_enabled:
        console.print(f"[green]✓[/green] Prometheus metrics on port {config.telemetry.prometheus_port}")

    try:
        asyncio.run(runtime.run())
    except KeyboardInterrupt:
        console.print("\nShutting down...")


@app.command()
def status() -> None:
    """Show staffbot status."""
    from staffbot.config.loader import get_config_path, load_config

    config_path = get_config_path()
    config = load_config()
    db_path = config.database.resolved_path

    console.print(f"{__logo__} staffbot Status\n")

    console.print(f"Config: {config_path} {'[green]✓[/green]' if config_path.exists() else '[red]✗[/red]'}")
    console.print(f"Database: {db_path} {'[green]✓[/green]' if db_path.exists() else '[red]✗[/red]'}")
    console.print(f"Discord: {'[green]✓ enabled[/green]' if config.discord.enabled else '[dim]disabled[/dim]'}")
    if config.api.enabled:
        console.print(f"API: [green]✓ {config.api.host}:{config.api.port}[/green]")
    else:
        console.print("API: [dim]disabled[/dim]")
    console.print(f"Interaction timeout: {config.rpc.interaction_timeout_seconds}s")
    console.print(f"Extra staff ids: {len(config.rpc.extra_staff_ids)}")


if __name__ == "__main__":
    app()
