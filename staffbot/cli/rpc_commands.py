"""RPC CLI commands."""

from __future__ import annotations

import asyncio
import json

import typer
from rich.table import Table

from .core import app, console, make_services


@app.command("methods")
def methods() -> None:
    """List RPC methods and their fields."""
    from staffbot.rpc.actions import ActionCatalog

    table = Table(title="RPC Methods")
    table.add_column("Method", style="cyan")
    table.add_column("Title")
    table.add_column("Fields", style="yellow")

    for spec in ActionCatalog().specs():
        table.add_row(spec.name, spec.title, ", ".join(f"{f.key}:{f.kind.value}" for f in spec.fields))

    console.print(table)


def _parse_field_options(values: list[str]) -> dict[str, str]:
    fields: dict[str, str] = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            console.print(f"[red]Invalid --field {item!r}; expected key=value[/red]")
            raise typer.Exit(2)
        fields[key.strip()] = value
    return fields


@app.command("rpc")
def rpc(
    method: str = typer.Argument(..., help="RPC method name, e.g. BotClaim"),
    user_id: str = typer.Option(..., "--user", "-u", help="Staff user id performing the action"),
    field: list[str] = typer.Option([], "--field", "-f", help="Field value as key=value (repeatable)"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw {done, reason, context} body"),
) -> None:
    """Perform one RPC action directly."""
    services = make_services()
    invoker = services.direct_invoker(source="cli")

    async def run():
        report = await invoker.invoke(method, _parse_field_options(field), user_id)
        await services.engine.notifier.drain()
        return report

    report = asyncio.run(run())
    if as_json:
        console.print_json(json.dumps({"done": report.done, "reason": report.reason, "context": report.context}))
    elif report.done:
        console.print(f"[green]✓[/green] {report.reason}")
    else:
        console.print(f"[red]✗[/red] {report.reason}")
    if not report.done:
        raise typer.Exit(1)


@app.command("log")
def rpc_log(
    limit: int = typer.Option(20, "--limit", "-n", help="Number of entries to show"),
) -> None:
    """Show recently committed RPC actions."""
    services = make_services()
    entries = services.store.recent_actions(limit)
    if not entries:
        console.print("No RPC actions recorded.")
        return

    table = Table(title="Recent RPC Actions")
    table.add_column("When", style="dim")
    table.add_column("Method", style="cyan")
    table.add_column("User")
    table.add_column("Data")

    for entry in entries:
        data = entry["data"]
        table.add_row(
            entry["created_at"],
            entry["method"],
            entry["user_id"],
            json.dumps(data, ensure_ascii=False) if isinstance(data, dict) else str(data),
        )

    console.print(table)
