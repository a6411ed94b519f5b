"""Staff roster CLI commands."""

from __future__ import annotations

import typer

from .core import app, console, make_services

staff_app = typer.Typer(help="Manage staff members")
app.add_typer(staff_app, name="staff")


@staff_app.command("add")
def staff_add(
    user_id: str = typer.Argument(..., help="User id to mark as staff"),
    admin: bool = typer.Option(False, "--admin", help="Also mark as admin"),
) -> None:
    """Mark a user as staff."""
    services = make_services()
    services.store.upsert_user(user_id, staff=True, admin=admin)
    console.print(f"[green]✓[/green] {user_id} is now staff")


@staff_app.command("remove")
def staff_remove(user_id: str = typer.Argument(..., help="User id to demote")) -> None:
    """Remove staff from a user."""
    services = make_services()
    services.store.upsert_user(user_id, staff=False, admin=False)
    console.print(f"[green]✓[/green] {user_id} is no longer staff")


@staff_app.command("check")
def staff_check(user_id: str = typer.Argument(..., help="User id to check")) -> None:
    """Show whether a user may run RPC actions."""
    services = make_services()
    if services.guard.authorize(user_id):
        console.print(f"[green]✓[/green] {user_id} may perform RPC actions")
    else:
        console.print(f"[red]✗[/red] {user_id} may not perform RPC actions")
        raise typer.Exit(1)
