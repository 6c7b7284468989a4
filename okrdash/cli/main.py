import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
import uvicorn
from rich.console import Console
from rich.table import Table

from okrdash import __version__
from okrdash.auth.session import UserSession
from okrdash.config import get_settings
from okrdash.errors import OkrDashError
from okrdash.infra.db.session import open_store
from okrdash.schemas.settings import SECTION_MODELS
from okrdash.services.legacy_store import LegacyLocalStore
from okrdash.services.registry import Services, build_services

app = typer.Typer(help="okrdash CLI")
console = Console()

settings_app = typer.Typer()
epics_app = typer.Typer()
app.add_typer(settings_app, name="settings", help="Inspect and migrate user settings")
app.add_typer(epics_app, name="epics", help="Inspect the epic analysis cache")


def _run(action, database_url: Optional[str]):
    """Open the store, build services and run ``action(services)``."""
    config = get_settings()

    async def runner():
        async with open_store(database_url or config.database_url) as store:
            return await action(build_services(store, config))

    return asyncio.run(runner())


def _print_settings(data: dict) -> None:
    table = Table(title=f"Settings for {data.get('userId')}")
    table.add_column("Section", style="cyan")
    table.add_column("Values", style="green")
    for section in ("jira", "ui", "ai", "epicAnalysis", "dashboard"):
        values = dict(data.get(section) or {})
        if values.get("token"):
            values["token"] = "****"
        if values.get("geminiApiKey"):
            values["geminiApiKey"] = "****"
        table.add_row(section, json.dumps(values))
    table.add_row("updatedAt", str(data.get("updatedAt")))
    console.print(table)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8010, help="Port to bind"),
    reload: bool = typer.Option(False, help="Enable autoreload (dev only)"),
):
    """Start the okrdash API server."""
    console.print(f"[green]Starting okrdash at http://{host}:{port}[/green]")
    uvicorn.run("okrdash.main:create_app", host=host, port=port, reload=reload, factory=True)


@app.command()
def version():
    """Show version."""
    console.print(f"okrdash {__version__}")


@settings_app.command("show")
def settings_show(
    user: str = typer.Option(..., help="User ID"),
    database_url: Optional[str] = typer.Option(None, help="Override database URL"),
):
    """Show a user's settings (migrating with defaults if none exist)."""

    async def action(services: Services):
        return await services.settings.load_settings(UserSession(user_id=user))

    settings = _run(action, database_url)
    if settings is None:
        console.print(f"[red]No settings available for {user}[/red]")
        raise typer.Exit(code=1)
    _print_settings(settings.to_document())


@settings_app.command("migrate")
def settings_migrate(
    user: str = typer.Option(..., help="User ID"),
    local_storage: Path = typer.Option(..., exists=True, help="JSON export of browser localStorage"),
    database_url: Optional[str] = typer.Option(None, help="Override database URL"),
):
    """Migrate a localStorage export into the store (no-op if settings exist)."""
    legacy = LegacyLocalStore.from_json_file(local_storage)

    async def action(services: Services):
        return await services.settings.load_settings(UserSession(user_id=user), legacy)

    settings = _run(action, database_url)
    if settings is None:
        console.print(f"[red]Migration failed for {user}[/red]")
        raise typer.Exit(code=1)
    console.print(f"[green]Settings ready for {user}[/green]")
    _print_settings(settings.to_document())


@settings_app.command("set-section")
def settings_set_section(
    section: str = typer.Argument(..., help=f"One of: {', '.join(SECTION_MODELS)}"),
    values: str = typer.Option(..., "--json", help='Fields to merge, e.g. \'{"theme": "dark"}\''),
    user: str = typer.Option(..., help="User ID"),
    database_url: Optional[str] = typer.Option(None, help="Override database URL"),
):
    """Merge fields into one settings section."""
    section = section.replace("-", "_")
    if section not in SECTION_MODELS:
        console.print(f"[red]Unknown section '{section}'[/red]")
        raise typer.Exit(code=2)
    try:
        partial = json.loads(values)
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON: {e}[/red]")
        raise typer.Exit(code=2)

    async def action(services: Services):
        return await services.settings.update_section(UserSession(user_id=user), section, partial)

    try:
        merged = _run(action, database_url)
    except (OkrDashError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)
    console.print(f"[green]Updated {section}[/green]")
    console.print_json(merged.model_dump_json(by_alias=True))


@epics_app.command("show")
def epics_show(
    epic_key: str = typer.Argument(..., help="Epic key, e.g. ION-123"),
    user: str = typer.Option(..., help="User ID"),
    database_url: Optional[str] = typer.Option(None, help="Override database URL"),
):
    """Show a cached epic and its children."""

    async def action(services: Services):
        return await services.epic_cache.load_epic_data(UserSession(user_id=user), epic_key)

    entry = _run(action, database_url)
    if entry is None:
        console.print(f"[yellow]No cached data for {epic_key.upper()}[/yellow]")
        raise typer.Exit(code=1)

    console.print(f"[bold]{entry.epic.key or epic_key.upper()}[/bold] {entry.epic.fields.summary or ''}")
    console.print(f"Cached at {entry.last_updated} by {entry.saved_by}")

    table = Table(title="Children")
    table.add_column("Key", style="cyan")
    table.add_column("Summary", style="magenta")
    table.add_column("Status", style="green")
    table.add_column("Progress", style="blue")
    for child in entry.children:
        status = child.fields.status.name if child.fields.status else ""
        progress = child.fields.progress if child.fields.progress is not None else child.progress
        table.add_row(child.key or "", child.fields.summary or "", status or "", f"{progress or 0}%")
    console.print(table)


@epics_app.command("extra")
def epics_extra(
    user: str = typer.Option(..., help="User ID"),
    database_url: Optional[str] = typer.Option(None, help="Override database URL"),
):
    """Show the cached extra-epics summary."""

    async def action(services: Services):
        return await services.epic_cache.load_extra_epics_data(UserSession(user_id=user))

    epics = _run(action, database_url)
    if epics is None:
        console.print("[yellow]No extra epics summary cached[/yellow]")
        raise typer.Exit(code=1)

    table = Table(title="Extra Epics")
    table.add_column("Key", style="cyan")
    table.add_column("Summary", style="magenta")
    table.add_column("Status", style="green")
    table.add_column("Progress", style="blue")
    table.add_column("Children", style="blue")
    for e in epics:
        table.add_row(e.key, e.summary or "", e.status or "", f"{e.progress}%", f"{e.done_children}/{e.total_children}")
    console.print(table)


if __name__ == "__main__":
    app()
