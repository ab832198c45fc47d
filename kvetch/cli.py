from pathlib import Path
from typing import Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from kvetch import __version__
from kvetch.config import DEFAULT_CONFIG_FILE, SettingsError, get_settings, load_settings
from kvetch.errors import ErrorKind, KIND_PREFIXES, get_entry, list_entries
from kvetch.logging_config import get_logger, setup_logging

app = typer.Typer(
    name="kvetch",
    help="kvetch - inspect the error catalog and settings of the call verification engine",
    add_completion=False
)
console = Console()
logger = get_logger("cli")


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", "-l", help="Override the configured log level"),
):
    """Configure logging from kvetch.yaml (or $KVETCH_CONFIG) before running a command"""
    try:
        settings = get_settings()
    except (FileNotFoundError, SettingsError) as e:
        rprint(f"[red]Invalid settings: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    setup_logging(level=log_level or settings.log_level, log_file=settings.log_file)
    logger.debug(f"Resolved settings: {settings.model_dump()}")


@app.command()
def codes(
    kind: Optional[str] = typer.Option(None, "--kind", "-k", help="Filter by kind (BuildError, RuntimeError, ...)")
):
    """List every error code kvetch can raise"""

    selected = None
    if kind:
        try:
            selected = ErrorKind(kind)
        except ValueError:
            known = ", ".join(k.value for k in ErrorKind)
            rprint(f"[red]Unknown kind '{kind}'. Choose one of: {known}[/red]")
            raise typer.Exit(1)

    table = Table(title=f"kvetch {__version__} error catalog")
    table.add_column("Code", style="cyan", justify="right")
    table.add_column("Name", style="green", no_wrap=True)
    table.add_column("Kind", style="magenta")
    table.add_column("Message")

    entries = list_entries(selected)
    logger.debug(f"Listing {len(entries)} catalog entries (kind={selected.value if selected else 'all'})")
    for entry in entries:
        table.add_row(str(entry.code), entry.name, entry.kind.value, entry.template)

    console.print(table)


@app.command()
def explain(code: int = typer.Argument(..., help="Numeric error code, e.g. 3001")):
    """Show the catalog entry for one error code"""

    entry = get_entry(code)
    logger.debug(f"Catalog lookup for {code}: {entry.name if entry else 'not found'}")
    if entry is None:
        rprint(f"[yellow]No error with code {code}[/yellow]")
        raise typer.Exit(1)

    rprint(f"[bold]{entry.code}[/bold] {entry.name}")
    rprint(f"Kind: {entry.kind.value} ({KIND_PREFIXES[entry.kind]})")
    rprint(f"Message: {entry.template}")


@app.command()
def config(path: Optional[Path] = typer.Argument(None, help=f"Settings file (defaults to {DEFAULT_CONFIG_FILE})")):
    """Validate a settings file and print the effective settings"""

    try:
        logger.debug(f"Validating settings from {path or 'default lookup'}")
        settings = load_settings(path) if path else get_settings()
    except FileNotFoundError as e:
        rprint(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)
    except SettingsError as e:
        rprint(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)

    table = Table(title="kvetch settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    for name, value in settings.model_dump().items():
        table.add_row(name, str(value))

    console.print(table)


if __name__ == "__main__":
    app()
