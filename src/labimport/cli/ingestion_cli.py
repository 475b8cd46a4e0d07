"""
CLI commands related to archive ingestion.

Focuses on CLI argument parsing & calling the import session from ingestion/session.py.
"""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from labimport.core.config import get_settings
from labimport.core.errors import LabImportError
from labimport.database.session import get_session
from labimport.ingestion.context import ImportContext
from labimport.ingestion.session import ImportSession, preview_archive

ingest_app = typer.Typer(help="Commands to import archive bundles into the database.")
console = Console()


@ingest_app.command("zip")
def ingest_zip_cmd(
    archive_path: Path = typer.Argument(..., help="Path to the archive zip file"),
    target: int = typer.Option(..., "--target", "-t", help="Item type id for items, owner user id for experiments"),
    user_id: int = typer.Option(..., "--user", "-u", help="Id of the importing user"),
    team_id: int = typer.Option(..., "--team", help="Id of the importing team"),
    strict: bool = typer.Option(False, "--strict", help="Reject manifests mixing items and experiments"),
    progress: bool = typer.Option(False, "--progress", help="Show a progress bar"),
):
    """
    Import every record of an archive bundle.
    """
    settings = get_settings().model_copy(update={
        "strict_manifest": strict or get_settings().strict_manifest,
        "show_progress": progress or get_settings().show_progress,
    })
    context = ImportContext(user_id=user_id, team_id=team_id)

    console.print(f"Starting import of [bold]{archive_path}[/bold]")
    try:
        with get_session() as db:
            result = ImportSession(archive_path, context, target, db, settings=settings).run()
    except LabImportError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        if e.inserted:
            console.print(f"[yellow]{e.inserted} record(s) were imported before the error[/yellow]")
        raise typer.Exit(code=1)

    console.print(f"[bold green]Imported {result.inserted} {result.kind.value}[/bold green]")
    console.print(f"Attachments stored: {result.attached}")
    if result.skipped_attachments:
        console.print(f"[yellow]Attachments not found in archive: {result.skipped_attachments}[/yellow]")


@ingest_app.command("inspect")
def inspect_cmd(
    archive_path: Path = typer.Argument(..., help="Path to the archive zip file"),
    limit: int = typer.Option(20, "--limit", "-n", help="Number of records to show"),
):
    """
    Show what an archive would import, without touching the database.
    """
    try:
        manifest, attachments = preview_archive(archive_path)
    except LabImportError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1)

    kind_source = "declared" if manifest.explicit_kind else "detected"
    console.print(f"[bold]Archive:[/bold] {archive_path}")
    console.print(f"[bold]Kind:[/bold] {manifest.kind.value} ({kind_source})")
    console.print(f"[bold]Records:[/bold] {len(manifest)}")
    if manifest.divergent:
        console.print(f"[yellow]Records not shaped like {manifest.kind.value}: {manifest.divergent}[/yellow]")

    table = Table(title=f"Records in {archive_path.name}")
    table.add_column("#", style="cyan")
    table.add_column("Title")
    table.add_column("Date", style="green")
    table.add_column("Tags", style="magenta")
    table.add_column("Attachments", style="yellow")

    for index, record in enumerate(manifest.records[:limit]):
        found = sum(1 for a in attachments[index] if a.exists)
        table.add_row(
            str(index),
            record.title or "",
            record.date or "",
            record.tags or "",
            f"{found}/{len(attachments[index])}",
        )

    console.print(table)
    if len(manifest) > limit:
        console.print(f"\nShowing {limit} of {len(manifest)} records. Use --limit to show more.")
