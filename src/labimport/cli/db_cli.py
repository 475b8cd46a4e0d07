"""
Database management CLI for labimport.
"""

import logging

import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from labimport.database.models import Experiment, Item, ItemType, Status, Tag, TagLink, Upload
from labimport.database.session import db_session, init_db

logger = logging.getLogger(__name__)
console = Console()

app = typer.Typer(help="Database management commands")

COUNTED_MODELS = [ItemType, Status, Item, Experiment, Upload, Tag, TagLink]


@db_session
def row_counts(session):
    return [
        (model.__tablename__, session.query(func.count(model.id)).scalar())
        for model in COUNTED_MODELS
    ]


@app.command()
def init():
    """
    Create the database tables.
    """
    try:
        init_db()
    except SQLAlchemyError as e:
        console.print(f"[bold red]Error creating tables:[/bold red] {e}")
        raise typer.Exit(code=1)
    console.print("[bold green]Database tables created[/bold green]")


@app.command()
def info():
    """
    Display row counts of the import tables.
    """
    try:
        counts = row_counts()
    except SQLAlchemyError as e:
        logger.error(f"Error querying database: {e}")
        console.print(f"[bold red]Error querying database:[/bold red] {e}")
        raise typer.Exit(code=1)

    table = Table(title="Database Information")
    table.add_column("Table", style="cyan")
    table.add_column("Rows", style="green")
    for name, count in counts:
        table.add_row(name, str(count))
    console.print(table)
