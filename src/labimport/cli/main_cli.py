"""
Top-level CLI that aggregates sub-apps from ingestion_cli and db_cli.
"""

import logging
from typing import Optional

import typer

from labimport.cli.db_cli import app as db_app
from labimport.cli.ingestion_cli import ingest_app
from labimport.core.config import get_settings

main_app = typer.Typer(help="labimport CLI")

# Add subcommands as Typer sub-apps:
main_app.add_typer(ingest_app, name="ingest")
main_app.add_typer(db_app, name="db")


@main_app.callback()
def configure(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level (defaults to LABIMPORT_LOG_LEVEL)"),
):
    level_name = (log_level or get_settings().log_level).upper()
    numeric_level = getattr(logging, level_name, None)
    if not isinstance(numeric_level, int):
        raise typer.BadParameter(f"Invalid log level: {level_name}")

    logging.basicConfig(
        level=numeric_level,
        format="%(levelname)s %(name)s - %(message)s"
    )


def main():
    main_app()


if __name__ == "__main__":
    main()
