"""Init command implementation."""

import asyncio
from pathlib import Path

import psycopg
import typer
from rich.console import Console
from rich.panel import Panel

from ..config import Config, ConfigModel, default_config_path, save_config
from ..db import close_connection_pool, init_database, validate_connection
from ..logging_config import setup_logging

console = Console()


async def _init_schema(db_config: dict) -> bool:
    try:
        if not await validate_connection(db_config):
            return False
        await init_database(db_config)
        return True
    finally:
        await close_connection_pool()


def init_command(
    config_path: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file to write (default: $ECOSORT_CONFIG or ~/.config/ecosort/config.yaml)",
    ),
    db_host: str = typer.Option("localhost", "--db-host", help="Postgres host"),
    db_port: int = typer.Option(5432, "--db-port", help="Postgres port"),
    db_name: str = typer.Option("ecosort", "--db-name", help="Database name"),
    db_user: str = typer.Option("ecosort", "--db-user", help="Database user"),
    skip_db: bool = typer.Option(False, "--skip-db", help="Only write the config file"),
) -> None:
    """Write a default configuration and create the database schema."""
    console.print(Panel.fit("EcoSort source verification - Initialization", style="bold blue"))
    setup_logging("WARNING", console)

    if config_path is None:
        config_path = default_config_path()

    config = ConfigModel(
        postgres={
            "host": db_host,
            "port": db_port,
            "database": db_name,
            "user": db_user,
            "password_env": "ECOSORT_DB_PASSWORD",
            "dsn_env": "ECOSORT_DATABASE_URL",
        },
    )
    save_config(config, config_path)
    console.print(f"✅ Created config: {config_path}")

    if skip_db:
        return

    console.print("\n[bold]Initializing database schema...[/bold]")
    db_config = Config(config_path, config).get_db_config()
    try:
        ok = asyncio.run(_init_schema(db_config))
    except psycopg.Error as e:
        console.print(f"[red]❌ Failed to initialize database: {e}[/red]")
        raise typer.Exit(1)

    if not ok:
        console.print(
            "[red]❌ Database connection failed![/red]\n"
            "Please ensure Postgres is running and credentials are correct.\n"
            "Set the password via [bold]export ECOSORT_DB_PASSWORD=...[/bold] "
            "or a full DSN via [bold]export ECOSORT_DATABASE_URL=...[/bold]"
        )
        raise typer.Exit(1)

    console.print("✅ Database schema initialized")
