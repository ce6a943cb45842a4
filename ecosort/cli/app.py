"""Main CLI application."""

import typer
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()

from .check import check_command, lookup_command, report_command
from .init import init_command

app = typer.Typer(
    name="ecosort",
    help="EcoSort source verification - probe, cache and audit municipal recycling sources",
    no_args_is_help=True,
)

# Register commands
app.command("init")(init_command)
app.command("check")(check_command)
app.command("lookup")(lookup_command)
app.command("report")(report_command)


if __name__ == "__main__":
    app()
