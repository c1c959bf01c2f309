"""
Byggref CLI - Main application entry point.

This module sets up the Typer CLI application with all subcommands.
"""

import logging

import typer
from rich.console import Console

from byggref import __version__
from byggref.cli import refid, registry
from byggref.core.config.env import load_layered_env

# Help panel names for command grouping
PANEL_REFID = "Work with RefIDs"
PANEL_CODEC = "Base32 Codec"
PANEL_REGISTRY = "Registry"
PANEL_INSTALL = "About"

app = typer.Typer(
    name="byggref",
    help="Checksummed reference IDs for project files and documents",
    no_args_is_help=True,
    add_completion=False,
    context_settings={"help_option_names": ["--help", "-h"]},
)

console = Console()


@app.callback()
def main(
    ctx: typer.Context,
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug output with detailed logging",
    ),
) -> None:
    """
    Byggref - RefIDs like FIL-26AB3K9XQ2-S.

    A RefID is KIND-BODY-CHECKSUM: a namespace (DOC, FIL), a body of year,
    optional workspace tag and random symbols, and a checksum character
    that catches typos.

    Quick Start:
        byggref generate FIL                      # A candidate RefID
        byggref validate fil-26ab3k9xq2-s         # Check one
        byggref registry allocate FIL pfile-1     # Reserve one for an entity
        byggref registry find req-1 FIL-...       # Resolve it again
    """
    # Precedence: OS env > project .env > user .env
    load_layered_env()

    if debug:
        logging.basicConfig(level=logging.DEBUG)

    ctx.obj = {"debug": debug}


# =============================================================================
# Work with RefIDs
# =============================================================================

app.command(name="generate", rich_help_panel=PANEL_REFID)(refid.generate)
app.command(name="parse", rich_help_panel=PANEL_REFID)(refid.parse)
app.command(name="normalize", rich_help_panel=PANEL_REFID)(refid.normalize)
app.command(name="validate", rich_help_panel=PANEL_REFID)(refid.validate)

# =============================================================================
# Base32 Codec
# =============================================================================

app.command(name="encode", rich_help_panel=PANEL_CODEC)(refid.encode)
app.command(name="decode", rich_help_panel=PANEL_CODEC)(refid.decode)

# =============================================================================
# Registry
# =============================================================================

app.add_typer(registry.app, name="registry", rich_help_panel=PANEL_REGISTRY)


@app.command(rich_help_panel=PANEL_INSTALL)
def version() -> None:
    """Show byggref version and exit."""
    console.print(f"byggref version {__version__}", highlight=False)
    raise typer.Exit(0)


def cli_main() -> None:
    """Main CLI entry point."""
    app()


__all__ = ["app", "cli_main"]
