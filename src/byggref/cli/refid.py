"""
Byggref CLI - RefID codec commands.

Generate, inspect and check RefIDs without touching the registry.
"""

import json
from datetime import datetime

import typer
from rich.console import Console
from rich.table import Table

from byggref.cli.errors import (
    ExitCode,
    print_error,
    print_invalid_kind_error,
    print_invalid_ref_id_error,
)
from byggref.core.config import load_config
from byggref.core.refid import (
    Base32DecodeError,
    RefIdKind,
    base32,
    compute_checksum,
    generate_ref_id,
    normalize_ref_id,
    parse_ref_id,
    validate_ref_id,
)

console = Console()


def parse_kind(value: str) -> RefIdKind:
    """Parse a kind argument case-insensitively, exiting with USER_ERROR if unknown."""
    try:
        return RefIdKind(value.strip().upper())
    except ValueError:
        print_invalid_kind_error(value, [kind.value for kind in RefIdKind])
        raise typer.Exit(ExitCode.USER_ERROR)


def _parse_date(value: str | None) -> datetime | None:
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        print_error(f"Invalid date: {value}", solution="Use ISO format, e.g. 2026-02-19")
        raise typer.Exit(ExitCode.USER_ERROR)


def generate(
    kind: str = typer.Argument(..., help="RefID kind: DOC or FIL"),
    workspace: str | None = typer.Option(
        None,
        "--workspace",
        "-w",
        help="Workspace label embedded as a 2-character tag",
    ),
    date: str | None = typer.Option(
        None,
        "--date",
        help="Date for the year prefix (ISO format, default: today)",
    ),
    count: int = typer.Option(
        1,
        "--count",
        "-n",
        min=1,
        help="Number of RefIDs to generate",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON",
    ),
) -> None:
    """
    Generate candidate RefIDs (not registered).

    Examples:
        byggref generate FIL
        byggref generate doc --workspace brf --count 5
    """
    ref_kind = parse_kind(kind)
    when = _parse_date(date)
    if workspace is None:
        workspace = load_config().refid.workspace_id

    ref_ids = [
        generate_ref_id(ref_kind, workspace_id=workspace, date=when) for _ in range(count)
    ]

    if json_output:
        typer.echo(json.dumps(ref_ids, indent=2))
        return
    for ref_id in ref_ids:
        typer.echo(ref_id)


def parse(
    ref_id: str = typer.Argument(..., help="RefID in any case or spacing"),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON",
    ),
) -> None:
    """
    Split a RefID into kind, body and checksum.

    Exits with 1 if the input does not have the RefID shape.
    """
    parts = parse_ref_id(ref_id)
    if parts is None:
        print_invalid_ref_id_error(ref_id)
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    expected = compute_checksum(parts.payload)
    data = {
        "refId": str(parts),
        "kind": parts.kind.value,
        "body": parts.body,
        "checksum": parts.checksum,
        "expectedChecksum": expected,
        "valid": parts.checksum == expected,
    }

    if json_output:
        typer.echo(json.dumps(data, indent=2))
        return

    table = Table(show_header=False, box=None)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("RefID", data["refId"])
    table.add_row("Kind", data["kind"])
    table.add_row("Body", data["body"])
    table.add_row("Checksum", f"{parts.checksum} (expected {expected})")
    table.add_row("Valid", "[green]yes[/green]" if data["valid"] else "[red]no[/red]")
    console.print(table)


def normalize(
    ref_id: str = typer.Argument(..., help="RefID in any case or spacing"),
) -> None:
    """Print the canonical KIND-BODY-CHECKSUM form."""
    typer.echo(normalize_ref_id(ref_id))


def validate(
    ref_id: str = typer.Argument(..., help="RefID to check"),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="No output, only the exit code",
    ),
) -> None:
    """
    Check a RefID's shape and checksum.

    Exits with 0 if valid, 1 otherwise.
    """
    canonical = normalize_ref_id(ref_id)
    if validate_ref_id(canonical):
        if not quiet:
            console.print(f"[green]✓[/green] {canonical} is valid", highlight=False)
        return

    if not quiet:
        print_invalid_ref_id_error(ref_id)
    raise typer.Exit(ExitCode.GENERAL_ERROR)


def encode(
    text: str = typer.Argument(..., help="Text to encode (UTF-8), or hex with --hex"),
    length: int | None = typer.Option(
        None,
        "--length",
        "-l",
        min=1,
        help="Truncate or zero-pad to this many characters",
    ),
    from_hex: bool = typer.Option(
        False,
        "--hex",
        help="Treat TEXT as hex bytes",
    ),
) -> None:
    """Base32-encode bytes with the RefID alphabet."""
    if from_hex:
        try:
            data = bytes.fromhex(text)
        except ValueError:
            print_error(f"Invalid hex: {text}")
            raise typer.Exit(ExitCode.USER_ERROR)
    else:
        data = text.encode("utf-8")
    typer.echo(base32.encode(data, length))


def decode(
    text: str = typer.Argument(..., help="Base32 text"),
    strict: bool = typer.Option(
        False,
        "--strict",
        help="Reject confusable letters, stray characters and bad padding",
    ),
) -> None:
    """
    Base32-decode text and print the bytes as hex.

    Lenient by default: case, separators and I/L/O/U mix-ups are forgiven.
    """
    if strict:
        try:
            data = base32.decode_strict(text)
        except Base32DecodeError as e:
            print_error(str(e))
            raise typer.Exit(ExitCode.GENERAL_ERROR)
    else:
        data = base32.decode(text)
    typer.echo(data.hex())
