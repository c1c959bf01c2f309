"""
Byggref CLI - RefID registry commands.

Allocate, register and resolve RefIDs in the configured store
(.byggref/store.json by default).
"""

import json
from collections.abc import Iterator
from contextlib import contextmanager

import typer
from rich.console import Console
from rich.table import Table

from byggref.cli.errors import (
    ExitCode,
    print_error,
    print_invalid_ref_id_error,
    print_storage_error,
)
from byggref.cli.refid import parse_kind
from byggref.core.config import load_config
from byggref.core.refid import (
    RefIdAllocationError,
    RefIdRegistry,
    RegistryEntry,
    normalize_ref_id,
    validate_ref_id,
)
from byggref.core.storage import StorageError
from byggref.core.storage.factory import open_registry, open_store

console = Console()
app = typer.Typer(help="Allocate, register and resolve RefIDs")


def get_registry() -> RefIdRegistry:
    """Open the registry described by the loaded configuration."""
    config = load_config()
    try:
        store = open_store(config)
    except StorageError as e:
        print_storage_error(str(e))
        raise typer.Exit(ExitCode.USER_ERROR)
    return open_registry(config, store)


@contextmanager
def storage_errors() -> Iterator[None]:
    """Report a store that fails on read or write and exit with 1."""
    try:
        yield
    except StorageError as e:
        print_storage_error(str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)


def _entry_dict(ref_id: str, entry: RegistryEntry) -> dict[str, str]:
    return {"refId": ref_id, **entry.to_storage_dict()}


@app.command()
def allocate(
    kind: str = typer.Argument(..., help="RefID kind: DOC or FIL"),
    entity_id: str = typer.Argument(..., help="Id of the file or document"),
    project: str | None = typer.Option(
        None,
        "--project",
        "-p",
        help="Project scope for lookups",
    ),
    workspace: str | None = typer.Option(
        None,
        "--workspace",
        "-w",
        help="Workspace label (default: refid.workspace_id from config)",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON",
    ),
) -> None:
    """
    Allocate and register a fresh RefID for an entity.

    Examples:
        byggref registry allocate FIL pfile-123 --project req-1
    """
    ref_kind = parse_kind(kind)
    registry = get_registry()
    if workspace is None:
        workspace = load_config().refid.workspace_id

    try:
        with storage_errors():
            ref_id = registry.allocate(
                ref_kind, entity_id, project_id=project, workspace_id=workspace
            )
    except RefIdAllocationError as e:
        print_error("Could not create a unique reference", reason=str(e))
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    if json_output:
        typer.echo(json.dumps({"refId": ref_id, "kind": ref_kind.value, "id": entity_id}))
        return
    typer.echo(ref_id)


@app.command()
def register(
    ref_id: str = typer.Argument(..., help="RefID to register"),
    kind: str = typer.Argument(..., help="RefID kind: DOC or FIL"),
    entity_id: str = typer.Argument(..., help="Id of the file or document"),
    project: str | None = typer.Option(
        None,
        "--project",
        "-p",
        help="Project scope for lookups",
    ),
    workspace: str | None = typer.Option(
        None,
        "--workspace",
        "-w",
        help="Workspace label",
    ),
) -> None:
    """
    Register an existing RefID for an entity.

    Registering the same RefID for the same entity again succeeds. Exits
    with 1 if the RefID is invalid or belongs to another entity.
    """
    ref_kind = parse_kind(kind)
    registry = get_registry()
    with storage_errors():
        result = registry.register(
            ref_id, ref_kind, entity_id, project_id=project, workspace_id=workspace
        )

    if result.ok:
        state = "already registered" if result.existing else "registered"
        console.print(f"[green]✓[/green] {result.ref_id} {state}", highlight=False)
        return

    if result.malformed_existing:
        print_error(
            f"{result.ref_id} is already taken",
            reason="Its registry entry cannot be read",
            solution=f"byggref registry allocate {ref_kind.value} {entity_id}",
        )
    elif result.existing is None:
        print_invalid_ref_id_error(ref_id)
    else:
        print_error(
            f"{result.ref_id} is already taken",
            reason=f"Owned by {result.existing.kind.value} {result.existing.id}",
            solution=f"byggref registry allocate {ref_kind.value} {entity_id}",
        )
    raise typer.Exit(ExitCode.GENERAL_ERROR)


@app.command()
def show(
    ref_id: str = typer.Argument(..., help="RefID to look up"),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON",
    ),
) -> None:
    """Show the registry entry for a RefID."""
    registry = get_registry()
    canonical = normalize_ref_id(ref_id)
    with storage_errors():
        entry = registry.get_entry(canonical)
    if entry is None:
        print_error(f"RefID not registered: {canonical}")
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    data = _entry_dict(canonical, entry)
    if json_output:
        typer.echo(json.dumps(data, indent=2))
        return

    table = Table(show_header=False, box=None)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for key, value in data.items():
        table.add_row(key, value)
    console.print(table)


@app.command()
def find(
    project: str = typer.Argument(..., help="Project the lookup is made from"),
    ref_id: str = typer.Argument(..., help="RefID to resolve"),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON",
    ),
) -> None:
    """
    Resolve a RefID to its entity within a project.

    Entries scoped to another project are not found.
    """
    if not validate_ref_id(ref_id):
        print_invalid_ref_id_error(ref_id)
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    registry = get_registry()
    with storage_errors():
        entity = registry.find_entity(project, ref_id)
    if entity is None:
        print_error(f"No entity for {normalize_ref_id(ref_id)} in project {project}")
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    if json_output:
        data = {"kind": entity.kind.value, "id": entity.id}
        if entity.project_id:
            data["projectId"] = entity.project_id
        typer.echo(json.dumps(data))
        return
    typer.echo(f"{entity.kind.value} {entity.id}")


@app.command(name="list")
def list_entries(
    kind: str | None = typer.Option(
        None,
        "--kind",
        "-k",
        help="Only show this kind",
    ),
    project: str | None = typer.Option(
        None,
        "--project",
        "-p",
        help="Only show entries scoped to this project",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON",
    ),
) -> None:
    """List registered RefIDs, oldest first."""
    ref_kind = parse_kind(kind) if kind else None
    registry = get_registry()
    with storage_errors():
        stored = registry.list_entries()
    entries = [
        (ref_id, entry)
        for ref_id, entry in stored
        if (ref_kind is None or entry.kind == ref_kind)
        and (project is None or entry.project_id == project)
    ]

    if json_output:
        typer.echo(json.dumps([_entry_dict(r, e) for r, e in entries], indent=2))
        return

    if not entries:
        console.print("[dim]No RefIDs registered[/dim]")
        return

    table = Table(title=f"RefIDs ({len(entries)})")
    table.add_column("RefID", style="cyan", no_wrap=True)
    table.add_column("Kind")
    table.add_column("Entity", no_wrap=True)
    table.add_column("Project")
    table.add_column("Created")
    for ref_id, entry in entries:
        table.add_row(
            ref_id,
            entry.kind.value,
            entry.id,
            entry.project_id or "-",
            entry.created_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)
