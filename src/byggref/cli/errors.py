"""
Standardized error handling and exit codes for the byggref CLI.

This module provides consistent error messaging with actionable guidance
and standardized exit codes across all CLI commands.
"""

from enum import IntEnum

from rich.console import Console

console = Console(stderr=True)


class ExitCode(IntEnum):
    """Standard exit codes for byggref CLI operations."""

    SUCCESS = 0
    """Operation completed successfully."""

    GENERAL_ERROR = 1
    """Generic failure (invalid RefID, collision, allocation failure)."""

    USER_ERROR = 2
    """User configuration or input error (actionable by user)."""


def print_error(
    problem: str,
    *,
    reason: str | None = None,
    solution: str | None = None,
) -> None:
    """
    Print a standardized error message with actionable guidance.

    Args:
        problem: Brief description of what went wrong
        reason: Optional explanation of why it happened
        solution: Optional command or action to fix it

    Example:
        >>> print_error(
        ...     "Invalid RefID: FIL-26AB3K9XQ2-8",
        ...     reason="The checksum does not match",
        ...     solution="byggref normalize FIL-26AB3K9XQ2-8",
        ... )
    """
    console.print(f"[red]Error:[/red] {problem}", highlight=False)

    if reason:
        console.print(f"[dim]{reason}[/dim]", highlight=False)

    if solution:
        console.print(f"[cyan]→ Try:[/cyan] {solution}", highlight=False)


def print_invalid_ref_id_error(ref_id: str) -> None:
    """Print error when a RefID does not parse or has a wrong checksum."""
    print_error(
        f"Invalid RefID: {ref_id}",
        reason="Expected KIND-BODY-CHECKSUM with a matching checksum, e.g. FIL-26AB3K9XQ2-S",
        solution=f"byggref parse {ref_id}  # to see which part is wrong",
    )


def print_invalid_kind_error(kind: str, valid_kinds: list[str]) -> None:
    """Print error when an unknown RefID kind is given."""
    valid_str = ", ".join(valid_kinds)
    print_error(
        f"Invalid kind: {kind}",
        reason=f"Valid kinds are: {valid_str}",
        solution=f"Use one of: {valid_str}",
    )


def print_storage_error(detail: str) -> None:
    """Print error when the backing store cannot be used."""
    print_error(
        "Could not open the byggref store",
        reason=detail,
        solution="Check storage.path in .byggref.json or BYGGREF_STORAGE_PATH",
    )
