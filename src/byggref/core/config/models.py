"""
Configuration data models for byggref.

These models define the structure of .byggref.json and
~/.config/byggref/config.json files, with validation and type safety
via Pydantic.
"""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from byggref.core.refid.registry import REGISTRY_STORAGE_KEY


class StorageConfig(BaseModel):
    """
    Where registry and record blobs are persisted.

    The path is relative to the project directory unless absolute.
    """
    backend: str = Field(
        default="json",
        pattern="^(json|sqlite|memory)$",
        description="Key-value backend: 'json', 'sqlite' or 'memory'"
    )
    path: Optional[str] = Field(
        default=None,
        description="Store location (defaults to .byggref/store.json or .byggref/store.db)"
    )
    registry_key: str = Field(
        default=REGISTRY_STORAGE_KEY,
        min_length=1,
        description="Key holding the RefID registry blob"
    )

    def resolve_path(self, project_dir: Path | None = None) -> Path:
        """
        Resolve the store path for the configured backend.

        Args:
            project_dir: Base for relative paths (defaults to cwd)

        Returns:
            Absolute or project-relative path to the store file
        """
        base = project_dir or Path.cwd()
        if self.path:
            candidate = Path(self.path).expanduser()
            return candidate if candidate.is_absolute() else base / candidate
        suffix = "db" if self.backend == "sqlite" else "json"
        return base / ".byggref" / f"store.{suffix}"


class RefIdConfig(BaseModel):
    """
    RefID allocation settings.
    """
    max_attempts: int = Field(
        default=24,
        ge=1,
        description="Candidates tried before allocation gives up"
    )
    workspace_id: Optional[str] = Field(
        default=None,
        description="Default workspace label embedded in generated RefIDs"
    )

    @field_validator("workspace_id")
    @classmethod
    def blank_workspace_is_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat a blank workspace label as unset."""
        if v is not None and not v.strip():
            return None
        return v


class ByggrefConfig(BaseModel):
    """
    Top-level byggref configuration.

    Loaded from defaults, user config, project config, and env vars.

    Example:
        >>> config = ByggrefConfig(storage=StorageConfig(backend="sqlite"))
        >>> config.refid.max_attempts
        24
    """
    storage: StorageConfig = Field(
        default_factory=StorageConfig,
        description="Backing store settings"
    )
    refid: RefIdConfig = Field(
        default_factory=RefIdConfig,
        description="RefID allocation settings"
    )

    model_config = ConfigDict(
        extra="allow",  # Allow extra fields for forward compatibility
        validate_assignment=True,
    )
