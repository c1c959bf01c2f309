"""Environment file loading.

Settings can come from exported variables or from .env files:

  os.environ (pre-existing) > project .env > user .env

A .env file never overrides a variable already exported in the shell,
but a project .env may override a value that came from the user .env.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable

from dotenv import dotenv_values


def _read_env(path: Path) -> dict[str, str]:
    if not path.exists():
        return {}
    return {str(k): str(v) for k, v in dotenv_values(path).items() if k and v is not None}


def load_layered_env(
    *,
    project_dir: Path | None = None,
    user_env_paths: Iterable[Path] | None = None,
    project_env_paths: Iterable[Path] | None = None,
) -> set[str]:
    """Load BYGGREF_* and other variables from user + project .env files.

    Args:
        project_dir: base directory for project env paths (defaults to cwd)
        user_env_paths: explicit user env file paths
        project_env_paths: explicit project env file paths

    Returns:
        The keys this call added to os.environ
    """
    if project_dir is None:
        project_dir = Path.cwd()

    if user_env_paths is None:
        xdg_home = Path(os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config")))
        user_env_paths = [xdg_home / "byggref" / ".env"]

    if project_env_paths is None:
        project_env_paths = [project_dir / ".env", project_dir / ".env.local"]

    loaded: set[str] = set()
    for p in user_env_paths:
        for k, v in _read_env(Path(p)).items():
            if k not in os.environ:
                os.environ[k] = v
                loaded.add(k)

    for p in project_env_paths:
        for k, v in _read_env(Path(p)).items():
            if k not in os.environ or k in loaded:
                os.environ[k] = v
                loaded.add(k)

    return loaded
