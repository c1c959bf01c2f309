"""
Byggref - checksummed reference IDs for project files and documents.

A small library and CLI that allocates, validates and resolves
human-readable identifiers such as ``FIL-26AB3K9XQ2-S``.
"""

__version__ = "0.3.0-dev"

# Re-export core models for convenience
from byggref.core.config.models import ByggrefConfig
from byggref.core.refid.models import RefIdKind, RegistryEntry

__all__ = ["ByggrefConfig", "RefIdKind", "RegistryEntry", "__version__"]
