"""Configuration management for memory_kb.

This module contains all configurable constants for the knowledge base.
Magic numbers are documented here rather than scattered throughout the codebase.
"""

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError


class ConfigurationError(Exception):
    """Raised when configuration is missing or malformed."""

    pass


# =============================================================================
# Paths
# =============================================================================


def get_home() -> Path:
    """Get the directory holding entries, the search index and settings.

    Discovery order:
    1. MEMORY_KB_HOME environment variable (explicit override)
    2. ~/.memory
    """
    root = os.environ.get("MEMORY_KB_HOME")
    if root:
        return Path(root)
    return Path.home() / ".memory"


def get_entries_dir() -> Path:
    """Get the directory where entry source files are stored."""
    return get_home() / "entries"


def get_index_dir() -> Path:
    """Get the search index directory."""
    return get_home() / "search"


def get_settings_path() -> Path:
    """Get the path of the optional settings file."""
    return get_home() / "settings.yaml"


# =============================================================================
# Entries
# =============================================================================

# Maximum length of an entry name. Names become slugs and file names,
# so they are kept short enough to type and to display in one table column.
MAX_NAME_LENGTH = 50

# Prefix inside [brackets] marking a link whose target does not exist.
UNRESOLVED_MARKER = "?"


# =============================================================================
# Search Index
# =============================================================================

# Description characters kept in the index. The index stores an excerpt,
# not the full body; full text is read from the entry files.
EXCERPT_LENGTH = 200

# Default number of entries per results page
DEFAULT_PAGE_SIZE = 10

# Weight of a keyword match on the entry name relative to other fields
NAME_BOOST = 3.0


# =============================================================================
# Settings File
# =============================================================================


class Settings(BaseModel):
    """User settings read from settings.yaml."""

    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1)
    excerpt_length: int = Field(default=EXCERPT_LENGTH, ge=1)


def load_settings(path: Path | None = None) -> Settings:
    """Load settings from YAML, falling back to defaults when the file is absent.

    Raises:
        ConfigurationError: If the file exists but is not valid settings YAML.
    """
    path = path or get_settings_path()
    if not path.exists():
        return Settings()

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to read settings from {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Settings file {path} must contain a mapping")

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings in {path}: {e}") from e
