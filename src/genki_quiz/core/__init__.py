"""Core shared helpers for genki-quiz commands."""

from __future__ import annotations

from .config import (
    EnvReader,
    TomlConfigError,
    load_into_defaults,
    load_toml,
    merge_defaults,
    pick_first,
    write_toml_template,
)
from .logging import JsonLogFormatter, configure_logger
from .workspace import (
    WORKSPACE_ENV,
    WorkspaceError,
    WorkspaceLayout,
    ensure_workspace,
)

__all__ = [
    "EnvReader",
    "TomlConfigError",
    "load_into_defaults",
    "load_toml",
    "merge_defaults",
    "pick_first",
    "write_toml_template",
    "configure_logger",
    "JsonLogFormatter",
    "ensure_workspace",
    "WorkspaceLayout",
    "WorkspaceError",
    "WORKSPACE_ENV",
]
