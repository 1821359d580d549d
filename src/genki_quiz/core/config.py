"""TOML and environment helpers shared by genki-quiz configuration loaders.

Loaders layer their settings as CLI > environment > TOML file > defaults. The
helpers here cover the two lower layers: reading a TOML document into a
defaults table that rejects unknown keys, and pulling prefixed environment
variables out of a mapping.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional

try:  # Python >= 3.11 ships ``tomllib`` in the stdlib.
    import tomllib
except ModuleNotFoundError as exc:  # pragma: no cover - interpreter guard
    raise RuntimeError("Python 3.11+ is required for tomllib support.") from exc

__all__ = [
    "TomlConfigError",
    "EnvReader",
    "load_toml",
    "load_into_defaults",
    "merge_defaults",
    "pick_first",
    "write_toml_template",
]


class TomlConfigError(RuntimeError):
    """Raised when TOML config IO or validation fails."""


def load_toml(path: Path) -> Mapping[str, Any]:
    """Load a TOML document from ``path``.

    Errors are surfaced as :class:`TomlConfigError` instances so callers can
    translate them into domain-specific exceptions.
    """

    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except FileNotFoundError as exc:
        raise TomlConfigError(f"Config file not found: {path}") from exc
    except IsADirectoryError as exc:
        raise TomlConfigError(f"Config path is a directory: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise TomlConfigError(f"Failed to parse config TOML: {exc}") from exc


def merge_defaults(
    base: MutableMapping[str, Any],
    override: Mapping[str, Any],
    *,
    path: str = "",
) -> None:
    """Recursively merge ``override`` into ``base`` enforcing known keys."""

    for key, value in override.items():
        dotted = f"{path}{key}" if path else key
        if key not in base:
            raise TomlConfigError(f"Unknown configuration key '{dotted}'.")
        base_value = base[key]
        if isinstance(base_value, MutableMapping):
            if not isinstance(value, Mapping):
                raise TomlConfigError(
                    "Expected table for '{0}', found {1}.".format(
                        dotted,
                        type(value).__name__,
                    )
                )
            merge_defaults(base_value, value, path=f"{dotted}.")
            continue
        base[key] = value


def load_into_defaults(
    defaults: MutableMapping[str, Any], path: Path
) -> MutableMapping[str, Any]:
    """Read ``path`` and merge it into ``defaults`` in place."""

    merge_defaults(defaults, load_toml(path))
    return defaults


def write_toml_template(
    path: Path,
    *,
    template: str,
    overwrite: bool = False,
    mode: int = 0o600,
) -> Path:
    """Write ``template`` to ``path`` honouring ``overwrite`` semantics."""

    path.parent.mkdir(parents=True, exist_ok=True)
    if path.exists() and not overwrite:
        raise TomlConfigError(f"Config already exists: {path}")
    with path.open("w", encoding="utf-8") as handle:
        handle.write(template)
    try:
        path.chmod(mode)
    except PermissionError:  # pragma: no cover - depends on filesystem
        pass
    return path


class EnvReader:
    """Typed access to ``<prefix><KEY>`` environment variables.

    Blank values count as unset. Conversion failures raise
    :class:`TomlConfigError` naming the full variable.
    """

    def __init__(self, env: Mapping[str, str], prefix: str) -> None:
        self._env = env
        self._prefix = prefix

    def name(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def string(self, key: str) -> Optional[str]:
        raw = self._env.get(self.name(key))
        if raw is None:
            return None
        value = raw.strip()
        return value or None

    def path(self, key: str) -> Optional[Path]:
        raw = self.string(key)
        if raw is None:
            return None
        return Path(raw).expanduser()

    def integer(self, key: str) -> Optional[int]:
        raw = self.string(key)
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError as exc:
            raise TomlConfigError(
                f"{self.name(key)} must be an integer, got '{raw}'."
            ) from exc

    def number(self, key: str) -> Optional[float]:
        raw = self.string(key)
        if raw is None:
            return None
        try:
            return float(raw)
        except ValueError as exc:
            raise TomlConfigError(
                f"{self.name(key)} must be a number, got '{raw}'."
            ) from exc


def pick_first(*candidates: object) -> object:
    """Return the first candidate that is not ``None``."""

    for candidate in candidates:
        if candidate is not None:
            return candidate
    return None
