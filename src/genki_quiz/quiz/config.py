"""Configuration loader for quiz runs."""

from __future__ import annotations

import os
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional, Sequence

from genki_quiz.core import config as core_config
from genki_quiz.core import workspace as workspace_mod

CONFIG_FILENAME = "genki_quiz.toml"
CONFIG_ENV = "GENKI_QUIZ_CONFIG"
ENV_PREFIX = "GENKI_QUIZ_"

_TEMPLATE_PACKAGE = "genki_quiz.quiz"
_NO_SEED = -1
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class QuizConfigError(RuntimeError):
    """Raised when configuration parsing or validation fails."""


@dataclass(frozen=True)
class QuizConfig:
    """Fully resolved configuration for a quiz run."""

    bank_path: Path
    sheet: str
    chapters: tuple[str, ...]
    mini_length: int
    option_count: int
    reveal_seconds: float
    seed: Optional[int]
    log_level: str


@dataclass(frozen=True)
class ConfigOverrides:
    """CLI-sourced overrides applied on top of file/env options."""

    bank_path: Optional[Path] = None
    sheet: Optional[str] = None
    seed: Optional[int] = None
    log_level: Optional[str] = None


@dataclass(frozen=True)
class LoadResult:
    """Result of loading configuration, including workspace context."""

    config: QuizConfig
    layout: workspace_mod.WorkspaceLayout
    config_path: Optional[Path]


def load_config(
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[ConfigOverrides] = None,
    env: Optional[Mapping[str, str]] = None,
    workspace_path: Optional[Path] = None,
) -> LoadResult:
    """Load configuration applying precedence CLI > env > TOML > defaults."""

    overrides = overrides or ConfigOverrides()
    env_map = os.environ if env is None else env
    env_reader = core_config.EnvReader(env_map, ENV_PREFIX)

    try:
        layout = workspace_mod.ensure_workspace(
            env=env_map, path=workspace_path
        )
    except workspace_mod.WorkspaceError as exc:
        raise QuizConfigError(str(exc)) from exc

    requested_path = _resolve_config_path(
        config_path=config_path,
        env_map=env_map,
        default_path=layout.path_for("config") / CONFIG_FILENAME,
    )

    table = _default_table()
    loaded_path: Optional[Path] = None
    if requested_path.exists():
        try:
            core_config.load_into_defaults(table, requested_path)
        except core_config.TomlConfigError as exc:
            raise QuizConfigError(str(exc)) from exc
        loaded_path = requested_path
    elif config_path is not None or (env_map.get(CONFIG_ENV) or "").strip():
        raise QuizConfigError(f"Config file not found: {requested_path}")

    try:
        env_values = {
            "bank_path": env_reader.path("BANK_PATH"),
            "sheet": env_reader.string("BANK_SHEET"),
            "mini_length": env_reader.integer("MINI_LENGTH"),
            "reveal_seconds": env_reader.number("REVEAL_SECONDS"),
            "seed": env_reader.integer("SEED"),
            "log_level": env_reader.string("LOG_LEVEL"),
        }
    except core_config.TomlConfigError as exc:
        raise QuizConfigError(str(exc)) from exc

    bank_table = table["bank"]
    quiz_table = table["quiz"]

    config = QuizConfig(
        bank_path=_resolve_bank_path(
            override=overrides.bank_path,
            configured=core_config.pick_first(
                env_values["bank_path"], bank_table["path"]
            ),
            layout=layout,
        ),
        sheet=_require_string(
            core_config.pick_first(
                overrides.sheet, env_values["sheet"], bank_table["sheet"]
            ),
            field="bank.sheet",
        ),
        chapters=_normalize_chapters(quiz_table["chapters"]),
        mini_length=_require_int(
            core_config.pick_first(
                env_values["mini_length"], quiz_table["mini_length"]
            ),
            field="quiz.mini_length",
            minimum=1,
        ),
        option_count=_require_int(
            quiz_table["option_count"], field="quiz.option_count", minimum=2
        ),
        reveal_seconds=_require_seconds(
            core_config.pick_first(
                env_values["reveal_seconds"], quiz_table["reveal_seconds"]
            )
        ),
        seed=_resolve_seed(
            core_config.pick_first(
                overrides.seed, env_values["seed"], quiz_table["seed"]
            )
        ),
        log_level=_resolve_log_level(
            core_config.pick_first(
                overrides.log_level,
                env_values["log_level"],
                table["logging"]["level"],
            )
        ),
    )
    return LoadResult(config=config, layout=layout, config_path=loaded_path)


def template_text() -> str:
    """Return the packaged configuration template."""

    resource = resources.files(_TEMPLATE_PACKAGE).joinpath(CONFIG_FILENAME)
    return resource.read_text(encoding="utf-8")


def write_config_template(path: Path, *, overwrite: bool = False) -> Path:
    try:
        return core_config.write_toml_template(
            path, template=template_text(), overwrite=overwrite
        )
    except core_config.TomlConfigError as exc:
        raise QuizConfigError(str(exc)) from exc


def _default_table() -> MutableMapping[str, MutableMapping[str, Any]]:
    return {
        "bank": {"path": "quizsheet.xlsx", "sheet": "Sheet1"},
        "quiz": {
            "chapters": ["1", "2", "3", "4"],
            "mini_length": 10,
            "option_count": 4,
            "reveal_seconds": 2.0,
            "seed": _NO_SEED,
        },
        "logging": {"level": "INFO"},
    }


def _resolve_config_path(
    *,
    config_path: Optional[Path],
    env_map: Mapping[str, str],
    default_path: Path,
) -> Path:
    if config_path is not None:
        return config_path.expanduser()
    env_candidate = (env_map.get(CONFIG_ENV) or "").strip()
    if env_candidate:
        return Path(env_candidate).expanduser()
    return default_path


def _resolve_bank_path(
    *,
    override: Optional[Path],
    configured: object,
    layout: workspace_mod.WorkspaceLayout,
) -> Path:
    # Command-line paths are relative to the caller; configured ones to the
    # workspace banks directory.
    if override is not None:
        return override.expanduser().resolve()
    if isinstance(configured, Path):
        candidate = configured
    elif isinstance(configured, str) and configured.strip():
        candidate = Path(configured.strip()).expanduser()
    else:
        raise QuizConfigError("bank.path must be a non-empty string.")
    if not candidate.is_absolute():
        candidate = layout.path_for("banks") / candidate
    return candidate.resolve()


def _normalize_chapters(value: object) -> tuple[str, ...]:
    if not isinstance(value, Sequence) or isinstance(value, (str, bytes)):
        raise QuizConfigError("quiz.chapters must be a list of strings.")
    seen: set[str] = set()
    chapters: list[str] = []
    for item in value:
        if isinstance(item, bool) or not isinstance(item, (str, int)):
            raise QuizConfigError("quiz.chapters entries must be strings.")
        key = str(item).strip()
        if not key:
            raise QuizConfigError("quiz.chapters entries must be non-empty.")
        if key not in seen:
            seen.add(key)
            chapters.append(key)
    return tuple(chapters)


def _require_string(value: object, *, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise QuizConfigError(f"'{field}' must be a non-empty string.")
    return value.strip()


def _require_int(value: object, *, field: str, minimum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise QuizConfigError(f"'{field}' must be an integer.")
    if value < minimum:
        raise QuizConfigError(f"'{field}' must be at least {minimum}.")
    return value


def _require_seconds(value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise QuizConfigError("'quiz.reveal_seconds' must be a number.")
    seconds = float(value)
    if seconds < 0:
        raise QuizConfigError("'quiz.reveal_seconds' must not be negative.")
    return seconds


def _resolve_seed(value: object) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, int):
        raise QuizConfigError("'quiz.seed' must be an integer.")
    return None if value == _NO_SEED else value


def _resolve_log_level(value: object) -> str:
    if not isinstance(value, str) or not value.strip():
        raise QuizConfigError("logging.level must be a non-empty string.")
    level = value.strip().upper()
    if level not in LOG_LEVELS:
        expected = ", ".join(LOG_LEVELS)
        raise QuizConfigError(
            f"logging.level must be one of {expected}; got '{value}'."
        )
    return level
