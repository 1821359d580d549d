"""JSON log files for genki-quiz commands.

Each command configures the ``genki_quiz`` logger once. Records land in a
rotating ``<name>.log`` under the workspace ``logs/`` directory, one JSON
object per line, with anything passed through ``extra=`` collected under an
``"extra"`` key. ``--verbose`` mirrors records to stderr as plain text.
"""

from __future__ import annotations

import json
import logging
import sys
import tempfile
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

__all__ = [
    "JsonLogFormatter",
    "configure_logger",
]

MAX_BYTES = 2 * 1024 * 1024
BACKUP_COUNT = 3

# Attributes every LogRecord carries, plus the two Formatter.format adds.
_RECORD_FIELDS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime"}


class JsonLogFormatter(logging.Formatter):
    """Emit log records as structured JSON lines."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        extra = {
            key: _jsonable(value)
            for key, value in vars(record).items()
            if key not in _RECORD_FIELDS
        }
        if extra:
            payload["extra"] = extra
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = record.stack_info
        return json.dumps(payload, ensure_ascii=False)


class _LogFileHandler(RotatingFileHandler):
    """Rotating JSON file handler owned by :func:`configure_logger`."""

    def __init__(self, path: Path) -> None:
        super().__init__(
            path,
            maxBytes=MAX_BYTES,
            backupCount=BACKUP_COUNT,
            encoding="utf-8",
        )
        self.setFormatter(JsonLogFormatter())


class _StderrHandler(logging.StreamHandler):
    """Plain-text mirror enabled by ``--verbose``."""

    def __init__(self) -> None:
        super().__init__(stream=sys.stderr)
        self.setLevel(logging.DEBUG)
        self.setFormatter(logging.Formatter("%(levelname)s %(message)s"))


def configure_logger(
    name: str,
    *,
    log_dir: Path,
    level: str = "INFO",
    verbose: bool = False,
) -> tuple[logging.Logger, Path]:
    """Attach JSON file output to ``name`` and return it with the log path.

    Child loggers (``genki_quiz.quiz.session`` and friends) propagate into
    the configured logger, so configuring ``"genki_quiz"`` once captures the
    whole package. Calling again reuses the existing file handler and only
    adjusts its level and the stderr mirror.
    """

    logger = logging.getLogger(name)
    logger.propagate = False
    logger.setLevel(logging.DEBUG)

    file_handler = _find_handler(logger, _LogFileHandler)
    if file_handler is None:
        filename = f"{name.rsplit('.', 1)[-1]}.log"
        file_handler = _open_log_file(log_dir, filename)
        logger.addHandler(file_handler)
    file_handler.setLevel(logging.DEBUG if verbose else _coerce_level(level))

    mirror = _find_handler(logger, _StderrHandler)
    if verbose and mirror is None:
        logger.addHandler(_StderrHandler())
    elif not verbose and mirror is not None:
        logger.removeHandler(mirror)
        mirror.close()

    return logger, Path(file_handler.baseFilename)


def _find_handler(logger: logging.Logger, kind: type) -> Any:
    for handler in logger.handlers:
        if isinstance(handler, kind):
            return handler
    return None


def _open_log_file(log_dir: Path, filename: str) -> _LogFileHandler:
    """Open ``filename`` in ``log_dir``, falling back to the temp dir."""

    last_error: PermissionError | None = None
    for directory in (log_dir, _fallback_log_dir()):
        try:
            directory.mkdir(parents=True, exist_ok=True)
            _restrict(directory, 0o700)
            path = directory / filename
            path.touch(exist_ok=True)
            _restrict(path, 0o600)
            return _LogFileHandler(path)
        except PermissionError as exc:
            last_error = exc
    assert last_error is not None
    raise last_error


def _restrict(path: Path, mode: int) -> None:
    try:
        path.chmod(mode)
    except PermissionError:  # pragma: no cover - depends on filesystem
        pass


def _coerce_level(level: str) -> int:
    numeric = logging.getLevelName(level.upper())
    if isinstance(numeric, int):
        return numeric
    return logging.INFO


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, dict):
        return {str(key): _jsonable(val) for key, val in value.items()}
    if isinstance(value, (frozenset, set)):
        return sorted((_jsonable(item) for item in value), key=str)
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return repr(value)


def _fallback_log_dir() -> Path:
    return Path(tempfile.gettempdir()) / "genki-quiz-logs"
