"""Command handlers for ``genki-quiz chapters``, ``play`` and ``tui``."""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from rich.console import Console
from rich.table import Table
from rich.text import Text

from genki_quiz.core import configure_logger

from . import config as config_mod
from . import randomness
from .bank import QuestionBank, load_bank
from .console import InputProvider, chapter_menu, run_console_quiz
from .errors import LoadError
from .session import QuizSession

LOGGER_NAME = "genki_quiz"


@dataclass(frozen=True)
class _Prepared:
    result: config_mod.LoadResult
    bank: QuestionBank
    logger: logging.Logger

    @property
    def config(self) -> config_mod.QuizConfig:
        return self.result.config


def _build_parser(prog: str, description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog, description=description)
    parser.add_argument(
        "--bank",
        type=Path,
        help="Question source (.xlsx or .csv); overrides [bank].path.",
    )
    parser.add_argument("--sheet", help="Worksheet name for workbooks.")
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to genki_quiz.toml (defaults to the workspace config).",
    )
    parser.add_argument(
        "--workspace",
        type=Path,
        help=(
            "Override the workspace root (defaults to GENKI_QUIZ_DATA_HOME "
            "or ~/.genki-quiz-data)."
        ),
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Seed the random source for a reproducible run (-1: entropy).",
    )
    parser.add_argument(
        "--log-level",
        choices=config_mod.LOG_LEVELS,
        type=str.upper,
        help="File log level.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Mirror log output to stderr at DEBUG level.",
    )
    return parser


def _prepare(args: argparse.Namespace) -> tuple[Optional[_Prepared], int]:
    overrides = config_mod.ConfigOverrides(
        bank_path=args.bank,
        sheet=args.sheet,
        seed=args.seed,
        log_level=args.log_level,
    )
    try:
        result = config_mod.load_config(
            config_path=args.config,
            overrides=overrides,
            workspace_path=args.workspace,
        )
    except config_mod.QuizConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return None, 2

    config = result.config
    logger, _ = configure_logger(
        LOGGER_NAME,
        log_dir=result.layout.path_for("logs"),
        level=config.log_level,
        verbose=bool(args.verbose),
    )
    randomness.init_random(config.seed)

    try:
        bank = load_bank(config.bank_path, sheet=config.sheet)
    except LoadError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return None, 1
    if not len(bank):
        print(
            f"Error: no questions found in {config.bank_path}",
            file=sys.stderr,
        )
        return None, 1
    return _Prepared(result=result, bank=bank, logger=logger), 0


def main_chapters(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser(
        "genki-quiz chapters", "List chapters and question counts."
    )
    args = parser.parse_args(list(argv) if argv is not None else None)
    prepared, code = _prepare(args)
    if prepared is None:
        return code

    console = Console()
    table = Table(title=Text(prepared.config.bank_path.name))
    table.add_column("Chapter")
    table.add_column("Questions", justify="right")
    for chapter, size in chapter_menu(prepared.bank, prepared.config.chapters):
        table.add_row(Text(chapter), str(size))
    console.print(table)
    if prepared.bank.dropped_rows:
        console.print(
            f"[yellow]{prepared.bank.dropped_rows} row(s) skipped.[/]"
        )
    return 0


def main_play(
    argv: Optional[Sequence[str]] = None,
    *,
    console: Optional[Console] = None,
    input_provider: Optional[InputProvider] = None,
) -> int:
    """Run the Rich console quiz."""

    parser = _build_parser("genki-quiz play", "Play a quiz in the terminal.")
    args = parser.parse_args(list(argv) if argv is not None else None)
    prepared, code = _prepare(args)
    if prepared is None:
        return code

    config = prepared.config
    session = QuizSession(
        prepared.bank,
        option_count=config.option_count,
        logger=prepared.logger.getChild("session"),
    )
    console = console or Console()
    provider = input_provider or (lambda: console.input("> "))
    result = run_console_quiz(
        session,
        console,
        provider,
        chapters=config.chapters,
        mini_length=config.mini_length,
    )
    prepared.logger.info(
        "Console quiz finished",
        extra={
            "exit_action": result.exit_action,
            "quizzes_completed": len(result.summaries),
        },
    )
    return 0


def main_tui(argv: Optional[Sequence[str]] = None) -> int:
    """Run the Textual quiz app."""

    parser = _build_parser("genki-quiz tui", "Play a quiz in a Textual app.")
    args = parser.parse_args(list(argv) if argv is not None else None)
    prepared, code = _prepare(args)
    if prepared is None:
        return code

    from .view import QuizApp

    config = prepared.config
    app = QuizApp(
        prepared.bank,
        chapters=config.chapters,
        mini_length=config.mini_length,
        option_count=config.option_count,
        reveal_seconds=config.reveal_seconds,
    )
    app.run()
    return 0
