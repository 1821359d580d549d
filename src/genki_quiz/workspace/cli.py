"""CLI entry point for ``genki-quiz init``."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Mapping, Sequence

from genki_quiz.core import workspace as workspace_mod
from genki_quiz.quiz import config as config_mod


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="genki-quiz init",
        description=(
            "Bootstrap the genki-quiz workspace (config, logs and banks "
            "directories) and optionally write a config template."
        ),
    )
    parser.add_argument(
        "--path",
        type=Path,
        help=(
            "Override the workspace root (defaults to GENKI_QUIZ_DATA_HOME "
            "or ~/.genki-quiz-data)."
        ),
    )
    parser.add_argument(
        "--write-config",
        action="store_true",
        help="Write genki_quiz.toml into the workspace config directory.",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing config file with --write-config.",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress informational output on success.",
    )
    return parser


def _format_created(created: Mapping[str, bool], key: str) -> str:
    return "created" if created.get(key, False) else "exists"


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        layout = workspace_mod.ensure_workspace(path=args.path)
    except workspace_mod.WorkspaceError as exc:
        sys.stderr.write(f"Error: {exc}\n")
        return 2

    config_line = None
    if args.write_config:
        target = layout.path_for("config") / config_mod.CONFIG_FILENAME
        try:
            config_mod.write_config_template(target, overwrite=args.force)
        except config_mod.QuizConfigError as exc:
            sys.stderr.write(f"Error: {exc}\n")
            return 2
        config_line = f"Config template written to {target}"

    if args.quiet:
        return 0

    created = layout.created
    home_status = _format_created(created, "home")
    lines = [f"Workspace ready at {layout.home} ({home_status})"]

    if layout.directories:
        lines.append("Subdirectories:")
        width = max(len(name) for name in layout.directories)
        for name, directory in layout.items():
            status = _format_created(created, name)
            lines.append(f"  {name.ljust(width)}  {directory} ({status})")
    if config_line:
        lines.append(config_line)
    banks = layout.path_for("banks")
    lines.append(f"Place question banks (.xlsx or .csv) in {banks}")

    sys.stdout.write("\n".join(lines) + "\n")
    return 0


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
