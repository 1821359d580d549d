from __future__ import annotations

import logging
import os
import random
import sys
from pathlib import Path
from typing import Iterator

import pytest

TESTS_DIR = Path(__file__).resolve().parent
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))

# Ensure src/ is importable without an editable install
ROOT = TESTS_DIR.parent
for extra in (ROOT, ROOT / "src"):
    path_str = str(extra)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)

from fixtures import (  # noqa: E402
    SAMPLE_ROWS,
    FakeScheduler,
    WorkspaceBuilder,
)
from genki_quiz.quiz import randomness  # noqa: E402
from genki_quiz.quiz.bank import QuestionBank  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> Iterator[None]:
    """Keep every test away from the real home directory and GENKI_QUIZ_*."""

    for name in list(os.environ):
        if name.startswith("GENKI_QUIZ_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("GENKI_QUIZ_DATA_HOME", str(tmp_path / "data-home"))
    randomness._reset_for_tests()
    yield
    randomness._reset_for_tests()
    logger = logging.getLogger("genki_quiz")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceBuilder:
    """Provide a helper bound to pytest's per-test tmp directory."""

    return WorkspaceBuilder(tmp_path)


@pytest.fixture
def bank() -> QuestionBank:
    return QuestionBank.load(SAMPLE_ROWS)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(20240611)


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()
