"""Immutable question bank indexed by chapter."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Optional, Sequence, Union

from . import sources
from .errors import LoadError

_LOGGER = logging.getLogger(__name__)

FIELD_COUNT = 6
FIELDS = ("id", "chapter", "answer", "prompt", "hint", "category")
_REQUIRED = ("id", "chapter", "answer", "prompt")

BankSource = Union[str, Path, Iterable[Sequence[object]]]


@dataclass(frozen=True)
class Question:
    """A single quiz question as loaded from the source."""

    id: str
    chapter: str
    answer: str
    prompt: str
    hint: str = ""
    category: str = ""

    @classmethod
    def from_row(cls, row: Sequence[str]) -> Optional["Question"]:
        """Build a question from a source row, or ``None`` if it is invalid."""

        if len(row) < FIELD_COUNT:
            return None
        values = dict(zip(FIELDS, (str(cell).strip() for cell in row)))
        if any(not values[name] for name in _REQUIRED):
            return None
        return cls(**values)


class QuestionBank:
    """Read-only collection of questions plus a chapter index.

    The bank is built once and never mutated, so any number of quiz sessions
    may hold a reference to it.
    """

    def __init__(
        self, questions: Iterable[Question], *, dropped_rows: int = 0
    ):
        ordered: list[Question] = []
        seen: set[str] = set()
        duplicates = 0
        for question in questions:
            if question.id in seen:
                duplicates += 1
                continue
            seen.add(question.id)
            ordered.append(question)

        by_chapter: dict[str, list[Question]] = {}
        for question in ordered:
            by_chapter.setdefault(question.chapter, []).append(question)

        self._questions = tuple(ordered)
        self._by_id = MappingProxyType({q.id: q for q in ordered})
        self._by_chapter: Mapping[str, tuple[Question, ...]] = (
            MappingProxyType(
                {key: tuple(items) for key, items in by_chapter.items()}
            )
        )
        self.dropped_rows = dropped_rows + duplicates

    @classmethod
    def load(
        cls, source: BankSource, *, sheet: Optional[str] = None
    ) -> "QuestionBank":
        """Parse ``source`` into a bank.

        ``source`` is a CSV/XLSX path or an iterable of rows. The first row is
        a header. Rows that are short or miss a required field are skipped;
        only an unreadable source raises :class:`LoadError`.
        """

        if isinstance(source, (str, Path)):
            rows = sources.read_rows(source, sheet=sheet)
            origin = str(source)
        else:
            rows = sources.iter_source_rows(source)
            origin = "<rows>"

        questions: list[Question] = []
        dropped = 0
        for line_number, row in enumerate(rows[1:], start=2):
            question = Question.from_row(row)
            if question is None:
                dropped += 1
                _LOGGER.debug(
                    "Skipping invalid question row",
                    extra={"source": origin, "row": line_number},
                )
                continue
            questions.append(question)

        bank = cls(questions, dropped_rows=dropped)
        if not rows:
            _LOGGER.warning(
                "Question source is empty", extra={"source": origin}
            )
        _LOGGER.info(
            "Loaded question bank",
            extra={
                "source": origin,
                "questions": len(bank),
                "chapters": list(bank.chapters),
                "dropped_rows": bank.dropped_rows,
            },
        )
        return bank

    @property
    def questions(self) -> tuple[Question, ...]:
        return self._questions

    @property
    def chapters(self) -> tuple[str, ...]:
        """Chapter keys in order of first appearance."""

        return tuple(self._by_chapter)

    def questions_in_chapter(self, chapter: str) -> tuple[Question, ...]:
        return self._by_chapter.get(str(chapter), ())

    def chapter_size(self, chapter: str) -> int:
        return len(self.questions_in_chapter(chapter))

    def get(self, question_id: str) -> Optional[Question]:
        return self._by_id.get(question_id)

    def __len__(self) -> int:
        return len(self._questions)

    def __iter__(self) -> Iterator[Question]:
        return iter(self._questions)

    def __repr__(self) -> str:
        return (
            f"QuestionBank(questions={len(self)}, "
            f"chapters={list(self.chapters)!r})"
        )


def load_bank(
    source: BankSource, *, sheet: Optional[str] = None
) -> QuestionBank:
    """Module-level shortcut for :meth:`QuestionBank.load`."""

    try:
        return QuestionBank.load(source, sheet=sheet)
    except LoadError:
        _LOGGER.error(
            "Failed to load question bank", extra={"source": str(source)}
        )
        raise
