"""Quiz session state machine.

A :class:`QuizSession` walks through four states::

    CHAPTER_SELECT -> LENGTH_SELECT -> IN_PROGRESS -> SUMMARY
          ^                                              |
          +------------------- restart() ----------------+

Every action either returns the event it produced or raises a
:class:`~genki_quiz.quiz.errors.QuizError`; invalid actions never modify
state. Presenters subscribe to events instead of reaching into the session.

Revealing an answer and moving on are separate steps. A presenter that wants
an automatic advance after a delay calls :meth:`QuizSession.schedule_advance`;
the session keeps at most one pending advance and cancels it whenever a
competing action (answering, loading, restarting) happens first.
"""

from __future__ import annotations

import logging
import random
from collections import Counter
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Optional, Protocol, Union

from . import randomness
from .bank import Question, QuestionBank
from .distractors import pick_distractors
from .errors import (
    EmptyPoolError,
    InvalidTransitionError,
    NoActiveQuestionError,
    QuizError,
)
from .sequencer import next_question

DEFAULT_OPTION_COUNT = 4


class SessionState(Enum):
    CHAPTER_SELECT = "chapter_select"
    LENGTH_SELECT = "length_select"
    IN_PROGRESS = "in_progress"
    SUMMARY = "summary"


@dataclass(frozen=True)
class ActiveQuestion:
    """The question on screen together with its shuffled options."""

    question: Question
    options: tuple[str, ...]
    hint_visible: bool = False

    def is_correct(self, option: str) -> bool:
        return option == self.question.answer


@dataclass(frozen=True)
class StateChanged:
    previous: SessionState
    current: SessionState


@dataclass(frozen=True)
class QuestionLoaded:
    active: ActiveQuestion
    number: int
    total: int


@dataclass(frozen=True)
class AnswerOutcome:
    """Result of a submitted answer, for the presenter to reveal."""

    question: Question
    selected: str
    correct: bool
    correct_answer: str
    score: int
    asked_count: int


@dataclass(frozen=True)
class HintToggled:
    question_id: str
    visible: bool


SessionEvent = Union[StateChanged, QuestionLoaded, AnswerOutcome, HintToggled]
Listener = Callable[[SessionEvent], None]


class PendingTimer(Protocol):
    def cancel(self) -> None: ...


Scheduler = Callable[[float, Callable[[], None]], PendingTimer]


@dataclass(frozen=True)
class CategorySummary:
    category: str
    asked: int
    correct: int

    @property
    def accuracy(self) -> float:
        if self.asked == 0:
            return 0.0
        return self.correct / self.asked


@dataclass(frozen=True)
class SessionSummary:
    chapter: str
    score: int
    total_questions: int
    asked_count: int
    responses: tuple[AnswerOutcome, ...]
    per_category: dict[str, CategorySummary] = field(default_factory=dict)

    @property
    def percentage(self) -> float:
        return self.score / self.total_questions * 100


class QuizSession:
    """One user's quiz run over a shared, read-only :class:`QuestionBank`."""

    def __init__(
        self,
        bank: QuestionBank,
        *,
        rng: Optional[random.Random] = None,
        option_count: int = DEFAULT_OPTION_COUNT,
        scheduler: Optional[Scheduler] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if option_count < 1:
            raise ValueError("option_count must be >= 1")
        self._bank = bank
        self._rng = randomness.resolve(rng)
        self._option_count = option_count
        self._scheduler = scheduler
        self._logger = logger or logging.getLogger(__name__)
        self._listeners: list[Listener] = []

        self._pending: Optional[PendingTimer] = None
        self._advance_generation = 0

        self._state = SessionState.CHAPTER_SELECT
        self._reset()

    def _reset(self) -> None:
        self._chapter: Optional[str] = None
        self._pool: tuple[Question, ...] = ()
        self._total = 0
        self._asked_count = 0
        self._score = 0
        self._asked_ids: set[str] = set()
        self._current: Optional[ActiveQuestion] = None
        self._responses: list[AnswerOutcome] = []

    # -- observation -----------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for every event; returns an unsubscriber."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _emit(self, event: SessionEvent) -> SessionEvent:
        for listener in list(self._listeners):
            listener(event)
        return event

    @property
    def bank(self) -> QuestionBank:
        return self._bank

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def chapter(self) -> Optional[str]:
        return self._chapter

    @property
    def pool(self) -> tuple[Question, ...]:
        return self._pool

    @property
    def total_questions(self) -> int:
        return self._total

    @property
    def asked_count(self) -> int:
        return self._asked_count

    @property
    def score(self) -> int:
        return self._score

    @property
    def asked_ids(self) -> frozenset[str]:
        return frozenset(self._asked_ids)

    @property
    def current(self) -> Optional[ActiveQuestion]:
        return self._current

    @property
    def responses(self) -> tuple[AnswerOutcome, ...]:
        return tuple(self._responses)

    @property
    def last_outcome(self) -> Optional[AnswerOutcome]:
        return self._responses[-1] if self._responses else None

    @property
    def option_count(self) -> int:
        return self._option_count

    @property
    def question_number(self) -> int:
        """1-based number of the question being asked (or next to be asked)."""

        if self._current is not None:
            return self._asked_count + 1
        return min(self._asked_count + 1, self._total) if self._total else 0

    @property
    def is_complete(self) -> bool:
        return self._state is SessionState.IN_PROGRESS and (
            self._asked_count >= self._total
        )

    @property
    def has_pending_advance(self) -> bool:
        return self._pending is not None

    # -- transitions -----------------------------------------------------

    def choose_chapter(self, chapter: str) -> StateChanged:
        self._require(SessionState.CHAPTER_SELECT, "choose a chapter")
        self._chapter = str(chapter)
        self._pool = self._bank.questions_in_chapter(self._chapter)
        self._logger.debug(
            "Chapter chosen",
            extra={"chapter": self._chapter, "pool_size": len(self._pool)},
        )
        return self._transition(SessionState.LENGTH_SELECT)

    def choose_length(self, requested: Optional[int] = None) -> StateChanged:
        """Start the quiz with ``requested`` questions (``None``: all).

        The count is capped at the pool size. An empty pool sends the
        session back to chapter selection and raises
        :class:`EmptyPoolError`.
        """

        self._require(SessionState.LENGTH_SELECT, "choose a quiz length")
        if requested is not None and requested < 1:
            raise ValueError("Quiz length must be at least 1.")
        if not self._pool:
            chapter = self._chapter or ""
            self._reset()
            self._transition(SessionState.CHAPTER_SELECT)
            self._logger.info(
                "Chapter has no questions", extra={"chapter": chapter}
            )
            raise EmptyPoolError(chapter)
        pool_size = len(self._pool)
        self._total = (
            pool_size if requested is None else min(requested, pool_size)
        )
        self._logger.info(
            "Quiz started",
            extra={
                "chapter": self._chapter,
                "requested": requested,
                "total_questions": self._total,
            },
        )
        return self._transition(SessionState.IN_PROGRESS)

    def load_next_question(self) -> Union[QuestionLoaded, StateChanged]:
        """Present the next question, or move to the summary when done."""

        self._require(SessionState.IN_PROGRESS, "load the next question")
        if self._current is not None:
            raise InvalidTransitionError(
                "load a new question before answering the current one",
                self._state,
            )
        self.cancel_pending_advance()

        if self._asked_count >= self._total:
            self._logger.info(
                "Quiz complete",
                extra={
                    "chapter": self._chapter,
                    "score": self._score,
                    "total_questions": self._total,
                },
            )
            return self._transition(SessionState.SUMMARY)

        question = next_question(self._pool, self._asked_ids, self._rng)
        options = pick_distractors(
            self._pool, question.answer, self._option_count - 1, self._rng
        )
        options.append(question.answer)
        self._rng.shuffle(options)

        self._current = ActiveQuestion(
            question=question, options=tuple(options)
        )
        self._logger.debug(
            "Question loaded",
            extra={
                "question_id": question.id,
                "option_count": len(options),
                "number": self._asked_count + 1,
            },
        )
        event = QuestionLoaded(
            active=self._current,
            number=self._asked_count + 1,
            total=self._total,
        )
        self._emit(event)
        return event

    def submit_answer(self, option: str) -> AnswerOutcome:
        """Score ``option`` against the active question.

        Does not advance; call :meth:`load_next_question` or
        :meth:`schedule_advance` afterwards.
        """

        active = self._current
        if active is None:
            raise NoActiveQuestionError(
                "No question is waiting for an answer."
            )
        self.cancel_pending_advance()

        question = active.question
        correct = active.is_correct(option)
        self._asked_count += 1
        self._asked_ids.add(question.id)
        if correct:
            self._score += 1
        self._current = None

        outcome = AnswerOutcome(
            question=question,
            selected=option,
            correct=correct,
            correct_answer=question.answer,
            score=self._score,
            asked_count=self._asked_count,
        )
        self._responses.append(outcome)
        self._logger.info(
            "Answer submitted",
            extra={
                "question_id": question.id,
                "correct": correct,
                "score": self._score,
                "asked_count": self._asked_count,
            },
        )
        self._emit(outcome)
        return outcome

    def toggle_hint(self) -> HintToggled:
        if self._current is None:
            raise NoActiveQuestionError("No question is showing a hint.")
        self._current = replace(
            self._current, hint_visible=not self._current.hint_visible
        )
        event = HintToggled(
            question_id=self._current.question.id,
            visible=self._current.hint_visible,
        )
        self._emit(event)
        return event

    def restart(self) -> Optional[StateChanged]:
        """Drop the current run and go back to chapter selection.

        Safe to call from any state and repeatedly.
        """

        self.cancel_pending_advance()
        self._reset()
        if self._state is SessionState.CHAPTER_SELECT:
            return None
        return self._transition(SessionState.CHAPTER_SELECT)

    def summary(self) -> SessionSummary:
        self._require(SessionState.SUMMARY, "build a summary")
        counts: Counter[str] = Counter()
        correct: Counter[str] = Counter()
        for outcome in self._responses:
            category = outcome.question.category
            counts[category] += 1
            if outcome.correct:
                correct[category] += 1
        per_category = {
            category: CategorySummary(category, asked, correct[category])
            for category, asked in counts.items()
        }
        return SessionSummary(
            chapter=self._chapter or "",
            score=self._score,
            total_questions=self._total,
            asked_count=self._asked_count,
            responses=tuple(self._responses),
            per_category=per_category,
        )

    # -- delayed advance -------------------------------------------------

    def schedule_advance(self, delay: float) -> None:
        """Load the next question after ``delay`` seconds.

        Replaces any advance that is already pending.
        """

        if self._scheduler is None:
            raise QuizError("No scheduler configured for delayed advance.")
        self._require(SessionState.IN_PROGRESS, "schedule an advance")
        if self._current is not None:
            raise InvalidTransitionError(
                "schedule an advance before answering", self._state
            )
        self.cancel_pending_advance()
        token = self._advance_generation
        self._pending = self._scheduler(
            max(0.0, float(delay)), lambda: self._fire_advance(token)
        )
        self._logger.debug(
            "Advance scheduled", extra={"delay": delay, "token": token}
        )

    def cancel_pending_advance(self) -> bool:
        """Cancel the pending advance, if any. Returns whether one existed."""

        self._advance_generation += 1
        pending, self._pending = self._pending, None
        if pending is None:
            return False
        pending.cancel()
        self._logger.debug("Pending advance cancelled")
        return True

    def _fire_advance(self, token: int) -> None:
        if token != self._advance_generation:
            self._logger.debug(
                "Ignoring stale advance", extra={"token": token}
            )
            return
        self._pending = None
        if self._state is not SessionState.IN_PROGRESS:
            return
        if self._current is not None:
            return
        self.load_next_question()

    # -- helpers ---------------------------------------------------------

    def _require(self, expected: SessionState, action: str) -> None:
        if self._state is not expected:
            raise InvalidTransitionError(action, self._state)

    def _transition(self, target: SessionState) -> StateChanged:
        previous, self._state = self._state, target
        self._logger.debug(
            "Session state changed",
            extra={"from_state": previous.value, "to_state": target.value},
        )
        event = StateChanged(previous=previous, current=target)
        self._emit(event)
        return event
