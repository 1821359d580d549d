"""Error taxonomy for the quiz engine."""

from __future__ import annotations


class QuizError(RuntimeError):
    """Base class for every quiz engine error."""


class LoadError(QuizError):
    """The question source could not be opened or parsed at all.

    Rows with missing fields are not load errors; they are dropped.
    """


class EmptyPoolError(QuizError):
    """The chosen chapter has no questions, so no quiz can start."""

    def __init__(self, chapter: str) -> None:
        super().__init__(f"Chapter '{chapter}' has no questions.")
        self.chapter = chapter


class NoActiveQuestionError(QuizError):
    """An answer (or hint toggle) arrived while no question is showing."""


class InvalidTransitionError(QuizError):
    """The requested action is not accepted in the session's current state."""

    def __init__(self, action: str, state: object) -> None:
        label = getattr(state, "value", state)
        super().__init__(f"Cannot {action} while in state '{label}'.")
        self.action = action
        self.state = state


class ExhaustedError(QuizError):
    """Every question in the pool has already been asked."""
