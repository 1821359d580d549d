"""Wrong-answer options drawn from a chapter pool."""

from __future__ import annotations

import random
from typing import Optional, Sequence

from . import randomness
from .bank import Question


def distinct_wrong_answers(
    pool: Sequence[Question], correct_answer: str
) -> list[str]:
    """Unique answers in ``pool`` other than ``correct_answer``, pool order."""

    seen = {correct_answer}
    answers: list[str] = []
    for question in pool:
        if question.answer not in seen:
            seen.add(question.answer)
            answers.append(question.answer)
    return answers


def pick_distractors(
    pool: Sequence[Question],
    correct_answer: str,
    count: int,
    rng: Optional[random.Random] = None,
) -> list[str]:
    """Return up to ``count`` distinct wrong answers in random order.

    Fewer than ``count`` come back when the pool does not have enough
    distinct answers; an empty list when it has none.
    """

    if count < 0:
        raise ValueError("count must be >= 0")
    answers = distinct_wrong_answers(pool, correct_answer)
    if not answers or count == 0:
        return []
    randomness.resolve(rng).shuffle(answers)
    return answers[:count]
