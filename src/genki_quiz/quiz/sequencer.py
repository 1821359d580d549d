"""Pick the next question without repeating one already asked."""

from __future__ import annotations

import random
from typing import AbstractSet, Optional, Sequence

from . import randomness
from .bank import Question
from .errors import ExhaustedError


def remaining(
    pool: Sequence[Question], asked_ids: AbstractSet[str]
) -> tuple[Question, ...]:
    return tuple(q for q in pool if q.id not in asked_ids)


def next_question(
    pool: Sequence[Question],
    asked_ids: AbstractSet[str],
    rng: Optional[random.Random] = None,
) -> Question:
    """Choose uniformly among questions whose id is not in ``asked_ids``.

    Raises :class:`ExhaustedError` once every question has been asked.
    """

    candidates = remaining(pool, asked_ids)
    if not candidates:
        raise ExhaustedError(
            f"All {len(pool)} question(s) in the pool have been asked."
        )
    return randomness.resolve(rng).choice(candidates)
