"""Process-wide random source for the quiz engine.

Components take an optional ``random.Random``; when none is given they fall
back to :func:`get_random`, which is initialised once per process. Tests pass
their own seeded instance instead of touching this module.
"""

from __future__ import annotations

import logging
import random
from typing import Optional

_LOGGER = logging.getLogger(__name__)

_RANDOM: Optional[random.Random] = None


def init_random(seed: Optional[int] = None) -> random.Random:
    """Initialise the shared random source.

    ``seed=None`` seeds from OS entropy. The first call wins; later calls
    return the existing instance unchanged.
    """

    global _RANDOM
    if _RANDOM is None:
        _RANDOM = random.Random(seed)
        _LOGGER.debug(
            "Initialised shared random source",
            extra={"seeded": seed is not None},
        )
    elif seed is not None:
        _LOGGER.warning(
            "Shared random source already initialised; seed ignored",
            extra={"seed": seed},
        )
    return _RANDOM


def get_random() -> random.Random:
    """Return the shared random source, initialising it on first use."""

    return _RANDOM if _RANDOM is not None else init_random()


def resolve(rng: Optional[random.Random]) -> random.Random:
    return rng if rng is not None else get_random()


def _reset_for_tests() -> None:
    global _RANDOM
    _RANDOM = None
