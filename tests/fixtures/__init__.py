"""Shared testing fixtures for the genki_quiz test suite."""

from .bank import HEADER, SAMPLE_ROWS  # noqa: F401
from .scheduler import FakeScheduler, FakeTimer  # noqa: F401
from .workspace import WorkspaceBuilder, build_tree  # noqa: F401

__all__ = [
    "FakeScheduler",
    "FakeTimer",
    "HEADER",
    "SAMPLE_ROWS",
    "WorkspaceBuilder",
    "build_tree",
]
