from .bank import Question, QuestionBank, load_bank
from .distractors import pick_distractors
from .errors import (
    EmptyPoolError,
    ExhaustedError,
    InvalidTransitionError,
    LoadError,
    NoActiveQuestionError,
    QuizError,
)
from .randomness import init_random
from .sequencer import next_question
from .session import (
    ActiveQuestion,
    AnswerOutcome,
    HintToggled,
    QuestionLoaded,
    QuizSession,
    SessionState,
    SessionSummary,
    StateChanged,
)

__all__ = [
    "Question",
    "QuestionBank",
    "load_bank",
    "pick_distractors",
    "next_question",
    "init_random",
    "QuizError",
    "LoadError",
    "EmptyPoolError",
    "NoActiveQuestionError",
    "InvalidTransitionError",
    "ExhaustedError",
    "QuizSession",
    "SessionState",
    "ActiveQuestion",
    "AnswerOutcome",
    "HintToggled",
    "QuestionLoaded",
    "StateChanged",
    "SessionSummary",
]
