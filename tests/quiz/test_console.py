from __future__ import annotations

import random
from typing import Callable

from rich.console import Console

from fixtures import HEADER

from genki_quiz.quiz.bank import QuestionBank
from genki_quiz.quiz.console import (
    ConsoleCommand,
    chapter_menu,
    final_score_line,
    mark_option,
    parse_command,
    run_console_quiz,
)
from genki_quiz.quiz.session import QuizSession, SessionState


def make_provider(commands: list[str]) -> Callable[[], str]:
    iterator = iter(commands)

    def _provider() -> str:
        return next(iterator)

    return _provider


def answering_provider(
    session: QuizSession, script: list[str]
) -> Callable[[], str]:
    """Replay ``script``; ``"!"`` answers the current question correctly."""

    iterator = iter(script)

    def _provider() -> str:
        command = next(iterator)
        if command != "!":
            return command
        active = session.current
        return str(active.options.index(active.question.answer) + 1)

    return _provider


def _console() -> Console:
    return Console(record=True, width=80, force_terminal=True)


def test_parse_command_variants() -> None:
    assert parse_command("2") == ConsoleCommand("select", 1)
    assert parse_command("  H ") == ConsoleCommand("hint")
    assert parse_command("back") == ConsoleCommand("back")
    assert parse_command("q") == ConsoleCommand("quit")
    assert parse_command("") == ConsoleCommand("continue")
    assert parse_command("0") is None
    assert parse_command("?what") is None
    assert parse_command(None) is None


def test_chapter_menu_uses_configured_chapters(bank: QuestionBank) -> None:
    assert chapter_menu(bank, ("1", "4")) == [("1", 5), ("4", 0)]
    assert chapter_menu(bank) == [("1", 5), ("2", 3), ("3", 2)]


def test_mark_option_flags_answer_and_wrong_pick(bank: QuestionBank) -> None:
    session = QuizSession(bank, rng=random.Random(0))
    session.choose_chapter("2")
    session.choose_length(None)
    session.load_next_question()
    active = session.current
    wrong = next(o for o in active.options if o != active.question.answer)
    outcome = session.submit_answer(wrong)

    marked = [mark_option(option, outcome) for option in active.options]

    assert f"✅ {active.question.answer}" in marked
    assert f"❌ {wrong}" in marked


def test_full_chapter_run_renders_summary(bank: QuestionBank) -> None:
    console = _console()
    session = QuizSession(bank, rng=random.Random(5))
    provider = answering_provider(
        session, ["2", "2", "!", "!", "!", "", "q"]
    )

    result = run_console_quiz(
        session, console, provider, chapters=("1", "2", "3", "4")
    )

    assert result.exit_action == "quit"
    assert len(result.summaries) == 1
    summary = result.summaries[0]
    assert summary.chapter == "2"
    assert final_score_line(summary) == "Final Score: 3/3 (100.0%)"
    rendered = console.export_text()
    assert "Welcome to Genki Quiz!" in rendered
    assert "Final Score: 3/3 (100.0%)" in rendered
    assert "Score: 1/1" in rendered
    assert "adjective" in rendered
    assert session.state is SessionState.CHAPTER_SELECT


def test_mini_quiz_respects_length_and_reports_misses(
    bank: QuestionBank,
) -> None:
    console = _console()
    session = QuizSession(bank, rng=random.Random(8))
    provider = answering_provider(session, ["1", "1", "!", "9", "q"])

    result = run_console_quiz(session, console, provider, mini_length=2)

    assert result.exit_action == "quit"
    assert result.summaries == ()
    assert session.state is SessionState.CHAPTER_SELECT
    rendered = console.export_text()
    assert "Mini quiz (2 questions)" in rendered
    assert "Correct!" in rendered
    assert "'9' is not a valid option" in rendered


def test_wrong_answer_reveals_correct_one(bank: QuestionBank) -> None:
    console = _console()
    session = QuizSession(bank, rng=random.Random(3))
    script = iter(["3", "1"])

    def provider() -> str:
        try:
            return next(script)
        except StopIteration:
            active = session.current
            if active is None:
                return "q"
            wrong = next(
                i
                for i, option in enumerate(active.options, start=1)
                if option != active.question.answer
            )
            return str(wrong)

    result = run_console_quiz(session, console, provider, mini_length=1)

    rendered = console.export_text()
    assert "Incorrect." in rendered
    assert "Final Score: 0/1 (0.0%)" in rendered
    assert result.summaries[0].per_category


def test_bracketed_bank_text_renders_literally() -> None:
    bank = QuestionBank.load(
        [
            HEADER,
            ["b-1", "[x]", "and/or [/i]", "[dim]や[/dim]", "[/]", "[red]"],
            ["b-2", "[x]", "[b]name[/b]", "なまえ", "", "[red]"],
        ]
    )
    console = _console()
    session = QuizSession(bank, rng=random.Random(2))
    script = iter(["1", "2"])

    def provider() -> str:
        try:
            return next(script)
        except StopIteration:
            active = session.current
            if active is None:
                return "q"
            if active.question.hint and not active.hint_visible:
                return "h"
            wrong = next(
                i
                for i, option in enumerate(active.options, start=1)
                if option != active.question.answer
            )
            return str(wrong)

    result = run_console_quiz(session, console, provider)

    assert result.exit_action == "quit"
    assert result.summaries[0].score == 0
    rendered = console.export_text()
    assert "Chapter [x]" in rendered
    assert "[dim]や[/dim]" in rendered
    assert "The answer is and/or [/i]." in rendered
    assert "The answer is [b]name[/b]." in rendered
    assert "[red]" in rendered


def test_empty_chapter_returns_to_menu(bank: QuestionBank) -> None:
    console = _console()
    session = QuizSession(bank, rng=random.Random(0))
    provider = make_provider(["2", "1", "q"])

    result = run_console_quiz(
        session, console, provider, chapters=("1", "4")
    )

    assert result.exit_action == "quit"
    rendered = console.export_text()
    assert "Chapter '4' has no questions." in rendered
    assert rendered.count("Select a chapter") == 2


def test_hint_toggle_and_back(bank: QuestionBank) -> None:
    console = _console()
    session = QuizSession(bank, rng=random.Random(0))
    provider = make_provider(["1", "2", "h", "b", "q"])

    run_console_quiz(session, console, provider)

    rendered = console.export_text()
    hints = {q.hint for q in bank.questions_in_chapter("1")}
    assert any(hint in rendered for hint in hints)
    assert "Hide Romaji" in rendered
    assert rendered.count("Select a chapter") == 2


def test_length_menu_back_option(bank: QuestionBank) -> None:
    console = _console()
    session = QuizSession(bank, rng=random.Random(0))
    provider = make_provider(["1", "3", "7", "q"])

    run_console_quiz(session, console, provider)

    rendered = console.export_text()
    assert "Back to Chapter Selection" in rendered
    assert "'7' is not on the menu." in rendered


def test_unrecognized_input_and_interrupt(bank: QuestionBank) -> None:
    console = _console()
    session = QuizSession(bank, rng=random.Random(0))
    provider = make_provider(["nonsense", "1"])

    result = run_console_quiz(session, console, provider)

    assert result.exit_action == "interrupted"
    assert session.state is SessionState.CHAPTER_SELECT
    rendered = console.export_text()
    assert "Unrecognized command" in rendered
    assert "Session interrupted." in rendered
