"""Rich-powered console presenter for a :class:`QuizSession`.

The loop reads one command at a time from an injectable input provider, so
the CLI can hand it ``input`` while tests feed a scripted iterator. All quiz
rules live in the session; this module only renders state and forwards the
user's choices.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Callable, Literal, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .bank import QuestionBank
from .errors import EmptyPoolError, NoActiveQuestionError
from .session import (
    ActiveQuestion,
    AnswerOutcome,
    QuizSession,
    SessionState,
    SessionSummary,
)

InputProvider = Callable[[], str]
ExitAction = Literal["quit", "interrupted"]

TITLE = "Genki Quiz!"
WELCOME = "Welcome to Genki Quiz!"
CORRECT_MARK = "✅"
WRONG_MARK = "❌"


@dataclass(frozen=True)
class ConsoleCommand:
    """Normalized user command parsed from console input."""

    type: Literal["select", "hint", "back", "quit", "continue"]
    index: Optional[int] = None


@dataclass(frozen=True)
class ConsoleResult:
    """Return value from :func:`run_console_quiz`."""

    summaries: tuple[SessionSummary, ...]
    exit_action: ExitAction


def parse_command(raw: Optional[str]) -> Optional[ConsoleCommand]:
    """Parse raw user input; numbers are 1-based menu positions."""

    if raw is None:
        return None
    text = raw.strip().lower()
    if not text:
        return ConsoleCommand("continue")
    if text in {"q", "quit", "exit"}:
        return ConsoleCommand("quit")
    if text in {"h", "hint"}:
        return ConsoleCommand("hint")
    if text in {"b", "back"}:
        return ConsoleCommand("back")
    if text.isdigit() and int(text) >= 1:
        return ConsoleCommand("select", int(text) - 1)
    return None


def chapter_menu(
    bank: QuestionBank, chapters: Sequence[str] = ()
) -> list[tuple[str, int]]:
    """Chapters to offer with their question counts.

    Uses ``chapters`` when given (even ones the bank lacks), otherwise every
    chapter present in the bank.
    """

    keys = list(chapters) if chapters else list(bank.chapters)
    return [(key, bank.chapter_size(key)) for key in keys]


def mark_option(option: str, outcome: AnswerOutcome) -> str:
    if option == outcome.correct_answer:
        return f"{CORRECT_MARK} {option}"
    if option == outcome.selected:
        return f"{WRONG_MARK} {option}"
    return option


def hint_button_label(visible: bool) -> str:
    return "Hide Romaji" if visible else "Show Romaji"


def score_line(session: QuizSession) -> str:
    return f"Score: {session.score}/{session.asked_count}"


def final_score_line(summary: SessionSummary) -> str:
    return (
        f"Final Score: {summary.score}/{summary.total_questions} "
        f"({summary.percentage:.1f}%)"
    )


def run_console_quiz(
    session: QuizSession,
    console: Console,
    input_provider: InputProvider,
    *,
    chapters: Sequence[str] = (),
    mini_length: int = 10,
) -> ConsoleResult:
    """Drive ``session`` interactively until the user quits."""

    summaries: list[SessionSummary] = []
    last_active: Optional[ActiveQuestion] = None
    menu: list[tuple[str, int]] = []
    summary_shown = False
    console.print(Panel(WELCOME, title=TITLE, border_style="cyan"))

    while True:
        state = session.state
        if state is SessionState.IN_PROGRESS and session.current is None:
            session.load_next_question()
            continue
        if state is not SessionState.SUMMARY:
            summary_shown = False
        elif not summary_shown:
            summary = session.summary()
            summaries.append(summary)
            _render_summary(console, summary)
            summary_shown = True

        if state is SessionState.CHAPTER_SELECT:
            menu = chapter_menu(session.bank, chapters)
            _render_chapter_menu(console, menu)
        elif state is SessionState.LENGTH_SELECT:
            _render_length_menu(console, session, mini_length)
        elif state is SessionState.IN_PROGRESS:
            last_active = session.current
            _render_question(console, session)
        else:
            console.print(
                Text(
                    "Press Enter to return to chapter selection, q to quit.",
                    style="dim",
                )
            )

        try:
            raw = input_provider()
        except (EOFError, KeyboardInterrupt, StopIteration):
            console.print("\n[bold yellow]Session interrupted.[/]")
            session.restart()
            return ConsoleResult(tuple(summaries), "interrupted")

        command = parse_command(raw)
        if command is None:
            console.print("[red]Unrecognized command. Try again.[/]")
            continue
        if command.type == "quit":
            console.print("\n[bold yellow]Goodbye.[/]")
            session.restart()
            return ConsoleResult(tuple(summaries), "quit")

        if state is SessionState.CHAPTER_SELECT:
            _apply_chapter_command(command, session, console, menu)
        elif state is SessionState.LENGTH_SELECT:
            _apply_length_command(command, session, console, mini_length)
        elif state is SessionState.IN_PROGRESS:
            outcome = _apply_question_command(command, session, console)
            if outcome is not None and last_active is not None:
                _render_outcome(console, session, last_active, outcome)
        elif command.type in {"continue", "back"}:
            session.restart()


def _apply_chapter_command(
    command: ConsoleCommand,
    session: QuizSession,
    console: Console,
    menu: Sequence[tuple[str, int]],
) -> None:
    if command.type != "select" or command.index is None:
        console.print("[red]Choose a chapter by number.[/]")
        return
    if command.index >= len(menu):
        console.print(f"[red]'{command.index + 1}' is not on the menu.[/]")
        return
    session.choose_chapter(menu[command.index][0])


def _apply_length_command(
    command: ConsoleCommand,
    session: QuizSession,
    console: Console,
    mini_length: int,
) -> None:
    if command.type == "back" or (
        command.type == "select" and command.index == 2
    ):
        session.restart()
        return
    if command.type != "select" or command.index not in (0, 1):
        console.print("[red]Choose 1, 2 or 3.[/]")
        return
    requested = mini_length if command.index == 0 else None
    try:
        session.choose_length(requested)
    except EmptyPoolError as exc:
        console.print(Panel(Text(str(exc)), border_style="yellow"))


def _apply_question_command(
    command: ConsoleCommand,
    session: QuizSession,
    console: Console,
) -> Optional[AnswerOutcome]:
    active = session.current
    if active is None:
        return None
    if command.type == "hint":
        if not active.question.hint:
            console.print("[dim]No hint for this question.[/]")
            return None
        session.toggle_hint()
        return None
    if command.type == "back":
        session.restart()
        return None
    if command.type != "select" or command.index is None:
        console.print("[red]Answer with an option number.[/]")
        return None
    if command.index >= len(active.options):
        console.print(
            f"[red]'{command.index + 1}' is not a valid option for this "
            "question.[/]"
        )
        return None
    try:
        return session.submit_answer(active.options[command.index])
    except NoActiveQuestionError:
        return None


def _render_chapter_menu(
    console: Console, menu: Sequence[tuple[str, int]]
) -> None:
    console.print()
    console.rule(Text("Select a chapter", style="bold cyan"))
    table = Table(show_header=False, box=box.SIMPLE)
    table.add_column("Key", justify="right", style="cyan")
    table.add_column("Chapter")
    table.add_column("Questions", justify="right", style="dim")
    for idx, (chapter, size) in enumerate(menu, start=1):
        table.add_row(str(idx), Text(f"Chapter {chapter}"), str(size))
    console.print(table)
    console.print(Text("Commands: number to choose, q (quit)", style="dim"))


def _render_length_menu(
    console: Console, session: QuizSession, mini_length: int
) -> None:
    pool_size = len(session.pool)
    console.print()
    console.rule(Text(f"Chapter {session.chapter}", style="bold cyan"))
    table = Table(show_header=False, box=box.SIMPLE)
    table.add_column("Key", justify="right", style="cyan")
    table.add_column("Option")
    table.add_row("1", f"Mini quiz ({min(mini_length, pool_size)} questions)")
    table.add_row("2", f"Full chapter ({pool_size} questions)")
    table.add_row("3", "Back to Chapter Selection")
    console.print(table)


def _render_question(console: Console, session: QuizSession) -> None:
    active = session.current
    if active is None:
        return
    header = Text.assemble(
        (f"Question {session.question_number}", "bold cyan"),
        (f" / {session.total_questions}", "dim"),
        (f"  Chapter {session.chapter}", "dim"),
    )
    console.print()
    console.rule(header)
    console.print(Text(active.question.prompt, style="bold"))
    if active.hint_visible and active.question.hint:
        console.print(Text(active.question.hint, style="italic magenta"))

    table = Table(show_header=False, box=box.SIMPLE, expand=True)
    table.add_column("Key", justify="center", style="cyan")
    table.add_column("Option")
    for idx, option in enumerate(active.options, start=1):
        table.add_row(str(idx), Text(option))
    console.print(table)

    commands = "number to answer, b (back), q (quit)"
    if active.question.hint:
        commands = (
            f"number to answer, h ({hint_button_label(active.hint_visible)}),"
            " b (back), q (quit)"
        )
    console.print(Text(f"{score_line(session)} | {commands}", style="dim"))


def _render_outcome(
    console: Console,
    session: QuizSession,
    active: ActiveQuestion,
    outcome: AnswerOutcome,
) -> None:
    for option in active.options:
        style = "bold green" if option == outcome.correct_answer else ""
        if option == outcome.selected and not outcome.correct:
            style = "bold red"
        console.print(Text(f"  {mark_option(option, outcome)}", style=style))
    if outcome.correct:
        console.print("[bold green]Correct![/]")
    else:
        console.print(
            Text.assemble(
                ("Incorrect.", "bold red"),
                " The answer is ",
                (outcome.correct_answer, "bold"),
                ".",
            )
        )
    console.print(Text(score_line(session), style="bold"))


def _render_summary(console: Console, summary: SessionSummary) -> None:
    console.print()
    console.rule(Text("Quiz Summary", style="bold magenta"))
    console.print(Text(final_score_line(summary), style="bold"))

    if summary.per_category:
        per_category = Table(
            title="Per category", box=box.SIMPLE, expand=False
        )
        per_category.add_column("Category")
        per_category.add_column("Asked", justify="right")
        per_category.add_column("Correct", justify="right")
        per_category.add_column("Accuracy", justify="right")
        for category, metrics in summary.per_category.items():
            per_category.add_row(
                Text(category or "(uncategorized)"),
                str(metrics.asked),
                str(metrics.correct),
                f"{metrics.accuracy * 100:.1f}%",
            )
        console.print(per_category)

    missed = [r for r in summary.responses if not r.correct]
    if missed:
        review = Table(title="Review", box=box.SIMPLE, expand=True)
        review.add_column("Prompt", overflow="fold")
        review.add_column("Your answer")
        review.add_column("Correct answer")
        for response in missed:
            review.add_row(
                Text(response.question.prompt),
                Text(response.selected),
                Text(response.correct_answer),
            )
        console.print(review)
