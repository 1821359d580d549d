"""Textual front end for a quiz session."""

from __future__ import annotations

import random
from typing import Callable, List, Optional, Sequence

from rich.markup import escape
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Vertical
from textual.css.query import NoMatches
from textual.timer import Timer
from textual.widget import Widget
from textual.widgets import Button, Static

from .bank import QuestionBank
from .console import (
    TITLE,
    WELCOME,
    chapter_menu,
    final_score_line,
    hint_button_label,
    mark_option,
    score_line,
)
from .errors import EmptyPoolError, NoActiveQuestionError
from .session import (
    ActiveQuestion,
    AnswerOutcome,
    QuestionLoaded,
    QuizSession,
    SessionEvent,
    SessionState,
)


class TimerHandle:
    """Adapts a Textual :class:`Timer` to the session's pending-timer API."""

    def __init__(self, timer: Timer) -> None:
        self._timer = timer

    def cancel(self) -> None:
        self._timer.stop()


class QuizApp(App):
    TITLE = TITLE
    CSS_PATH = None
    CSS = """
#stage { height: auto; padding: 1 2; }
#options Button { width: 100%; margin-bottom: 1; }
#options Button.correct { background: $success; }
#options Button.wrong { background: $error; }
#hint { color: $accent; }
#notice { color: $warning; padding: 0 2; }
"""
    # Options past the ninth have no key; they are answered by clicking.
    BINDINGS = [
        *(
            Binding(str(n), f"answer({n - 1})", f"Option {n}", show=n <= 4)
            for n in range(1, 10)
        ),
        ("h", "toggle_hint", "Romaji"),
        ("escape", "back", "Chapters"),
        ("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        bank: QuestionBank,
        *,
        chapters: Sequence[str] = (),
        mini_length: int = 10,
        option_count: int = 4,
        reveal_seconds: float = 2.0,
        rng: Optional[random.Random] = None,
    ):
        super().__init__()
        self.chapters = tuple(chapters)
        self.mini_length = mini_length
        self.reveal_seconds = reveal_seconds
        self.session = QuizSession(
            bank,
            rng=rng,
            option_count=option_count,
            scheduler=self.schedule,
        )
        self.session.subscribe(self._on_session_event)
        self._shown_question: Optional[ActiveQuestion] = None
        self._shown_outcome: Optional[AnswerOutcome] = None
        self.notice = ""

    def compose(self) -> ComposeResult:
        yield Static(WELCOME, id="title")
        with Container(id="stage"):
            yield Vertical(*self.stage_widgets())
        yield Static(escape(self.notice), id="notice")

    def schedule(
        self, delay: float, callback: Callable[[], None]
    ) -> TimerHandle:
        return TimerHandle(self.set_timer(delay, callback))

    # Pure helpers (testable without running App)
    def chapter_entries(self) -> list[tuple[str, int]]:
        return chapter_menu(self.session.bank, self.chapters)

    def choose_chapter_at(self, index: int) -> bool:
        entries = self.chapter_entries()
        if self.session.state is not SessionState.CHAPTER_SELECT:
            return False
        if not 0 <= index < len(entries):
            return False
        self.notice = ""
        self.session.choose_chapter(entries[index][0])
        return True

    def start_quiz(self, full: bool) -> bool:
        if self.session.state is not SessionState.LENGTH_SELECT:
            return False
        try:
            self.session.choose_length(None if full else self.mini_length)
        except EmptyPoolError as exc:
            self.notice = str(exc)
            self._update_stage()
            return False
        self.session.load_next_question()
        return True

    def answer_at(self, index: int) -> Optional[AnswerOutcome]:
        active = self.session.current
        if active is None or not 0 <= index < len(active.options):
            return None
        try:
            outcome = self.session.submit_answer(active.options[index])
        except NoActiveQuestionError:
            return None
        self.session.schedule_advance(self.reveal_seconds)
        return outcome

    def back_to_chapters(self) -> None:
        self.session.restart()
        self._shown_question = None
        self._shown_outcome = None
        self._update_stage()

    def stage_widgets(self) -> List[Widget]:
        state = self.session.state
        if state is SessionState.CHAPTER_SELECT:
            return self._chapter_widgets()
        if state is SessionState.LENGTH_SELECT:
            return self._length_widgets()
        if state is SessionState.IN_PROGRESS:
            return self._question_widgets()
        return self._summary_widgets()

    def _chapter_widgets(self) -> List[Widget]:
        widgets: List[Widget] = [Static("Select a chapter:", id="heading")]
        for idx, (chapter, size) in enumerate(self.chapter_entries()):
            widgets.append(
                Button(
                    escape(f"Chapter {chapter} ({size})"), id=f"chapter-{idx}"
                )
            )
        return widgets

    def _length_widgets(self) -> List[Widget]:
        pool_size = len(self.session.pool)
        mini = min(self.mini_length, pool_size)
        return [
            Static(escape(f"Chapter {self.session.chapter}"), id="heading"),
            Button(f"Mini Quiz ({mini} questions)", id="length-mini"),
            Button(f"Full Chapter ({pool_size} questions)", id="length-full"),
            Button("Back to Chapter Selection", id="back"),
        ]

    def _question_widgets(self) -> List[Widget]:
        active = self.session.current or self._shown_question
        if active is None:
            return [Static("Loading...", id="heading")]
        outcome = self._shown_outcome
        revealed = self.session.current is None and outcome is not None
        progress = (
            f"Question {self._display_number()}/"
            f"{self.session.total_questions}  Chapter {self.session.chapter}"
        )
        widgets: List[Widget] = [
            Static(escape(progress), id="progress"),
            Static(escape(active.question.prompt), id="prompt"),
        ]
        if active.question.hint:
            if active.hint_visible:
                widgets.append(Static(escape(active.question.hint), id="hint"))
            widgets.append(
                Button(
                    hint_button_label(active.hint_visible),
                    id="hint-toggle",
                    disabled=revealed,
                )
            )
        buttons: List[Widget] = []
        for idx, option in enumerate(active.options):
            label = f"{idx + 1}) {option}"
            classes = ""
            if revealed and outcome is not None:
                label = f"{idx + 1}) {mark_option(option, outcome)}"
                if option == outcome.correct_answer:
                    classes = "correct"
                elif option == outcome.selected:
                    classes = "wrong"
            buttons.append(
                Button(
                    escape(label),
                    id=f"option-{idx}",
                    classes=classes,
                    disabled=revealed,
                )
            )
        widgets.append(Vertical(*buttons, id="options"))
        widgets.append(Static(score_line(self.session), id="score"))
        return widgets

    def _summary_widgets(self) -> List[Widget]:
        summary = self.session.summary()
        widgets: List[Widget] = [
            Static(final_score_line(summary), id="final-score")
        ]
        for category, metrics in summary.per_category.items():
            widgets.append(
                Static(
                    escape(
                        f"{category or '(uncategorized)'}: "
                        f"{metrics.correct}/{metrics.asked}"
                    )
                )
            )
        widgets.append(Button("Back to Chapter Selection", id="back"))
        return widgets

    def _display_number(self) -> int:
        if self.session.current is None:
            return self.session.asked_count
        return self.session.question_number

    def _on_session_event(self, event: SessionEvent) -> None:
        if isinstance(event, QuestionLoaded):
            self._shown_question = event.active
            self._shown_outcome = None
        elif isinstance(event, AnswerOutcome):
            self._shown_outcome = event
        elif self.session.current is not None:
            self._shown_question = self.session.current
        self._update_stage()

    def _update_stage(self) -> None:
        if not self.is_running:
            return
        try:
            stage = self.query_one("#stage", Container)
            notice = self.query_one("#notice", Static)
        except NoMatches:
            return
        stage.remove_children()
        stage.mount(Vertical(*self.stage_widgets()))
        notice.update(escape(self.notice))

    def on_button_pressed(self, event: Button.Pressed) -> None:
        bid = getattr(event.button, "id", "") or ""
        if bid.startswith("chapter-"):
            self.choose_chapter_at(int(bid.split("-", 1)[1]))
        elif bid == "length-mini":
            self.start_quiz(full=False)
        elif bid == "length-full":
            self.start_quiz(full=True)
        elif bid.startswith("option-"):
            self.answer_at(int(bid.split("-", 1)[1]))
        elif bid == "hint-toggle":
            self.action_toggle_hint()
        elif bid == "back":
            self.action_back()

    def action_answer(self, index: int) -> None:
        self.answer_at(index)

    def action_toggle_hint(self) -> None:
        active = self.session.current
        if active is None or not active.question.hint:
            return
        self.session.toggle_hint()

    def action_back(self) -> None:
        self.back_to_chapters()
