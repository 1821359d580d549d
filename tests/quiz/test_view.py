from __future__ import annotations

import random
from types import SimpleNamespace
from typing import Callable

import pytest
from rich.text import Text
from textual.binding import Binding

from fixtures import HEADER

from genki_quiz.quiz import view as qv
from genki_quiz.quiz.bank import QuestionBank
from genki_quiz.quiz.session import SessionState


class StubStatic:
    def __init__(self, text: str = "", id: str | None = None, **_):
        self.text = text
        self.id = id

    def update(self, new: str) -> None:
        self.text = new


class StubButton:
    def __init__(
        self,
        label: str,
        id: str | None = None,
        classes: str = "",
        disabled: bool = False,
    ):
        self.label = label
        self.id = id
        self.classes = classes
        self.disabled = disabled


class StubVertical:
    def __init__(self, *children, **kwargs):
        self.children = list(children)
        self.id = kwargs.get("id")


class StubContainer:
    def __init__(self, *_, **kwargs):
        self.id = kwargs.get("id")
        self.children = []

    def remove_children(self) -> None:
        self.children.clear()

    def mount(self, widget) -> None:
        self.children.append(widget)


class StubTimer:
    def __init__(self, delay: float, callback: Callable[[], None]):
        self.delay = delay
        self.callback = callback
        self.stopped = False

    def stop(self) -> None:
        self.stopped = True


class StubEvent:
    def __init__(self, button_id: str):
        self.button = SimpleNamespace(id=button_id)


@pytest.fixture
def stub_widgets(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(qv, "Static", StubStatic)
    monkeypatch.setattr(qv, "Button", StubButton)
    monkeypatch.setattr(qv, "Vertical", StubVertical)
    monkeypatch.setattr(qv, "Container", StubContainer)


@pytest.fixture
def timers(monkeypatch: pytest.MonkeyPatch):
    created: list[StubTimer] = []

    def fake_set_timer(self, delay, callback):
        timer = StubTimer(delay, callback)
        created.append(timer)
        return timer

    monkeypatch.setattr(qv.QuizApp, "set_timer", fake_set_timer)
    return created


def _app(bank: QuestionBank, **kwargs) -> qv.QuizApp:
    kwargs.setdefault("rng", random.Random(6))
    return qv.QuizApp(bank, **kwargs)


def _flatten(widgets) -> list:
    flat = []
    for widget in widgets:
        flat.append(widget)
        flat.extend(_flatten(getattr(widget, "children", [])))
    return flat


def _by_id(widgets, widget_id: str):
    for widget in _flatten(widgets):
        if getattr(widget, "id", None) == widget_id:
            return widget
    raise AssertionError(f"no widget with id {widget_id}")


def test_chapter_buttons_list_counts(bank: QuestionBank, stub_widgets) -> None:
    app = _app(bank, chapters=("1", "4"))

    widgets = app.stage_widgets()

    assert _by_id(widgets, "chapter-0").label == "Chapter 1 (5)"
    assert _by_id(widgets, "chapter-1").label == "Chapter 4 (0)"
    assert app.choose_chapter_at(5) is False


def test_empty_chapter_sets_notice(bank: QuestionBank, stub_widgets) -> None:
    app = _app(bank, chapters=("1", "4"))

    assert app.choose_chapter_at(1)
    assert app.start_quiz(full=False) is False

    assert app.session.state is SessionState.CHAPTER_SELECT
    assert app.notice == "Chapter '4' has no questions."


def test_length_buttons(bank: QuestionBank, stub_widgets) -> None:
    app = _app(bank, mini_length=10)
    app.choose_chapter_at(1)

    widgets = app.stage_widgets()

    assert _by_id(widgets, "length-mini").label == "Mini Quiz (3 questions)"
    assert _by_id(widgets, "length-full").label.startswith("Full Chapter (3")
    assert _by_id(widgets, "back").label == "Back to Chapter Selection"


def test_answer_reveals_then_timer_advances(
    bank: QuestionBank, stub_widgets, timers
) -> None:
    app = _app(bank, mini_length=2, reveal_seconds=1.5)
    app.choose_chapter_at(0)
    assert app.start_quiz(full=False)

    widgets = app.stage_widgets()
    assert _by_id(widgets, "progress").text.startswith("Question 1/2")
    options = app.session.current.options
    answer = app.session.current.question.answer
    assert len(_by_id(widgets, "options").children) == 4

    outcome = app.answer_at(options.index(answer))

    assert outcome is not None and outcome.correct
    assert timers[-1].delay == 1.5
    revealed = app.stage_widgets()
    buttons = _by_id(revealed, "options").children
    assert all(button.disabled for button in buttons)
    correct = buttons[options.index(answer)]
    assert "✅" in correct.label
    assert correct.classes == "correct"
    assert _by_id(revealed, "score").text == "Score: 1/1"
    assert app.answer_at(0) is None

    timers[-1].callback()
    assert app.session.current is not None
    assert _by_id(app.stage_widgets(), "progress").text.startswith(
        "Question 2/2"
    )

    active = app.session.current
    wrong = next(
        i for i, o in enumerate(active.options) if o != active.question.answer
    )
    app.answer_at(wrong)
    marked = _by_id(app.stage_widgets(), f"option-{wrong}")
    assert "❌" in marked.label and marked.classes == "wrong"

    timers[-1].callback()
    assert app.session.state is SessionState.SUMMARY
    final = _by_id(app.stage_widgets(), "final-score")
    assert final.text == "Final Score: 1/2 (50.0%)"


def test_hint_toggle_updates_widgets(bank: QuestionBank, stub_widgets) -> None:
    app = _app(bank)
    app.choose_chapter_at(0)
    app.start_quiz(full=True)

    assert _by_id(app.stage_widgets(), "hint-toggle").label == "Show Romaji"
    app.action_toggle_hint()

    widgets = app.stage_widgets()
    assert _by_id(widgets, "hint").text == app.session.current.question.hint
    assert _by_id(widgets, "hint-toggle").label == "Hide Romaji"


def test_back_cancels_pending_advance(
    bank: QuestionBank, stub_widgets, timers
) -> None:
    app = _app(bank)
    app.choose_chapter_at(0)
    app.start_quiz(full=True)
    app.answer_at(0)

    app.action_back()

    assert timers[-1].stopped
    assert app.session.state is SessionState.CHAPTER_SELECT
    timers[-1].callback()
    assert app.session.state is SessionState.CHAPTER_SELECT


def test_button_presses_route_to_session(
    bank: QuestionBank, stub_widgets, timers
) -> None:
    app = _app(bank, mini_length=1)

    app.on_button_pressed(StubEvent("chapter-0"))
    assert app.session.state is SessionState.LENGTH_SELECT
    app.on_button_pressed(StubEvent("back"))
    assert app.session.state is SessionState.CHAPTER_SELECT
    app.on_button_pressed(StubEvent("chapter-1"))
    app.on_button_pressed(StubEvent("length-mini"))
    assert app.session.total_questions == 1
    app.on_button_pressed(StubEvent("hint-toggle"))
    assert app.session.current.hint_visible
    app.on_button_pressed(StubEvent("option-0"))
    assert app.session.asked_count == 1
    app.on_button_pressed(StubEvent("unknown"))
    timers[-1].callback()
    assert app.session.state is SessionState.SUMMARY
    app.on_button_pressed(StubEvent("back"))
    app.on_button_pressed(StubEvent("chapter-0"))
    app.on_button_pressed(StubEvent("length-full"))
    assert app.session.total_questions == 5


def test_bracketed_bank_text_is_escaped(stub_widgets, timers) -> None:
    bank = QuestionBank.load(
        [
            HEADER,
            ["b-1", "[x]", "and/or [/i]", "[dim]や[/dim]", "[/]", "[red]"],
            ["b-2", "[x]", "[b]name[/b]", "なまえ", "", "[red]"],
        ]
    )
    app = _app(bank, mini_length=1)

    chapter = _by_id(app.stage_widgets(), "chapter-0").label
    assert Text.from_markup(chapter).plain == "Chapter [x] (2)"

    app.choose_chapter_at(0)
    app.start_quiz(full=True)
    app.action_toggle_hint()
    active = app.session.current
    widgets = app.stage_widgets()
    for widget_id, expected in (
        ("prompt", active.question.prompt),
        ("hint", active.question.hint),
    ):
        if expected:
            text = _by_id(widgets, widget_id).text
            assert Text.from_markup(text).plain == expected

    wrong = next(
        i for i, o in enumerate(active.options) if o != active.question.answer
    )
    app.answer_at(wrong)
    revealed = _by_id(app.stage_widgets(), "options").children
    labels = [Text.from_markup(button.label).plain for button in revealed]
    assert f"{wrong + 1}) ❌ {active.options[wrong]}" in labels
    correct = f"✅ {active.question.answer}"
    assert any(label.endswith(correct) for label in labels)

    timers[-1].callback()
    app.answer_at(0)
    timers[-1].callback()
    assert app.session.state is SessionState.SUMMARY
    categories = [
        Text.from_markup(widget.text).plain
        for widget in _flatten(app.stage_widgets())
        if isinstance(widget, StubStatic) and widget.id is None
    ]
    assert categories and categories[0].startswith("[red]: ")


def test_number_keys_cover_every_single_digit_option(
    bank: QuestionBank, stub_widgets, timers
) -> None:
    keys = {
        binding.key: binding.action
        for binding in qv.QuizApp.BINDINGS
        if isinstance(binding, Binding)
    }
    for n in range(1, 10):
        assert keys[str(n)] == f"answer({n - 1})"

    app = _app(bank, option_count=5)
    app.choose_chapter_at(0)
    app.start_quiz(full=True)
    assert len(app.session.current.options) == 5

    app.action_answer(4)

    assert app.session.asked_count == 1


def test_update_stage_mounts_widgets_when_running(
    bank: QuestionBank, stub_widgets, monkeypatch: pytest.MonkeyPatch
) -> None:
    app = _app(bank)
    stage = StubContainer(id="stage")
    notice = StubStatic("", id="notice")
    monkeypatch.setattr(qv.QuizApp, "is_running", property(lambda self: True))
    monkeypatch.setattr(
        app,
        "query_one",
        lambda selector, _type: stage if selector == "#stage" else notice,
    )
    app.notice = "hello"

    app._update_stage()

    assert len(stage.children) == 1
    assert notice.text == "hello"


def test_update_stage_is_noop_before_mount(
    bank: QuestionBank, stub_widgets
) -> None:
    app = _app(bank)

    app.choose_chapter_at(0)

    assert app.session.state is SessionState.LENGTH_SELECT


def test_timer_handle_stops_textual_timer() -> None:
    timer = StubTimer(1.0, lambda: None)

    qv.TimerHandle(timer).cancel()  # type: ignore[arg-type]

    assert timer.stopped
