"""Shared fixtures: a virtual clock and scripted activity boards.

Each board is an ``HtmlSurface`` whose listeners play the part of the
page's own event handlers: they flip feedback classes, fill completion
chevrons and move drag terms between the bank and the buckets.
"""

from __future__ import annotations

import asyncio

import pytest

from activity_solver.config import SolverConfig, TimingConfig
from activity_solver.environment.html_surface import HtmlSurface
from activity_solver.environment.probes import ProbeSet
from activity_solver.solver.context import Clock

# Whole-second intervals keep virtual time exact.
FAST_TIMING = TimingConfig(
    min_task_delay=0.0,
    max_task_delay=0.0,
    poll_interval=1.0,
    poll_timeout=4.0,
    reveal_timeout=4.0,
    max_animation_steps=10,
    animation_timeout=1000.0,
)


class FakeClock(Clock):
    """Virtual time: ``sleep`` advances the clock and yields to the loop once."""

    def __init__(self):
        self.time = 0.0
        self.sleeps: list[float] = []

    def now(self) -> float:
        return self.time

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.time += max(0.0, seconds)
        await asyncio.sleep(0)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def probes():
    return ProbeSet()


@pytest.fixture
def config():
    return SolverConfig(timing=FAST_TIMING)


def clicks(surface: HtmlSurface, selector: str) -> list:
    return [e for e in surface.events_of("click") if e.node.css.match(selector)]


def _fill(chevron) -> None:
    classes = [c for c in chevron.get("class", []) if c not in ("grey", "chevron-outline")]
    chevron["class"] = classes + ["filled"]


# -- radio -------------------------------------------------------------


def radio_html(options: int = 4, question_id: str = "ember1", complete: bool = False) -> str:
    buttons = "".join(
        f'<div class="zb-radio-button" data-index="{i}">'
        f'<input type="radio" name="{question_id}-q"><label>Option {i}</label></div>'
        for i in range(options)
    )
    chevron = "zb-chevron question-chevron " + ("filled" if complete else "grey")
    return (
        f'<div id="{question_id}" class="question-set-question multiple-choice-question">'
        f'<div class="{chevron}"></div>'
        f'<div class="question">Question {question_id}</div>'
        f"{buttons}"
        f'<div class="zb-explanation"></div>'
        f"</div>"
    )


def script_radio(surface: HtmlSurface, correct: int | None = 3) -> None:
    """Clicking option *correct* marks its question correct; any other marks it incorrect."""

    def on_click(event):
        option = event.node.find_parent("div", class_="zb-radio-button")
        question = option.find_parent("div", class_="multiple-choice-question")
        explanation = question.select_one("div.zb-explanation")
        right = correct is not None and int(option["data-index"]) == correct
        explanation["class"] = ["zb-explanation", "correct" if right else "incorrect"]
        if right:
            _fill(question.select_one("div.zb-chevron"))

    surface.on("div.zb-radio-button input", "click", on_click)


def radio_board(options: int = 4, correct: int | None = 3, complete: bool = False) -> HtmlSurface:
    surface = HtmlSurface(f"<html><body>{radio_html(options, complete=complete)}</body></html>")
    script_radio(surface, correct)
    return surface


# -- clickable ---------------------------------------------------------


def clickable_html(options: int = 3, correct: int = 1, clicked: tuple[int, ...] = ()) -> str:
    buttons = "".join(
        f'<button class="zb-button grey {"clicked incorrect" if i in clicked else "unclicked"}" '
        f'data-correct="{"yes" if i == correct else "no"}">Choice {i}</button>'
        for i in range(options)
    )
    return (
        '<div class="detect-answer-content-resource" content_resource_id="click-1">'
        '<div class="detect-answer-question">'
        '<div class="zb-chevron question-chevron grey"></div>'
        '<div class="question">Which choice detects the answer?</div>'
        f"{buttons}"
        "</div></div>"
    )


def script_clickable(surface: HtmlSurface) -> None:
    def on_click(event):
        button = event.node
        right = button.get("data-correct") == "yes"
        kept = [c for c in button["class"] if c != "unclicked"]
        button["class"] = kept + ["clicked", "correct" if right else "incorrect"]
        if right:
            question = button.find_parent("div", class_="detect-answer-question")
            _fill(question.select_one("div.zb-chevron"))

    surface.on("button.zb-button", "click", on_click)


def clickable_board(**kwargs) -> HtmlSurface:
    surface = HtmlSurface(f"<html><body>{clickable_html(**kwargs)}</body></html>")
    script_clickable(surface)
    return surface


# -- short answer ------------------------------------------------------


def short_answer_board(
    answers: tuple[str, ...] = ("x = 5", "5"),
    accepted: tuple[str, ...] = ("x = 5",),
    reveal_after: int | None = 2,
    with_reveal_button: bool = True,
) -> HtmlSurface:
    reveal = '<button class="show-answer-button">Show answer</button>' if with_reveal_button else ""
    surface = HtmlSurface(
        "<html><body>"
        '<div class="short-answer-content-resource" content_resource_id="sa-1">'
        '<div class="question-set-question short-answer-question">'
        '<div class="zb-chevron question-chevron grey"></div>'
        '<div class="question">Solve for x.</div>'
        '<textarea class="zb-text-area"></textarea>'
        '<button class="check-button">Check</button>'
        f"{reveal}"
        '<div class="zb-explanation"></div>'
        "</div></div>"
        "</body></html>"
    )
    presses = {"count": 0}

    def on_reveal(event):
        presses["count"] += 1
        if reveal_after is None or presses["count"] != reveal_after:
            return
        spans = "".join(f'<span class="forfeit-answer">{a}</span>' for a in answers)
        section = surface.soup.select_one("div.zb-explanation")
        section.append(surface.fragment(f'<div class="answers">Answer: {spans}</div>'))

    def on_check(event):
        question = event.node.find_parent("div", class_="short-answer-question")
        text = surface.value(question.select_one("textarea"))
        if text in accepted:
            _fill(question.select_one("div.zb-chevron"))

    surface.on("button.show-answer-button", "click", on_reveal)
    surface.on("button.check-button", "click", on_check)
    return surface


# -- animation ---------------------------------------------------------


def animation_board(
    steps: int = 3,
    complete: bool = False,
    rewound: bool = False,
    completes: bool = True,
) -> HtmlSurface:
    chevron = "zb-chevron title-bar-chevron " + ("filled orange" if complete else "grey")
    play_icon = "play-button rotate" if rewound else "play-button"
    surface = HtmlSurface(
        "<html><body>"
        '<div class="interactive-activity-container animation-player-content-resource" '
        'content_resource_id="anim-1">'
        f'<div class="{chevron}"></div>'
        '<div class="speed-control"><input type="checkbox"></div>'
        '<button class="start-button">Start</button>'
        f'<button aria-label="Play"><div class="{play_icon}"></div></button>'
        "</div>"
        "</body></html>"
    )
    state = {"step": 0}

    def on_play(event):
        icon = event.node.select_one("div.play-button")
        if "rotate" in icon["class"]:
            icon["class"] = ["play-button"]
            state["step"] = 0
            return
        state["step"] += 1
        if completes and state["step"] >= steps:
            icon["class"] = ["play-button", "rotate"]
            chevron_node = surface.soup.select_one("div.title-bar-chevron")
            chevron_node["class"] = ["zb-chevron", "title-bar-chevron", "filled", "orange"]

    surface.on('button[aria-label="Play"]', "click", on_play)
    return surface


# -- matching ----------------------------------------------------------


def matching_board(
    answers: tuple[str, ...] = ("t1", "t2", "t0"),
    bank: tuple[str, ...] = ("t0", "t1", "t2"),
    placed: dict[int, str] | None = None,
    reset_button: bool = True,
) -> HtmlSurface:
    """Rows expect ``answers[i]``; *placed* pre-fills buckets from an earlier attempt."""
    placed = placed or {}

    def term(name: str) -> str:
        return f'<div class="draggable-object" data-term="{name}"><span>{name}</span></div>'

    def explanation(i: int) -> str:
        if i not in placed:
            return "definition-match-explanation"
        verdict = "correct" if placed[i] == answers[i] else "incorrect"
        return f"definition-match-explanation {verdict}"

    rows = "".join(
        f'<div class="definition-row" data-answer="{answer}">'
        f'<div class="term-bucket{" populated" if i in placed else ""}">'
        f'{term(placed[i]) if i in placed else ""}</div>'
        f'<div class="definition">Definition {i}</div>'
        f'<div class="{explanation(i)}"></div>'
        f"</div>"
        for i, answer in enumerate(answers)
    )
    terms = "".join(f'<li class="unselected-term">{term(name)}</li>' for name in bank)
    reset = '<button class="reset-button">Clear</button>' if reset_button else ""
    surface = HtmlSurface(
        "<html><body>"
        '<div class="definition-match-payload" content_resource_id="match-1">'
        '<div class="zb-chevron title-bar-chevron grey"></div>'
        f'<ul class="term-bank">{terms}</ul>'
        f"{rows}"
        f"{reset}"
        "</div>"
        "</body></html>"
    )
    script_matching(surface)
    return surface


def script_matching(surface: HtmlSurface) -> None:
    soup = surface.soup

    def to_bank(node):
        li = surface.fragment('<li class="unselected-term"></li>')
        li.append(node.extract())
        soup.select_one("ul.term-bank").append(li)

    def clear_row(bucket):
        bucket["class"] = ["term-bucket"]
        row = bucket.find_parent("div", class_="definition-row")
        row.select_one("div.definition-match-explanation")["class"] = ["definition-match-explanation"]

    def refresh_chevron():
        rows = soup.select("div.definition-row")
        if all(r.select_one("div.definition-match-explanation.correct") for r in rows):
            _fill(soup.select_one("div.title-bar-chevron"))

    def on_dragstart(event):
        event.medium.handle["source"] = event.node

    def on_drop(event):
        source = event.medium.handle["source"]
        bucket = event.node
        old_parent = source.parent
        for occupant in bucket.select("div.draggable-object"):
            if occupant is not source:
                to_bank(occupant)
        source.extract()
        if old_parent.name == "li":
            old_parent.decompose()
        elif old_parent is not bucket:
            clear_row(old_parent)
        bucket.append(source)
        bucket["class"] = ["term-bucket", "populated"]
        row = bucket.find_parent("div", class_="definition-row")
        right = source["data-term"] == row["data-answer"]
        row.select_one("div.definition-match-explanation")["class"] = [
            "definition-match-explanation", "correct" if right else "incorrect",
        ]
        refresh_chevron()

    def on_reset(event):
        for bucket in soup.select("div.term-bucket"):
            for occupant in bucket.select("div.draggable-object"):
                to_bank(occupant)
            clear_row(bucket)

    surface.on("div.draggable-object", "dragstart", on_dragstart)
    surface.on("div.term-bucket", "drop", on_drop)
    surface.on("button.reset-button", "click", on_reset)


def row_verdicts(surface: HtmlSurface) -> list[str]:
    verdicts = []
    for row in surface.soup.select("div.definition-row"):
        classes = row.select_one("div.definition-match-explanation")["class"]
        verdicts.append(next((c for c in classes if c in ("correct", "incorrect")), ""))
    return verdicts
