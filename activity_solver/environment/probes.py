"""Probe contract: the named structural lookups the solvers depend on.

The solving logic only knows probe *names*.  The concrete CSS selectors
below describe the zyBooks activity markup and can be replaced wholesale
from the YAML config when the document structure changes.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any

from activity_solver.errors import MissingProbeError


@dataclass(frozen=True)
class TaskProbes:
    container: str
    identity_attribute: str = "content_resource_id"
    item: str | None = None
    marker: str | None = None
    complete_classes: tuple[str, ...] = ("filled",)
    candidates: str | None = None
    correct: str | None = None
    incorrect: str | None = None
    controls: dict[str, str] = field(default_factory=dict)

    def control(self, name: str, task_key: str | None = None) -> str:
        selector = self.controls.get(name)
        if not selector:
            raise MissingProbeError(name, task_key, "no selector configured")
        return selector

    def merged(self, overrides: dict[str, Any]) -> TaskProbes:
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ValueError(f"Unknown probe fields: {sorted(unknown)}")
        changes = dict(overrides)
        if "controls" in changes:
            changes["controls"] = {**self.controls, **(changes["controls"] or {})}
        if "complete_classes" in changes:
            changes["complete_classes"] = tuple(changes["complete_classes"])
        return replace(self, **changes)


_CHEVRON_TITLE = 'div[class*="zb-chevron"][class*="title-bar-chevron"]'
_CHEVRON_QUESTION = "div.zb-chevron.question-chevron"

DEFAULT_PROBES: dict[str, TaskProbes] = {
    "animations": TaskProbes(
        container='div[class*="interactive-activity-container"][class*="animation-player"]',
        marker=_CHEVRON_TITLE,
        complete_classes=("filled", "orange"),
        controls={
            "start_button": 'button[class*="start-button"]',
            "play_button": 'button[aria-label="Play"]',
            "rewind_marker": 'div[class*="play-button"][class*="rotate"]',
            "speed_toggle": 'div[class*="speed-control"] input[type="checkbox"]',
        },
    ),
    "radio": TaskProbes(
        container='div[id^="ember"]:has(div.zb-radio-button).multiple-choice-question',
        identity_attribute="id",
        marker='div[class*="zb-chevron"]',
        candidates="div.zb-radio-button",
        correct="div.correct",
        incorrect="div.incorrect",
        controls={"activator": "input"},
    ),
    "clickable": TaskProbes(
        container="div.detect-answer-content-resource",
        item="div.detect-answer-question",
        marker=_CHEVRON_QUESTION,
        candidates="button.zb-button.grey.unclicked",
        correct=".correct",
        incorrect=".incorrect",
        controls={"attempted": ".clicked", "question_text": ".question"},
    ),
    "shortanswer": TaskProbes(
        container="div.short-answer-content-resource",
        item="div.question-set-question.short-answer-question",
        marker=_CHEVRON_QUESTION,
        candidates="div.answers span.forfeit-answer",
        correct=_CHEVRON_QUESTION + ".filled",
        controls={
            "reveal_button": "button.show-answer-button",
            "text_input": "textarea.zb-text-area",
            "submit_button": "button.check-button",
            "answer_section": "div.zb-explanation",
        },
    ),
    "dragdrop": TaskProbes(
        container="div.definition-match-payload",
        marker=_CHEVRON_TITLE,
        complete_classes=("filled", "orange"),
        candidates="li.unselected-term div.draggable-object",
        correct="div.definition-match-explanation.correct",
        incorrect="div.definition-match-explanation.incorrect",
        controls={
            "bank": ".term-bank",
            "slot_row": "div.definition-row",
            "drop_zone": "div.term-bucket",
            "slot_candidate": "div.term-bucket.populated div.draggable-object",
            "candidate_label": "span",
            "reset_button": "button.reset-button",
        },
    ),
}

DEFAULT_RESET_MARKERS = (
    'div[class*="zb-chevron"][class*="title-bar-chevron"], '
    'div[class*="zb-chevron"][class*="question-chevron"]'
)


@dataclass(frozen=True)
class ProbeSet:
    by_type: dict[str, TaskProbes] = field(default_factory=lambda: dict(DEFAULT_PROBES))
    reset_markers: str = DEFAULT_RESET_MARKERS

    def for_type(self, task_type: Any) -> TaskProbes:
        key = getattr(task_type, "value", task_type)
        return self.by_type[key]

    @classmethod
    def from_mapping(cls, raw: dict[str, Any] | None) -> ProbeSet:
        """Overlay a ``probes:`` config section on the defaults."""
        raw = dict(raw or {})
        reset_markers = raw.pop("reset_markers", DEFAULT_RESET_MARKERS)
        by_type = dict(DEFAULT_PROBES)
        for key, overrides in raw.items():
            if key not in by_type:
                raise ValueError(f"Unknown task type in probes config: {key}")
            by_type[key] = by_type[key].merged(overrides or {})
        return cls(by_type=by_type, reset_markers=reset_markers)
