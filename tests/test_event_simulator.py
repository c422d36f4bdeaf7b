import asyncio

import pytest

from activity_solver.environment.html_surface import HtmlSurface
from activity_solver.errors import StaleReferenceError
from activity_solver.solver.event_simulator import EventSimulator

PAGE = """
<html><body>
  <div class="source"><span>term</span></div>
  <div class="target"></div>
  <textarea class="answer"></textarea>
  <input type="checkbox" class="toggle">
</body></html>
"""


def test_transfer_dispatches_both_legs_with_one_medium():
    surface = HtmlSurface(PAGE)
    source = surface.soup.select_one("div.source")
    target = surface.soup.select_one("div.target")

    asyncio.run(EventSimulator(surface).simulate_transfer(source, target))

    assert [(e.type, e.node["class"][0]) for e in surface.events] == [
        ("dragstart", "source"),
        ("dragenter", "target"),
        ("dragover", "target"),
        ("drop", "target"),
        ("dragend", "source"),
    ]
    media = {id(e.medium) for e in surface.events}
    assert len(media) == 1


def test_drop_handler_reads_what_dragstart_stored():
    surface = HtmlSurface(PAGE)
    source = surface.soup.select_one("div.source")
    target = surface.soup.select_one("div.target")
    received = []
    surface.on(source, "dragstart", lambda e: e.medium.handle.update(term="term"))
    surface.on("div.target", "drop", lambda e: received.append(e.medium.handle.get("term")))

    asyncio.run(EventSimulator(surface).simulate_transfer(source, target))

    assert received == ["term"]


def test_text_commit_sets_value_then_fires_input_and_change():
    surface = HtmlSurface(PAGE)
    area = surface.soup.select_one("textarea")

    asyncio.run(EventSimulator(surface).simulate_text_commit(area, "x = 5"))

    assert surface.value(area) == "x = 5"
    assert [e.type for e in surface.events] == ["input", "change"]


def test_activate_clicks_and_applies_default_action():
    surface = HtmlSurface(PAGE)
    toggle = surface.soup.select_one("input.toggle")

    asyncio.run(EventSimulator(surface).simulate_activate(toggle))

    assert [e.type for e in surface.events] == ["click"]
    assert asyncio.run(surface.is_checked(toggle))


def test_detached_node_raises_before_any_dispatch():
    surface = HtmlSurface(PAGE)
    source = surface.soup.select_one("div.source")
    target = surface.soup.select_one("div.target")
    target.extract()

    with pytest.raises(StaleReferenceError):
        asyncio.run(EventSimulator(surface).simulate_transfer(source, target))
    assert surface.events == []


class ReleasingSurface(HtmlSurface):
    def __init__(self, html):
        super().__init__(html)
        self.released = []

    async def release_transfer_medium(self, medium):
        self.released.append((medium, len(self.events)))


def test_transfer_medium_is_released_after_dragend():
    surface = ReleasingSurface(PAGE)
    source = surface.soup.select_one("div.source")
    target = surface.soup.select_one("div.target")

    asyncio.run(EventSimulator(surface).simulate_transfer(source, target))

    [(medium, seen)] = surface.released
    assert medium is surface.events[-1].medium
    assert seen == 5
    assert surface.events[-1].type == "dragend"


def test_transfer_medium_is_released_when_a_leg_fails():
    surface = ReleasingSurface(PAGE)
    source = surface.soup.select_one("div.source")
    target = surface.soup.select_one("div.target")

    def fail(event):
        raise RuntimeError("drop handler crashed")

    surface.on(target, "drop", fail)

    with pytest.raises(RuntimeError):
        asyncio.run(EventSimulator(surface).simulate_transfer(source, target))
    assert len(surface.released) == 1
    assert surface.events_of("dragend") == []
