"""Offline surface backed by a parsed HTML document.

Used for inventory runs over saved page snapshots and as a scriptable
surface: dispatched events are recorded and delivered to registered
listeners, which may mutate the tree to play the part of the page's own
event handlers.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable

from bs4 import BeautifulSoup, Tag

from activity_solver.environment.surface import Node, Surface, TransferMedium

logger = logging.getLogger(__name__)


@dataclass
class DispatchedEvent:
    node: Tag
    type: str
    init: dict = field(default_factory=dict)

    @property
    def medium(self) -> TransferMedium | None:
        return self.init.get("dataTransfer")


Listener = Callable[[DispatchedEvent], Any]


class HtmlSurface(Surface):
    """BeautifulSoup implementation of :class:`Surface`."""

    def __init__(self, html: str):
        self.soup = BeautifulSoup(html, "html.parser")
        self.events: list[DispatchedEvent] = []
        self._listeners: list[tuple[Tag | str, str, Listener]] = []

    @classmethod
    def from_file(cls, path: str | Path) -> HtmlSurface:
        return cls(Path(path).read_text(encoding="utf-8"))

    # -- scripting -------------------------------------------------------

    def on(self, target: Tag | str, event_type: str, handler: Listener) -> None:
        """Register *handler* for events of *event_type* on a node or selector."""
        self._listeners.append((target, event_type, handler))

    def events_of(self, event_type: str) -> list[DispatchedEvent]:
        return [e for e in self.events if e.type == event_type]

    def fragment(self, html: str) -> Tag:
        """Parse *html* into a detached tag that can be appended to the tree."""
        parsed = BeautifulSoup(html, "html.parser")
        return next(c for c in parsed.contents if isinstance(c, Tag))

    def value(self, node: Tag) -> str:
        if node.name == "textarea":
            return node.get_text()
        return str(node.get("value", ""))

    # -- Surface ---------------------------------------------------------

    async def query_all(self, selector: str, scope: Node | None = None) -> list[Node]:
        root = self.soup if scope is None else scope
        return list(root.select(selector))

    async def matches(self, node: Node, selector: str) -> bool:
        return bool(node.css.match(selector))

    async def classes(self, node: Node) -> set[str]:
        raw = node.get("class") or []
        if isinstance(raw, str):
            raw = raw.split()
        return set(raw)

    async def text(self, node: Node) -> str:
        return node.get_text().strip()

    async def attribute(self, node: Node, name: str) -> str | None:
        value = node.get(name)
        if isinstance(value, list):
            return " ".join(value)
        return value

    async def is_attached(self, node: Node) -> bool:
        current = node
        while current is not None:
            if current is self.soup:
                return True
            current = current.parent
        return False

    async def is_checked(self, node: Node) -> bool:
        return node.has_attr("checked")

    async def dispatch(self, node: Node, event_type: str, init: dict | None = None) -> None:
        event = DispatchedEvent(node=node, type=event_type, init=dict(init or {}))
        self.events.append(event)
        if event_type == "click":
            self._default_click(node)
        for target, wanted, handler in list(self._listeners):
            if wanted != event_type or not self._targets(target, node):
                continue
            result = handler(event)
            if inspect.isawaitable(result):
                await result

    async def set_value(self, node: Node, text: str) -> None:
        if node.name == "textarea":
            node.string = text
        else:
            node["value"] = text

    async def new_transfer_medium(self) -> TransferMedium:
        return TransferMedium(handle={})

    async def mutate_classes(
        self, node: Node, add: Iterable[str] = (), remove: Iterable[str] = ()
    ) -> None:
        current = [c for c in await self.classes(node) if c not in set(remove)]
        for name in add:
            if name not in current:
                current.append(name)
        node["class"] = current

    async def set_attribute(self, node: Node, name: str, value: str) -> None:
        node[name] = value

    # -- internals -------------------------------------------------------

    def _targets(self, target: Tag | str, node: Tag) -> bool:
        if isinstance(target, str):
            return bool(node.css.match(target))
        return target is node

    def _default_click(self, node: Tag) -> None:
        if node.name != "input":
            return
        kind = (node.get("type") or "").lower()
        if kind == "checkbox":
            if node.has_attr("checked"):
                del node["checked"]
            else:
                node["checked"] = ""
        elif kind == "radio":
            name = node.get("name")
            if name:
                for other in self.soup.select(f'input[type="radio"][name="{name}"]'):
                    if other.has_attr("checked"):
                        del other["checked"]
            node["checked"] = ""
