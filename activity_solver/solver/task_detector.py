"""Enumerate solvable task instances on the surface.

Discovery is repeated on every pass; nothing is cached between runs.  The
same activity can be rendered through several container nodes (the page
keeps a hidden copy for print views), so containers are collapsed on
their identity attribute before their instances are produced.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from activity_solver.environment.probes import ProbeSet, TaskProbes
from activity_solver.environment.surface import Node, Surface
from activity_solver.errors import UnknownTaskType

logger = logging.getLogger(__name__)


class TaskType(str, Enum):
    ANIMATION = "animations"
    RADIO = "radio"
    CLICKABLE = "clickable"
    SHORT_ANSWER = "shortanswer"
    MATCHING = "dragdrop"

    @classmethod
    def parse(cls, value: str | TaskType) -> TaskType:
        if isinstance(value, TaskType):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnknownTaskType(f"Unknown task type: {value}") from None


@dataclass
class TaskInstance:
    key: str
    task_type: TaskType
    scope: Node
    container: Node
    marker: Node | None = None
    label: str = ""

    def describe(self) -> str:
        return f"{self.task_type.value} {self.key}" + (f" ({self.label})" if self.label else "")


@dataclass
class Candidate:
    text: str
    node: Node
    index: int
    attempted: bool = False


class TaskDetector:
    def __init__(self, surface: Surface, probes: ProbeSet):
        self.surface = surface
        self.probes = probes

    async def _containers(self, probes: TaskProbes) -> list[tuple[str, Node]]:
        nodes = await self.surface.query_all(probes.container)
        seen: set[str] = set()
        unique: list[tuple[str, Node]] = []
        for index, node in enumerate(nodes):
            identity = await self.surface.attribute(node, probes.identity_attribute)
            key = identity or f"#{index}"
            if key in seen:
                logger.debug("Collapsing duplicate container %s", key)
                continue
            seen.add(key)
            unique.append((key, node))
        return unique

    async def discover(self, task_type: TaskType) -> list[TaskInstance]:
        probes = self.probes.for_type(task_type)
        instances: list[TaskInstance] = []
        seen: set[str] = set()

        for container_key, container in await self._containers(probes):
            if probes.item:
                scopes = await self.surface.query_all(probes.item, container)
                keyed = [(f"{container_key}/{i}", scope) for i, scope in enumerate(scopes)]
            else:
                keyed = [(container_key, container)]

            for key, scope in keyed:
                if key in seen:
                    continue
                seen.add(key)
                marker = await self.surface.query(probes.marker, scope) if probes.marker else None
                instances.append(TaskInstance(
                    key=key,
                    task_type=task_type,
                    scope=scope,
                    container=container,
                    marker=marker,
                    label=await self._label(scope, probes),
                ))

        logger.info("Discovered %d %s instance(s)", len(instances), task_type.value)
        return instances

    async def _label(self, scope: Node, probes: TaskProbes) -> str:
        selector = probes.controls.get("question_text")
        if not selector:
            return ""
        node = await self.surface.query(selector, scope)
        if node is None:
            return ""
        text = await self.surface.text(node)
        return text[:50] + ("..." if len(text) > 50 else "")
