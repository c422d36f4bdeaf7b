"""Synthetic input against surface nodes.

Fire-and-forget: nothing here waits for or inspects the page's reaction.
"""

from __future__ import annotations

import logging

from activity_solver.environment.surface import Node, Surface
from activity_solver.errors import StaleReferenceError

logger = logging.getLogger(__name__)


class EventSimulator:
    def __init__(self, surface: Surface):
        self.surface = surface

    async def _ensure_attached(self, *nodes: Node) -> None:
        for node in nodes:
            if node is None or not await self.surface.is_attached(node):
                raise StaleReferenceError("node detached before dispatch")

    async def simulate_activate(self, node: Node) -> None:
        await self._ensure_attached(node)
        await self.surface.dispatch(node, "click")

    async def simulate_text_commit(self, node: Node, text: str) -> None:
        await self._ensure_attached(node)
        await self.surface.set_value(node, text)
        await self.surface.dispatch(node, "input")
        await self.surface.dispatch(node, "change")

    async def simulate_transfer(self, source: Node, target: Node) -> None:
        """Drag *source* onto *target* as one transfer session.

        Both legs carry the same transfer medium; the page's drop handler
        reads what the dragstart handler stored in it.
        """
        await self._ensure_attached(source, target)
        medium = await self.surface.new_transfer_medium()
        init = {"dataTransfer": medium}
        try:
            await self.surface.dispatch(source, "dragstart", init)
            await self.surface.dispatch(target, "dragenter", init)
            await self.surface.dispatch(target, "dragover", init)
            await self.surface.dispatch(target, "drop", init)
            await self.surface.dispatch(source, "dragend", init)
        finally:
            await self.surface.release_transfer_medium(medium)
        logger.debug("Transfer %s dispatched", medium.key)
