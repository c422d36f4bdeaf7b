"""Completion marker ("chevron") inspection and reset."""

from __future__ import annotations

import logging

from activity_solver.environment.probes import ProbeSet
from activity_solver.environment.surface import Surface
from activity_solver.solver.task_detector import TaskInstance

logger = logging.getLogger(__name__)

_COMPLETE_MARKER_CLASSES = ("check", "orange", "filled")
_INCOMPLETE_MARKER_CLASSES = ("grey", "chevron-outline")


class CompletionClassifier:
    def __init__(self, surface: Surface, probes: ProbeSet):
        self.surface = surface
        self.probes = probes

    async def is_complete(self, instance: TaskInstance, force_mode: bool) -> bool:
        """Whether *instance*'s marker shows it as satisfied.

        Always False in force mode.  A missing marker counts as incomplete.
        """
        if force_mode:
            return False
        probes = self.probes.for_type(instance.task_type)
        if not probes.marker:
            return False

        marker = instance.marker
        if marker is None or not await self.surface.is_attached(marker):
            marker = await self.surface.query(probes.marker, instance.scope)
        if marker is None:
            return False

        classes = await self.surface.classes(marker)
        return any(name in classes for name in probes.complete_classes)

    async def reset_markers(self) -> int:
        """Flip every completion marker on the surface back to "not completed"."""
        markers = await self.surface.query_all(self.probes.reset_markers)
        for marker in markers:
            await self.surface.mutate_classes(
                marker, add=_INCOMPLETE_MARKER_CLASSES, remove=_COMPLETE_MARKER_CLASSES
            )
            await self.surface.set_attribute(marker, "aria-label", "Activity not completed")
        logger.info("Reset %d completion marker(s)", len(markers))
        return len(markers)
