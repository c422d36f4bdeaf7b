"""Multiple-choice solvers: radio questions and clickable answer buttons.

Both are a linear scan over the options in document order, stopping at
the first option that verifies as correct.
"""

from __future__ import annotations

import logging

from activity_solver.solver.base import Outcome, SolveAttempt, Solver
from activity_solver.solver.task_detector import Candidate, TaskType

logger = logging.getLogger(__name__)


class RadioSolver(Solver):
    """Radio questions: feedback is rendered once per question, not per option."""

    task_type = TaskType.RADIO

    async def _solve(self, attempt: SolveAttempt) -> Outcome:
        scope = attempt.instance.scope
        activator = self.probes.controls.get("activator")

        async def scan() -> list[Candidate]:
            return await self.scan_candidates(scope)

        async def apply(candidate: Candidate) -> None:
            target = candidate.node
            if activator:
                target = await self.surface.query(activator, candidate.node) or candidate.node
            await attempt.activate(target)

        return await self.search_candidates(
            attempt, scan, apply, lambda _: scope, self.contract()
        )


class ClickableSolver(Solver):
    """Clickable questions: each button carries its own correct/incorrect class."""

    task_type = TaskType.CLICKABLE

    async def _solve(self, attempt: SolveAttempt) -> Outcome:
        scope = attempt.instance.scope
        attempted = self.probes.controls.get("attempted")

        async def scan() -> list[Candidate]:
            candidates = await self.scan_candidates(scope)
            if attempted:
                for candidate in candidates:
                    candidate.attempted = await self.surface.matches(candidate.node, attempted)
            return candidates

        async def apply(candidate: Candidate) -> None:
            await attempt.activate(candidate.node)

        return await self.search_candidates(
            attempt, scan, apply, lambda candidate: candidate.node, self.contract()
        )
