"""Short-answer questions.

The accepted answers are hidden behind the "Show answer" button, which has
to be pressed twice before they are rendered.  Each revealed answer is then
typed into the text area and checked.  This activity has no per-answer
correctness class, so the question's completion marker is the verdict.
"""

from __future__ import annotations

import logging

from activity_solver.errors import MissingProbeError, VerificationTimeout
from activity_solver.solver.base import Outcome, SolveAttempt, Solver, SolverState
from activity_solver.solver.task_detector import Candidate, TaskType

logger = logging.getLogger(__name__)


class ShortAnswerSolver(Solver):
    task_type = TaskType.SHORT_ANSWER

    async def _require(self, attempt: SolveAttempt, name: str):
        selector = self.probes.control(name, attempt.instance.key)
        node = await self.surface.query(selector, attempt.instance.scope)
        if node is None:
            raise MissingProbeError(name, attempt.instance.key)
        return node

    async def _reveal(self, attempt: SolveAttempt, reveal_button) -> None:
        scope = attempt.instance.scope
        section_selector = self.probes.control("answer_section", attempt.instance.key)

        attempt.enter(SolverState.TRYING)
        attempt.log("Clicking show answer first time")
        await attempt.activate(reveal_button)
        await self.clock.sleep(self.timing.poll_interval)
        attempt.log("Clicking show answer second time")
        await attempt.activate(reveal_button)

        async def revealed() -> bool:
            section = await self.surface.query(section_selector, scope)
            return section is not None and "answer" in (await self.surface.text(section)).lower()

        try:
            await self.observer.wait_until(
                revealed, self.timing.reveal_timeout, self.timing.poll_interval
            )
        except VerificationTimeout as e:
            raise MissingProbeError("answer_section", attempt.instance.key, str(e)) from e

    async def _solve(self, attempt: SolveAttempt) -> Outcome:
        scope = attempt.instance.scope
        reveal_button = await self._require(attempt, "reveal_button")
        text_input = await self._require(attempt, "text_input")
        submit_button = await self._require(attempt, "submit_button")

        await self._reveal(attempt, reveal_button)
        section_selector = self.probes.control("answer_section", attempt.instance.key)

        async def scan() -> list[Candidate]:
            section = await self.surface.query(section_selector, scope)
            if section is None:
                return []
            return await self.scan_candidates(section)

        async def apply(candidate: Candidate) -> None:
            await attempt.commit_text(text_input, candidate.text)
            await self.clock.sleep(self.timing.poll_interval)
            await attempt.activate(submit_button)

        return await self.search_candidates(
            attempt, scan, apply, lambda _: scope, self.contract()
        )
