"""Drag-and-drop matching solver.

N slots (definition rows with a drop bucket) and a pool of terms, some in
the unplaced bank and some sitting in buckets from an earlier attempt.
The page never exposes the right mapping, so every slot is solved by
trial against the live feedback:

1. If every slot already verifies correct (and force mode is off) there
   is nothing to do.
2. Any prior placement, or force mode with placements, triggers a reset
   first.  Partial state is never trusted.
3. Until no slot is left: take the first unfilled slot, try each bank
   term on it, then each term parked in another unverified slot.  The
   first term that verifies correct completes the slot.  If none does,
   the solver stops with ``NO_PROGRESS`` instead of looping.

Every slot tries each term at most once and the solver halts on the
first slot it cannot fill, so a board with N slots and M terms costs at
most N*M transfers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from activity_solver.environment.surface import Node
from activity_solver.errors import MissingProbeError, StaleReferenceError
from activity_solver.solver.base import Outcome, SolveAttempt, Solver, SolverState
from activity_solver.solver.feedback import PollContract, Verdict
from activity_solver.solver.task_detector import Candidate, TaskType

logger = logging.getLogger(__name__)


@dataclass
class Slot:
    key: str
    index: int
    row: Node
    drop_zone: Node | None
    occupant: Candidate | None = None
    verified: bool = False
    incorrect: bool = False

    @property
    def filled(self) -> bool:
        return self.occupant is not None


class MatchingSolver(Solver):
    task_type = TaskType.MATCHING

    async def _label(self, node: Node) -> str:
        selector = self.probes.controls.get("candidate_label")
        label = await self.surface.query(selector, node) if selector else None
        return await self.surface.text(label if label is not None else node)

    async def _slots(self, scope: Node) -> list[Slot]:
        rows = await self.surface.query_all(self.probes.control("slot_row"), scope)
        drop_zone = self.probes.control("drop_zone")
        slot_candidate = self.probes.controls.get("slot_candidate")
        slots: list[Slot] = []
        for index, row in enumerate(rows):
            occupant = None
            node = await self.surface.query(slot_candidate, row) if slot_candidate else None
            if node is not None:
                occupant = Candidate(text=await self._label(node), node=node, index=index)
            slots.append(Slot(
                key=f"slot-{index}",
                index=index,
                row=row,
                drop_zone=await self.surface.query(drop_zone, row),
                occupant=occupant,
                verified=await self.surface.present(row, self.probes.correct),
                incorrect=await self.surface.present(row, self.probes.incorrect),
            ))
        return slots

    async def _bank(self, scope: Node) -> list[Candidate]:
        bank_selector = self.probes.controls.get("bank")
        bank = await self.surface.query(bank_selector, scope) if bank_selector else scope
        if bank is None:
            return []
        nodes = await self.surface.query_all(self.probes.candidates, bank)
        return [
            Candidate(text=await self._label(node), node=node, index=i)
            for i, node in enumerate(nodes)
        ]

    async def _reset(self, attempt: SolveAttempt) -> bool:
        selector = self.probes.controls.get("reset_button")
        button = await self.surface.query(selector, attempt.instance.scope) if selector else None
        if button is None:
            attempt.log("No reset control, keeping existing placements", logging.WARNING)
            return False
        attempt.enter(SolverState.TRYING)
        await attempt.activate(button)
        await self.clock.sleep(self.timing.poll_interval)
        return True

    async def _fill(
        self,
        attempt: SolveAttempt,
        target: Slot,
        candidates: list[Candidate],
        source: str,
        contract: PollContract,
    ) -> bool:
        if target.drop_zone is None:
            raise MissingProbeError("drop_zone", attempt.instance.key)
        for candidate in candidates:
            attempt.enter(SolverState.TRYING)
            attempt.log(f'Trying option from {source} "{candidate.text}" in target {target.index + 1}')
            try:
                await attempt.transfer(candidate.node, target.drop_zone)
            except StaleReferenceError:
                attempt.log("Option went stale, skipping", logging.WARNING)
                continue
            candidate.attempted = True
            attempt.result.candidates_tried += 1

            verdict = await self.verify(attempt, target.row, contract)
            attempt.context.checkpoint()
            if verdict is Verdict.CORRECT:
                attempt.log("Correct match found and verified")
                target.verified = True
                await self.clock.sleep(self.timing.poll_interval)
                return True
            await self.clock.sleep(self.timing.poll_interval)
        return False

    async def _solve(self, attempt: SolveAttempt) -> Outcome:
        scope = attempt.instance.scope
        force_mode = attempt.context.force_mode
        contract = self.contract()

        slots = await self._slots(scope)
        if not slots:
            raise MissingProbeError("slot_row", attempt.instance.key)

        correct = [s for s in slots if s.verified]
        if len(correct) == len(slots) and not force_mode:
            attempt.log("All matches are already correct")
            return Outcome.ALREADY_COMPLETE

        completed: set[str] = set()
        if any(s.filled or s.verified or s.incorrect for s in slots):
            attempt.log(
                "Force mode enabled, resetting matches" if force_mode
                else "Existing matches found, resetting for a fresh attempt"
            )
            if not await self._reset(attempt):
                completed = {s.key for s in correct}

        while True:
            attempt.context.checkpoint()
            slots = await self._slots(scope)
            unfilled = [s for s in slots if s.key not in completed]
            bank = await self._bank(scope)
            attempt.log(f"Found {len(bank)} options in bank and {len(unfilled)} unfilled targets")

            if not unfilled:
                attempt.log("All targets matched")
                return Outcome.SOLVED
            if not bank and not any(s.filled for s in unfilled):
                attempt.log("No more available options")
                return Outcome.NO_PROGRESS

            target = unfilled[0]
            if await self._fill(attempt, target, bank, "bank", contract):
                completed.add(target.key)
                continue

            # The right term may be parked in another slot that has not been verified.
            slots = await self._slots(scope)
            by_key = {s.key: s for s in slots}
            target = by_key.get(target.key, target)
            parked = [
                s.occupant for s in slots
                if s.occupant is not None and s.key != target.key and s.key not in completed
            ]
            if await self._fill(attempt, target, parked, "bucket", contract):
                completed.add(target.key)
                continue

            attempt.log(f"No correct match found for target {target.index + 1}, stopping")
            return Outcome.NO_PROGRESS
