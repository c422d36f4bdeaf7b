"""Common solver machinery.

Every solver is a small state machine driven by :meth:`Solver.attempt_solve`::

    Idle -> Trying(candidate) -> Verifying -> Done(outcome)
                 ^                   |
                 +---- incorrect ----+

Entering an active state (Trying, Verifying, Playing, Rewinding) and
issuing any simulated input both pass through ``RunContext.checkpoint``,
so a stop request ends the attempt before the next input goes out.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, ClassVar

from activity_solver.config import TimingConfig
from activity_solver.environment.probes import ProbeSet, TaskProbes
from activity_solver.environment.surface import Node, Surface
from activity_solver.errors import StaleReferenceError, UserCancelled
from activity_solver.solver.completion import CompletionClassifier
from activity_solver.solver.context import AsyncioClock, Clock, RunContext
from activity_solver.solver.event_simulator import EventSimulator
from activity_solver.solver.feedback import FeedbackObserver, PollContract, Verdict
from activity_solver.solver.task_detector import Candidate, TaskInstance, TaskType

logger = logging.getLogger(__name__)

MAX_RESCANS = 3


class SolverState(Enum):
    IDLE = "idle"
    TRYING = "trying"
    VERIFYING = "verifying"
    PLAYING = "playing"
    REWINDING = "rewinding"
    DONE = "done"
    STOPPED = "stopped"


_ACTIVE_STATES = {
    SolverState.TRYING,
    SolverState.VERIFYING,
    SolverState.PLAYING,
    SolverState.REWINDING,
}


class Outcome(str, Enum):
    SOLVED = "solved"
    ALREADY_COMPLETE = "already_complete"
    EXHAUSTED = "exhausted"
    NO_PROGRESS = "no_progress"
    TIMEOUT = "timeout"
    SKIPPED = "skipped"
    STOPPED = "stopped"
    FAILED = "failed"


@dataclass
class SolveResult:
    task_key: str
    task_type: TaskType
    outcome: Outcome = Outcome.FAILED
    inputs_issued: int = 0
    candidates_tried: int = 0
    states: list[SolverState] = field(default_factory=lambda: [SolverState.IDLE])
    actions_log: list[str] = field(default_factory=list)
    elapsed_seconds: float = 0.0
    detail: str | None = None

    @property
    def success(self) -> bool:
        return self.outcome in (Outcome.SOLVED, Outcome.ALREADY_COMPLETE)


class SolveAttempt:
    """One solver invocation on one task instance."""

    def __init__(
        self,
        instance: TaskInstance,
        context: RunContext,
        simulator: EventSimulator,
        result: SolveResult,
    ):
        self.instance = instance
        self.context = context
        self.simulator = simulator
        self.result = result

    def enter(self, state: SolverState) -> None:
        if state in _ACTIVE_STATES:
            self.context.checkpoint()
        if self.result.states[-1] is not state or state in _ACTIVE_STATES:
            self.result.states.append(state)

    def log(self, message: str, level: int = logging.INFO) -> None:
        self.result.actions_log.append(message)
        self.context.log.add(f"[{self.instance.key}] {message}", level)

    async def activate(self, node: Node) -> None:
        self.context.checkpoint()
        await self.simulator.simulate_activate(node)
        self.result.inputs_issued += 1

    async def commit_text(self, node: Node, text: str) -> None:
        self.context.checkpoint()
        await self.simulator.simulate_text_commit(node, text)
        self.result.inputs_issued += 1

    async def transfer(self, source: Node, target: Node) -> None:
        self.context.checkpoint()
        await self.simulator.simulate_transfer(source, target)
        self.result.inputs_issued += 1


class Solver(ABC):
    """Solves one task instance of one type: ``attempt_solve(instance, context)``."""

    task_type: ClassVar[TaskType]

    def __init__(
        self,
        surface: Surface,
        probes: ProbeSet,
        timing: TimingConfig | None = None,
        clock: Clock | None = None,
    ):
        self.surface = surface
        self.probe_set = probes
        self.probes: TaskProbes = probes.for_type(self.task_type)
        self.timing = timing or TimingConfig()
        self.clock = clock or AsyncioClock()
        self.simulator = EventSimulator(surface)
        self.observer = FeedbackObserver(self.clock)
        self.classifier = CompletionClassifier(surface, probes)

    async def attempt_solve(self, instance: TaskInstance, context: RunContext) -> SolveResult:
        result = SolveResult(task_key=instance.key, task_type=instance.task_type)
        attempt = SolveAttempt(instance, context, self.simulator, result)
        started = self.clock.now()
        try:
            context.checkpoint()
            if await self.classifier.is_complete(instance, context.force_mode):
                attempt.log("Already completed, skipping")
                result.outcome = Outcome.ALREADY_COMPLETE
            else:
                result.outcome = await self._solve(attempt)
            attempt.enter(SolverState.DONE)
        except UserCancelled:
            attempt.log(f"Stopping {self.task_type.value} solver", logging.WARNING)
            result.outcome = Outcome.STOPPED
            attempt.enter(SolverState.STOPPED)
        finally:
            result.elapsed_seconds = self.clock.now() - started
        return result

    @abstractmethod
    async def _solve(self, attempt: SolveAttempt) -> Outcome: ...

    # -- helpers shared by the candidate-search solvers -------------------

    def contract(self, timeout: float | None = None) -> PollContract:
        correct, incorrect = self.probes.correct, self.probes.incorrect

        async def is_correct(scope: Any) -> bool:
            return await self.surface.present(scope, correct)

        async def is_incorrect(scope: Any) -> bool:
            return await self.surface.present(scope, incorrect)

        return PollContract(
            is_correct=is_correct,
            is_incorrect=is_incorrect if incorrect else None,
            interval=self.timing.poll_interval,
            timeout=self.timing.poll_timeout if timeout is None else timeout,
        )

    async def verify(self, attempt: SolveAttempt, scope: Any, contract: PollContract) -> Verdict:
        attempt.enter(SolverState.VERIFYING)
        return await self.observer.observe(scope, contract, attempt.context.token)

    async def scan_candidates(self, scope: Node, selector: str | None = None) -> list[Candidate]:
        selector = selector or self.probes.candidates
        nodes = await self.surface.query_all(selector, scope)
        return [
            Candidate(text=await self.surface.text(node), node=node, index=i)
            for i, node in enumerate(nodes)
        ]

    async def search_candidates(
        self,
        attempt: SolveAttempt,
        scan: Callable[[], Awaitable[list[Candidate]]],
        apply: Callable[[Candidate], Awaitable[None]],
        feedback_scope: Callable[[Candidate], Any],
        contract: PollContract,
    ) -> Outcome:
        """Try candidates in document order until one verifies as correct.

        A stale candidate triggers a re-scan; candidates already tried (by
        position and text) are not repeated.
        """
        candidates = await scan()
        if not candidates:
            attempt.log("No candidates found")
            return Outcome.EXHAUSTED
        attempt.log(f"Found {len(candidates)} candidate(s)")

        tried: set[tuple[int, str]] = set()
        rescans = 0
        position = 0
        while position < len(candidates):
            candidate = candidates[position]
            position += 1
            identity = (candidate.index, candidate.text)
            if candidate.attempted or identity in tried:
                continue

            attempt.enter(SolverState.TRYING)
            attempt.log(f'Trying option {candidate.index + 1}: "{candidate.text}"')
            try:
                await apply(candidate)
            except StaleReferenceError:
                if rescans >= MAX_RESCANS:
                    attempt.log("Candidates keep going stale, giving up", logging.WARNING)
                    return Outcome.EXHAUSTED
                rescans += 1
                attempt.log("Candidate went stale, re-scanning", logging.WARNING)
                candidates = await scan()
                position = 0
                continue
            tried.add(identity)
            candidate.attempted = True
            attempt.result.candidates_tried += 1

            verdict = await self.verify(attempt, feedback_scope(candidate), contract)
            attempt.context.checkpoint()
            if verdict is Verdict.CORRECT:
                attempt.log("Correct answer found")
                return Outcome.SOLVED
            if verdict is Verdict.INCORRECT:
                attempt.log("Incorrect answer, trying next option")
            else:
                attempt.log("No verdict within timeout, trying next option")

        attempt.log("All options tried without a correct verdict")
        return Outcome.EXHAUSTED
