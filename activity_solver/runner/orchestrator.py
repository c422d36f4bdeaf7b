"""Run orchestration: discover task instances and drive their solvers.

A run is started with a request, which is one task type, ``"all"`` or
``"reset"``.  Instances of one type are always solved one after another
with a random pause between them.  In ``"all"`` mode the five type runners
are scheduled concurrently on the event loop and joined; an exception in
one of them is logged and does not affect the others.

Every run gets a fresh :class:`RunContext`; ``stop()`` cancels the
current one.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Callable

from activity_solver.config import SolverConfig
from activity_solver.environment.surface import Surface
from activity_solver.errors import MissingProbeError, SolverError, StaleReferenceError, UnknownTaskType
from activity_solver.runner.metrics import RunMetrics, TaskMetrics
from activity_solver.solver import SOLVERS
from activity_solver.solver.base import Outcome, SolveResult, Solver
from activity_solver.solver.completion import CompletionClassifier
from activity_solver.solver.context import AsyncioClock, Clock, LogEntry, LogSink, RunContext
from activity_solver.solver.task_detector import TaskDetector, TaskInstance, TaskType

logger = logging.getLogger(__name__)

ALL = "all"
RESET = "reset"


class Orchestrator:
    def __init__(
        self,
        surface: Surface,
        config: SolverConfig | None = None,
        clock: Clock | None = None,
        rng: random.Random | None = None,
    ):
        self.surface = surface
        self.config = config or SolverConfig()
        self.clock = clock or AsyncioClock()
        self.rng = rng or random.Random()
        self.detector = TaskDetector(surface, self.config.probes)
        self.classifier = CompletionClassifier(surface, self.config.probes)
        self.solvers: dict[TaskType, Solver] = {
            task_type: solver_cls(surface, self.config.probes, self.config.timing, self.clock)
            for task_type, solver_cls in SOLVERS.items()
        }
        self.context: RunContext | None = None
        self._subscribers: list[Callable[[LogEntry], None]] = []

    # -- run control -----------------------------------------------------

    @property
    def current_log(self) -> LogSink | None:
        return self.context.log if self.context else None

    def subscribe(self, callback: Callable[[LogEntry], None]) -> None:
        """Forward the log entries of this and every later run to *callback*."""
        self._subscribers.append(callback)
        if self.context is not None:
            self.context.log.subscribe(callback)

    def stop(self) -> None:
        if self.context is not None:
            self.context.stop()

    async def start(self, request: str | TaskType, force_mode: bool = False) -> RunMetrics:
        context = RunContext(force_mode=force_mode)
        for callback in self._subscribers:
            context.log.subscribe(callback)
        self.context = context

        label = getattr(request, "value", request)
        metrics = RunMetrics(request=str(label), force_mode=force_mode)
        metrics.start()
        try:
            if request == RESET:
                metrics.markers_reset = await self.classifier.reset_markers()
                context.log.add(f"Reset {metrics.markers_reset} completion markers")
            elif request == ALL:
                context.log.add("Solving all activity types" + (" (force mode)" if force_mode else ""))
                for tasks in await self._run_all(context):
                    metrics.tasks.extend(tasks)
            else:
                try:
                    task_type = TaskType.parse(request)
                except UnknownTaskType:
                    context.log.add(f"Unknown task type: {label}", logging.WARNING)
                else:
                    metrics.tasks.extend(await self._run_type(task_type, context))
        finally:
            metrics.stopped = context.cancelled
            metrics.finish()
        return metrics

    async def inventory(self) -> list[tuple[TaskInstance, bool]]:
        """Every discoverable instance of every type with its completion state."""
        found: list[tuple[TaskInstance, bool]] = []
        for task_type in TaskType:
            for instance in await self.detector.discover(task_type):
                found.append((instance, await self.classifier.is_complete(instance, False)))
        return found

    # -- internals -------------------------------------------------------

    async def _run_all(self, context: RunContext) -> list[list[TaskMetrics]]:
        async def isolated(task_type: TaskType) -> list[TaskMetrics]:
            try:
                return await self._run_type(task_type, context)
            except Exception as e:
                logger.exception("%s runner failed", task_type.value)
                context.log.add(f"Error in {task_type.value} solver: {e}", logging.ERROR)
                return []

        return await asyncio.gather(*(isolated(t) for t in TaskType))

    async def _run_type(self, task_type: TaskType, context: RunContext) -> list[TaskMetrics]:
        solver = self.solvers[task_type]
        results: list[TaskMetrics] = []

        instances = await self.detector.discover(task_type)
        context.log.add(f"Found {len(instances)} {task_type.value} activities")

        for index, instance in enumerate(instances):
            if index > 0:
                await self._pace(context)
            if context.cancelled:
                context.log.add(f"Stopping {task_type.value} solver", logging.WARNING)
                break

            context.log.add(f"Processing {instance.describe()} ({index + 1}/{len(instances)})")
            result = await self._solve_one(solver, instance, context)
            results.append(TaskMetrics.from_result(result))
            if result.outcome is Outcome.STOPPED:
                break
        else:
            context.log.add(f"Completed all {task_type.value} activities")
        return results

    async def _pace(self, context: RunContext) -> None:
        timing = self.config.timing
        delay = self.rng.uniform(timing.min_task_delay, timing.max_task_delay)
        if not context.cancelled:
            await self.clock.sleep(delay)

    async def _solve_one(self, solver: Solver, instance: TaskInstance, context: RunContext) -> SolveResult:
        retried = False
        while True:
            try:
                return await solver.attempt_solve(instance, context)
            except MissingProbeError as e:
                context.log.add(f"[{instance.key}] Skipping: {e}", logging.WARNING)
                return SolveResult(instance.key, instance.task_type, Outcome.SKIPPED, detail=str(e))
            except StaleReferenceError as e:
                fresh = None if retried else await self._rediscover(instance)
                if fresh is None:
                    context.log.add(f"[{instance.key}] Skipping, activity went stale: {e}", logging.WARNING)
                    return SolveResult(instance.key, instance.task_type, Outcome.SKIPPED, detail=str(e))
                context.log.add(f"[{instance.key}] Activity went stale, re-scanning", logging.WARNING)
                instance, retried = fresh, True
            except SolverError as e:
                context.log.add(f"[{instance.key}] Failed: {e}", logging.ERROR)
                return SolveResult(instance.key, instance.task_type, Outcome.FAILED, detail=str(e))
            except Exception as e:
                logger.exception("Unexpected error solving %s", instance.key)
                context.log.add(f"[{instance.key}] Error: {e}", logging.ERROR)
                return SolveResult(instance.key, instance.task_type, Outcome.FAILED, detail=str(e))

    async def _rediscover(self, instance: TaskInstance) -> TaskInstance | None:
        for fresh in await self.detector.discover(instance.task_type):
            if fresh.key == instance.key:
                return fresh
        return None
