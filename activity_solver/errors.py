"""Error taxonomy shared by the surface layer, the solvers and the orchestrator.

Everything below ``SolverError`` is scoped to a single task instance: the
orchestrator catches it at the task boundary, logs it and moves on.
``UserCancelled`` is not part of that hierarchy: it unwinds a
solver back to its entry point so the run can stop in an orderly way.
"""

from __future__ import annotations


class SolverError(Exception):
    """Base class for recoverable per-task failures."""


class StaleReferenceError(SolverError):
    """A node was detached from the surface between discovery and use."""


class MissingProbeError(SolverError):
    """An element the probe contract expects is absent for a task instance."""

    def __init__(self, probe: str, task_key: str | None = None, detail: str | None = None):
        self.probe = probe
        self.task_key = task_key
        message = f"missing probe '{probe}'"
        if task_key:
            message += f" for task {task_key}"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class VerificationTimeout(SolverError):
    """A wait on the surface exhausted its time budget."""


class UserCancelled(Exception):
    """The run's cancellation token was observed as set."""


class UnknownTaskType(ValueError):
    """The requested task type is not recognised."""
