"""Per-type solvers for interactive textbook activities."""

from __future__ import annotations

from activity_solver.solver.animation import AnimationSolver
from activity_solver.solver.base import Outcome, SolveResult, Solver, SolverState
from activity_solver.solver.choice import ClickableSolver, RadioSolver
from activity_solver.solver.completion import CompletionClassifier
from activity_solver.solver.context import AsyncioClock, CancellationToken, Clock, LogSink, RunContext
from activity_solver.solver.event_simulator import EventSimulator
from activity_solver.solver.feedback import FeedbackObserver, PollContract, Verdict
from activity_solver.solver.matching import MatchingSolver
from activity_solver.solver.short_answer import ShortAnswerSolver
from activity_solver.solver.task_detector import Candidate, TaskDetector, TaskInstance, TaskType

SOLVERS: dict[TaskType, type[Solver]] = {
    TaskType.ANIMATION: AnimationSolver,
    TaskType.RADIO: RadioSolver,
    TaskType.CLICKABLE: ClickableSolver,
    TaskType.SHORT_ANSWER: ShortAnswerSolver,
    TaskType.MATCHING: MatchingSolver,
}

__all__ = [
    "AnimationSolver",
    "AsyncioClock",
    "CancellationToken",
    "Candidate",
    "ClickableSolver",
    "Clock",
    "CompletionClassifier",
    "EventSimulator",
    "FeedbackObserver",
    "LogSink",
    "MatchingSolver",
    "Outcome",
    "PollContract",
    "RadioSolver",
    "RunContext",
    "SOLVERS",
    "ShortAnswerSolver",
    "SolveResult",
    "Solver",
    "SolverState",
    "TaskDetector",
    "TaskInstance",
    "TaskType",
    "Verdict",
]
