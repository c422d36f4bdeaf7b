"""Metrics tracking for solving runs."""

from __future__ import annotations

import json
import time
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from activity_solver.solver.base import Outcome, SolveResult


@dataclass
class TaskMetrics:
    """Metrics for a single task instance."""
    task_key: str
    task_type: str
    outcome: str = Outcome.FAILED.value
    inputs: int = 0
    candidates_tried: int = 0
    elapsed_seconds: float = 0.0
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.outcome in (Outcome.SOLVED.value, Outcome.ALREADY_COMPLETE.value)

    @classmethod
    def from_result(cls, result: SolveResult) -> TaskMetrics:
        return cls(
            task_key=result.task_key,
            task_type=result.task_type.value,
            outcome=result.outcome.value,
            inputs=result.inputs_issued,
            candidates_tried=result.candidates_tried,
            elapsed_seconds=result.elapsed_seconds,
            error=result.detail,
        )


@dataclass
class RunMetrics:
    """Aggregate metrics for one orchestrator run."""
    request: str = ""
    force_mode: bool = False
    tasks: list[TaskMetrics] = field(default_factory=list)
    markers_reset: int = 0
    stopped: bool = False
    total_elapsed_seconds: float = 0.0
    start_time: float = 0.0

    def start(self):
        self.start_time = time.time()

    def finish(self):
        self.total_elapsed_seconds = time.time() - self.start_time

    @property
    def num_solved(self) -> int:
        return sum(1 for t in self.tasks if t.success)

    @property
    def success_rate(self) -> float:
        if not self.tasks:
            return 0.0
        return self.num_solved / len(self.tasks)

    @property
    def total_inputs(self) -> int:
        return sum(t.inputs for t in self.tasks)

    @property
    def outcome_counts(self) -> dict[str, int]:
        return dict(Counter(t.outcome for t in self.tasks))

    @property
    def avg_time_per_task(self) -> float:
        if not self.tasks:
            return 0.0
        return sum(t.elapsed_seconds for t in self.tasks) / len(self.tasks)

    def to_dict(self) -> dict:
        return {
            "summary": {
                "request": self.request,
                "force_mode": self.force_mode,
                "total_tasks": len(self.tasks),
                "solved": self.num_solved,
                "success_rate": f"{self.success_rate:.1%}",
                "outcomes": self.outcome_counts,
                "markers_reset": self.markers_reset,
                "stopped": self.stopped,
                "total_elapsed_seconds": round(self.total_elapsed_seconds, 1),
                "avg_seconds_per_task": round(self.avg_time_per_task, 1),
                "total_inputs": self.total_inputs,
            },
            "tasks": [
                {
                    "key": t.task_key,
                    "type": t.task_type,
                    "outcome": t.outcome,
                    "inputs": t.inputs,
                    "candidates_tried": t.candidates_tried,
                    "elapsed_seconds": round(t.elapsed_seconds, 2),
                    "error": t.error,
                }
                for t in self.tasks
            ],
        }

    def save(self, path: str | Path):
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    def print_summary(self):
        d = self.to_dict()["summary"]
        print(f"\n{'='*50}")
        print("Run Summary")
        print(f"{'='*50}")
        for k, v in d.items():
            print(f"  {k}: {v}")
        print(f"{'='*50}")
