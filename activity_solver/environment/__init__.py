"""Interactive surfaces the solvers read from and dispatch events into."""

from __future__ import annotations

from activity_solver.environment.html_surface import HtmlSurface
from activity_solver.environment.probes import ProbeSet, TaskProbes
from activity_solver.environment.surface import Surface, TransferMedium

__all__ = ["HtmlSurface", "ProbeSet", "Surface", "TaskProbes", "TransferMedium"]
