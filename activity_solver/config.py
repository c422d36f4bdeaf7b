"""Solver configuration: timing constants, browser options and probes.

Defaults live in the dataclasses; ``config/solver_config.yaml`` (or a file
passed on the command line) overrides any subset of them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from activity_solver.environment.probes import ProbeSet

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[1]
CONFIG_PATH = PROJECT_ROOT / "config" / "solver_config.yaml"


@dataclass(frozen=True)
class TimingConfig:
    """All durations are in seconds."""

    # Random pause between consecutive task instances of one type.
    min_task_delay: float = 0.5
    max_task_delay: float = 2.0
    # Spacing between feedback samples; also the settle wait after controls.
    poll_interval: float = 0.1
    # Budget for one poll-verify cycle before the candidate counts as failed.
    poll_timeout: float = 2.0
    # Budget for the short-answer reveal gate to expose the answers.
    reveal_timeout: float = 1.0
    # Play-button presses allowed per animation.
    max_animation_steps: int = 40
    # Wall-clock ceiling for one animation.
    animation_timeout: float = 35.0

    def __post_init__(self):
        if self.min_task_delay < 0 or self.max_task_delay < self.min_task_delay:
            raise ValueError("task delays must satisfy 0 <= min_task_delay <= max_task_delay")
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        if self.poll_timeout < self.poll_interval:
            raise ValueError("poll_timeout must be at least one poll_interval")


@dataclass(frozen=True)
class BrowserConfig:
    url: str = "https://learn.zybooks.com"
    headless: bool = False
    user_data_dir: str | None = None
    viewport_width: int = 1280
    viewport_height: int = 800


@dataclass(frozen=True)
class SolverConfig:
    timing: TimingConfig = field(default_factory=TimingConfig)
    browser: BrowserConfig = field(default_factory=BrowserConfig)
    probes: ProbeSet = field(default_factory=ProbeSet)


def _overlay(base, section: dict[str, Any] | None, name: str):
    section = section or {}
    known = {f.name for f in fields(base)}
    unknown = set(section) - known
    if unknown:
        raise ValueError(f"Unknown keys in '{name}' config: {sorted(unknown)}")
    return replace(base, **section)


def load_config(path: str | Path | None = None) -> SolverConfig:
    """Load the YAML config at *path* (default ``config/solver_config.yaml``)."""
    config_path = Path(path) if path else CONFIG_PATH
    if not config_path.exists():
        if path:
            raise FileNotFoundError(config_path)
        logger.debug("No config file at %s, using defaults", config_path)
        return SolverConfig()

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}
    unknown = set(raw) - {"timing", "browser", "probes"}
    if unknown:
        raise ValueError(f"Unknown config sections: {sorted(unknown)}")

    return SolverConfig(
        timing=_overlay(TimingConfig(), raw.get("timing"), "timing"),
        browser=_overlay(BrowserConfig(), raw.get("browser"), "browser"),
        probes=ProbeSet.from_mapping(raw.get("probes")),
    )
