#!/usr/bin/env python3
"""Main entry point: solve the interactive activities of one textbook section.

Usage:
    python -m activity_solver.runner.solve_all --pause                   # log in first, then solve everything
    python -m activity_solver.runner.solve_all --type radio              # one activity type only
    python -m activity_solver.runner.solve_all --type dragdrop --force   # redo activities already completed
    python -m activity_solver.runner.solve_all --type reset              # mark every activity as not completed
    python -m activity_solver.runner.solve_all --snapshot page.html --list

The browser profile directory and start URL can also come from the
environment (or a ``.env`` file): ``ACTIVITY_SOLVER_USER_DATA_DIR`` and
``ACTIVITY_SOLVER_URL``.  Ctrl-C stops the run after the current input.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
from dataclasses import replace
from pathlib import Path

from dotenv import load_dotenv

from activity_solver.config import PROJECT_ROOT, SolverConfig, load_config
from activity_solver.environment.html_surface import HtmlSurface
from activity_solver.runner.metrics import RunMetrics
from activity_solver.runner.orchestrator import ALL, RESET, Orchestrator
from activity_solver.solver.task_detector import TaskType

load_dotenv(PROJECT_ROOT / ".env")

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s: %(message)s",
)
logger = logging.getLogger(__name__)

REQUESTS = [ALL] + [t.value for t in TaskType] + [RESET]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Solve interactive textbook activities")
    parser.add_argument("--type", default=ALL, choices=REQUESTS, help="Activity type to solve")
    parser.add_argument("--force", action="store_true", help="Ignore completion markers and redo activities")
    parser.add_argument("--config", default=None, help="YAML config file (default: config/solver_config.yaml)")
    parser.add_argument("--url", default=None, help="Section URL to open")
    parser.add_argument("--headless", action="store_true")
    parser.add_argument("--user-data-dir", default=None, help="Persistent browser profile (keeps the login)")
    parser.add_argument("--pause", action="store_true", help="Wait for Enter before solving")
    parser.add_argument("--snapshot", default=None, help="Saved HTML page to inspect offline")
    parser.add_argument("--list", action="store_true", help="Only list the discovered activities")
    parser.add_argument("--output", default=None, help="Metrics output path")
    return parser


def apply_overrides(config: SolverConfig, args: argparse.Namespace) -> SolverConfig:
    browser = config.browser
    browser = replace(
        browser,
        url=args.url or os.environ.get("ACTIVITY_SOLVER_URL") or browser.url,
        headless=args.headless or browser.headless,
        user_data_dir=args.user_data_dir or os.environ.get("ACTIVITY_SOLVER_USER_DATA_DIR") or browser.user_data_dir,
    )
    return replace(config, browser=browser)


async def print_inventory(orchestrator: Orchestrator) -> None:
    inventory = await orchestrator.inventory()
    print(f"\n{'='*50}")
    print(f"Activities found: {len(inventory)}")
    print(f"{'='*50}")
    for instance, complete in inventory:
        print(f"  [{'x' if complete else ' '}] {instance.describe()}")
    print(f"{'='*50}")


async def run(args: argparse.Namespace, config: SolverConfig) -> RunMetrics | None:
    session = None
    if args.snapshot:
        surface = HtmlSurface.from_file(args.snapshot)
    else:
        from activity_solver.environment.playwright_surface import BrowserSession

        session = BrowserSession()
        surface = await session.start(
            url=config.browser.url,
            headless=config.browser.headless,
            user_data_dir=config.browser.user_data_dir,
            viewport=(config.browser.viewport_width, config.browser.viewport_height),
        )

    loop = asyncio.get_running_loop()
    try:
        if session is not None:
            if args.pause:
                await loop.run_in_executor(None, input, "Log in and open the section, then press Enter... ")
            await session.wait_for_load()

        orchestrator = Orchestrator(surface, config)
        if args.list:
            await print_inventory(orchestrator)
            return None

        try:
            loop.add_signal_handler(signal.SIGINT, orchestrator.stop)
        except NotImplementedError:
            logger.debug("Signal handlers not supported on this platform")
        try:
            return await orchestrator.start(args.type, force_mode=args.force)
        finally:
            try:
                loop.remove_signal_handler(signal.SIGINT)
            except NotImplementedError:
                pass
    finally:
        if session is not None:
            await session.stop()


def main():
    args = build_parser().parse_args()
    config = apply_overrides(load_config(args.config), args)
    output_path = args.output or str(PROJECT_ROOT / "results" / "metrics.json")

    run_metrics = asyncio.run(run(args, config))
    if run_metrics is None:
        return

    run_metrics.save(output_path)
    run_metrics.print_summary()


if __name__ == "__main__":
    main()
