"""Animation playback controller.

Animations are not a search problem: the activity completes once every
step has been played.  The controller presses play until the completion
marker fills, restarting playback whenever the play icon shows the
rotated "replay" glyph that marks the end of the animation.  A step
ceiling and a wall-clock ceiling bound each animation; hitting either is
a non-fatal ``TIMEOUT``.
"""

from __future__ import annotations

import logging

from activity_solver.environment.surface import Node
from activity_solver.solver.base import Outcome, SolveAttempt, Solver, SolverState
from activity_solver.solver.task_detector import TaskType

logger = logging.getLogger(__name__)


class AnimationSolver(Solver):
    task_type = TaskType.ANIMATION

    async def _play_button(self, scope: Node) -> Node | None:
        return await self.surface.query(self.probes.control("play_button"), scope)

    async def _at_end(self, play_button: Node | None) -> bool:
        if play_button is None:
            return False
        marker = await self.surface.query(self.probes.control("rewind_marker"), play_button)
        return marker is not None

    async def _restart(self, attempt: SolveAttempt, play_button: Node) -> None:
        attempt.enter(SolverState.REWINDING)
        attempt.log("Animation reached end, resetting")
        await attempt.activate(play_button)
        await self.clock.sleep(self.timing.poll_interval)

        start_selector = self.probes.controls.get("start_button")
        start_button = await self.surface.query(start_selector, attempt.instance.scope) if start_selector else None
        if start_button is not None:
            attempt.log("Restarting animation")
            await attempt.activate(start_button)
            await self.clock.sleep(self.timing.poll_interval)

    async def _prepare(self, attempt: SolveAttempt) -> None:
        scope = attempt.instance.scope
        interval = self.timing.poll_interval

        play_button = await self._play_button(scope)
        if await self._at_end(play_button):
            attempt.enter(SolverState.REWINDING)
            attempt.log("Animation in rewind state, resetting")
            await attempt.activate(play_button)
            await self.clock.sleep(interval)

        speed_selector = self.probes.controls.get("speed_toggle")
        if speed_selector:
            toggle = await self.surface.query(speed_selector, scope)
            if toggle is not None and not await self.surface.is_checked(toggle):
                attempt.log("Enabling 2x speed")
                await attempt.activate(toggle)
                await self.clock.sleep(interval)

        start_selector = self.probes.controls.get("start_button")
        start_button = await self.surface.query(start_selector, scope) if start_selector else None
        if start_button is not None:
            attempt.enter(SolverState.PLAYING)
            attempt.log("Clicking start button")
            await attempt.activate(start_button)
            await self.clock.sleep(interval)

    async def _solve(self, attempt: SolveAttempt) -> Outcome:
        instance = attempt.instance
        force_mode = attempt.context.force_mode
        await self._prepare(attempt)

        started = self.clock.now()
        steps = 0
        while True:
            attempt.context.checkpoint()
            # Force mode ignores the (already filled) marker and plays through once.
            if not force_mode and await self.classifier.is_complete(instance, False):
                attempt.log("Animation completed")
                return Outcome.SOLVED
            if steps >= self.timing.max_animation_steps:
                attempt.log(f"Animation still incomplete after {steps} steps, moving on")
                return Outcome.TIMEOUT
            if self.clock.now() - started > self.timing.animation_timeout:
                attempt.log("Animation exceeded maximum time, moving on")
                return Outcome.TIMEOUT

            play_button = await self._play_button(instance.scope)
            if play_button is not None:
                if await self._at_end(play_button):
                    if force_mode and steps > 0:
                        attempt.log("Animation played through")
                        return Outcome.SOLVED
                    await self._restart(attempt, play_button)
                else:
                    attempt.enter(SolverState.PLAYING)
                    attempt.log("Clicking play button")
                    await attempt.activate(play_button)
                    steps += 1
            await self.clock.sleep(self.timing.poll_interval)
