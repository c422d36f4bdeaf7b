"""Poll-verify protocol shared by every solver.

After an input is simulated the page animates through intermediate
feedback classes before settling.  ``FeedbackObserver.observe`` samples a
pair of predicates at a fixed interval and turns what it sees into a
``Verdict``:

* ``CORRECT`` only after two consecutive correct samples one interval
  apart (a single correct sample can be a transition flicker);
* ``INCORRECT`` on the first incorrect sample;
* ``PENDING`` when the budget runs out, or when the run is cancelled
  between samples.

The first sample is taken one interval after the call, never at the
instant of dispatch, so feedback left over from the previous attempt is
not mistaken for the answer to this one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable

from activity_solver.errors import StaleReferenceError, VerificationTimeout
from activity_solver.solver.context import AsyncioClock, CancellationToken, Clock

logger = logging.getLogger(__name__)

Predicate = Callable[[Any], Awaitable[bool]]


class Verdict(Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    PENDING = "pending"


@dataclass(frozen=True)
class PollContract:
    is_correct: Predicate
    is_incorrect: Predicate | None = None
    interval: float = 0.1
    timeout: float = 2.0


class FeedbackObserver:
    def __init__(self, clock: Clock | None = None):
        self.clock = clock or AsyncioClock()

    async def _sample(self, scope: Any, contract: PollContract) -> Verdict:
        try:
            if contract.is_incorrect is not None and await contract.is_incorrect(scope):
                return Verdict.INCORRECT
            if await contract.is_correct(scope):
                return Verdict.CORRECT
        except StaleReferenceError:
            logger.debug("Feedback scope went stale mid-sample")
        return Verdict.PENDING

    async def observe(
        self,
        scope: Any,
        contract: PollContract,
        token: CancellationToken | None = None,
    ) -> Verdict:
        start = self.clock.now()
        awaiting_confirmation = False

        while True:
            await self.clock.sleep(contract.interval)
            verdict = await self._sample(scope, contract)

            if verdict is Verdict.INCORRECT:
                return Verdict.INCORRECT
            if verdict is Verdict.CORRECT:
                if awaiting_confirmation:
                    return Verdict.CORRECT
                awaiting_confirmation = True
            else:
                awaiting_confirmation = False

            if token is not None and token.cancelled:
                return Verdict.PENDING
            # One extra sample is allowed past the deadline to confirm.
            if self.clock.now() - start >= contract.timeout and not awaiting_confirmation:
                return Verdict.PENDING

    async def wait_until(
        self,
        predicate: Callable[[], Awaitable[bool]],
        timeout: float,
        interval: float = 0.1,
    ) -> None:
        """Poll *predicate* until it holds; raise ``VerificationTimeout`` otherwise."""
        start = self.clock.now()
        while True:
            try:
                if await predicate():
                    return
            except StaleReferenceError:
                pass
            if self.clock.now() - start >= timeout:
                raise VerificationTimeout(f"condition not met within {timeout:.1f}s")
            await self.clock.sleep(interval)
