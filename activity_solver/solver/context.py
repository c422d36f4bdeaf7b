"""Run-scoped state: cancellation, the user-facing run log and the clock."""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from activity_solver.errors import UserCancelled

logger = logging.getLogger(__name__)
run_logger = logging.getLogger("activity_solver.run")


class Clock(ABC):
    """Time source for every wait in the engine."""

    @abstractmethod
    def now(self) -> float: ...

    @abstractmethod
    async def sleep(self, seconds: float) -> None: ...


class AsyncioClock(Clock):
    def now(self) -> float:
        try:
            return asyncio.get_running_loop().time()
        except RuntimeError:
            return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))


class CancellationToken:
    """Explicit stop flag passed by reference into every solver call."""

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


@dataclass(frozen=True)
class LogEntry:
    timestamp: datetime
    level: int
    message: str

    def format(self) -> str:
        return f"[{self.timestamp.strftime('%H:%M:%S')}] {self.message}"


class LogSink:
    """Append-only, ordered run log exposed to display collaborators."""

    def __init__(self) -> None:
        self._entries: list[LogEntry] = []
        self._subscribers: list[Callable[[LogEntry], None]] = []

    def add(self, message: str, level: int = logging.INFO) -> LogEntry:
        entry = LogEntry(timestamp=datetime.now(), level=level, message=message)
        self._entries.append(entry)
        run_logger.log(level, message)
        for callback in list(self._subscribers):
            try:
                callback(entry)
            except Exception:
                logger.exception("Log subscriber failed")
        return entry

    def subscribe(self, callback: Callable[[LogEntry], None]) -> None:
        self._subscribers.append(callback)

    @property
    def messages(self) -> list[str]:
        return [e.message for e in self._entries]


@dataclass
class RunContext:
    """State shared by every solver for the duration of one run.

    A fresh context is created for each run, nothing leaks across runs.
    """

    force_mode: bool = False
    token: CancellationToken = field(default_factory=CancellationToken)
    log: LogSink = field(default_factory=LogSink)

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    def stop(self) -> None:
        if not self.token.cancelled:
            self.token.cancel()
            self.log.add("Operation stopped by user", logging.WARNING)

    def checkpoint(self) -> None:
        """Raise ``UserCancelled`` if the run has been stopped."""
        if self.token.cancelled:
            raise UserCancelled()
