from __future__ import annotations

from typing import Callable

import pytest

from quotabar.config import Config
from quotabar.poller import CommandResult, ProcessHandle, Scheduler


class VirtualScheduler(Scheduler):
    """Scheduler driven by ``advance`` instead of wall-clock time."""

    def __init__(self) -> None:
        self.now = 0.0
        self.interval: float | None = None
        self.fn: Callable[[], None] | None = None
        self._next = 0.0

    def schedule(self, interval: float, fn: Callable[[], None]) -> None:
        self.interval = interval
        self.fn = fn
        self._next = self.now + interval

    def cancel(self) -> None:
        self.fn = None

    def advance(self, seconds: float) -> None:
        end = self.now + seconds
        while self.fn is not None and self._next <= end:
            self.now = self._next
            self._next += self.interval
            self.fn()
        self.now = end


class FakeService:
    """Scripted service command; jobs run only when the test says so."""

    def __init__(self, *results: CommandResult) -> None:
        self.results = list(results)
        self.calls: list[str] = []
        self.handles: list[ProcessHandle] = []
        self.pending: list[Callable[[], None]] = []

    def execute(self, command: str, timeout: float | None, handle: ProcessHandle) -> CommandResult:
        self.calls.append(command)
        self.handles.append(handle)
        return self.results.pop(0) if self.results else CommandResult()

    def spawn(self, job: Callable[[], None]) -> None:
        self.pending.append(job)

    def run_all(self) -> None:
        while self.pending:
            self.pending.pop(0)()


@pytest.fixture
def scheduler() -> VirtualScheduler:
    return VirtualScheduler()


@pytest.fixture
def cfg() -> Config:
    cfg = Config()
    cfg.general.service_command = "svc snapshot"
    return cfg
