"""Refresh scheduling and execution of the service command.

A ``CommandChannel`` owns one command string. Submitting to a channel that
still has a command running kills that process and bumps the channel's
generation, so a late result from the older run is dropped on arrival. The
``Poller`` drives a channel from a ``Scheduler`` and publishes outcomes to a
``SessionState``.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
import logging
import math
import os
import signal
import subprocess
import threading
from typing import Callable

from quotabar.config import Config, effective_refresh_seconds, effective_service_command
from quotabar.models import ErrorKind, NormalizeResult, SnapshotError
from quotabar.session import SessionState
from quotabar.snapshot import normalize

log = logging.getLogger(__name__)

NO_DATA_MESSAGE = "No data from service command"


class Scheduler(ABC):
    @abstractmethod
    def schedule(self, interval: float, fn: Callable[[], None]) -> None:
        raise NotImplementedError

    @abstractmethod
    def cancel(self) -> None:
        raise NotImplementedError


class ThreadScheduler(Scheduler):
    """Calls ``fn`` every ``interval`` seconds from a daemon thread."""

    def __init__(self) -> None:
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def schedule(self, interval: float, fn: Callable[[], None]) -> None:
        self.cancel()
        stop = threading.Event()
        self._stop = stop

        def loop() -> None:
            while not stop.wait(interval):
                try:
                    fn()
                except Exception:
                    log.exception("scheduled refresh failed")

        self._thread = threading.Thread(target=loop, name="quotabar-timer", daemon=True)
        self._thread.start()

    def cancel(self) -> None:
        self._stop.set()
        self._thread = None


@dataclass(frozen=True)
class CommandResult:
    stdout: str = ""
    stderr: str = ""
    returncode: int | None = None
    timed_out: bool = False
    timeout: float | None = None


class ProcessHandle:
    """Cancellable reference to one running command."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._proc: subprocess.Popen | None = None
        self.cancelled = False

    def attach(self, proc: subprocess.Popen) -> None:
        with self._lock:
            self._proc = proc
            cancelled = self.cancelled
        if cancelled:
            _kill(proc)

    def release(self) -> None:
        with self._lock:
            self._proc = None

    def cancel(self) -> None:
        with self._lock:
            self.cancelled = True
            proc = self._proc
            self._proc = None
        if proc is not None:
            _kill(proc)


def _kill(proc: subprocess.Popen) -> None:
    if proc.poll() is not None:
        return
    try:
        # the shell runs in its own session; take its children down with it
        if hasattr(os, "killpg"):
            os.killpg(proc.pid, signal.SIGKILL)
        else:
            proc.kill()
    except OSError:
        log.debug("process %s already gone", proc.pid)


def run_shell_command(command: str, timeout: float | None, handle: ProcessHandle) -> CommandResult:
    proc = subprocess.Popen(
        command,
        shell=True,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        errors="replace",
        start_new_session=True,
    )
    handle.attach(proc)
    try:
        stdout, stderr = proc.communicate(timeout=timeout)
    except subprocess.TimeoutExpired:
        _kill(proc)
        stdout, stderr = proc.communicate()
        return CommandResult(stdout or "", stderr or "", proc.returncode, timed_out=True, timeout=timeout)
    finally:
        handle.release()
    return CommandResult(stdout or "", stderr or "", proc.returncode)


def spawn_thread(job: Callable[[], None]) -> None:
    threading.Thread(target=job, name="quotabar-command", daemon=True).start()


Executor = Callable[[str, float | None, ProcessHandle], CommandResult]


class CommandChannel:
    def __init__(
        self,
        command: str,
        timeout: float | None = None,
        execute: Executor = run_shell_command,
        spawn: Callable[[Callable[[], None]], None] = spawn_thread,
    ) -> None:
        self.command = command
        self.timeout = timeout
        self._execute = execute
        self._spawn = spawn
        self._lock = threading.RLock()
        self._generation = 0
        self._handle: ProcessHandle | None = None
        self._closed = False

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    @property
    def running(self) -> bool:
        with self._lock:
            return self._handle is not None

    def submit(self, on_result: Callable[[CommandResult], None]) -> int | None:
        with self._lock:
            if self._closed:
                return None
            if self._handle is not None:
                log.debug("superseding pending run of %r", self.command)
                self._handle.cancel()
            self._generation += 1
            generation = self._generation
            handle = ProcessHandle()
            self._handle = handle
        self._spawn(lambda: self._run(generation, handle, on_result))
        return generation

    def _run(self, generation: int, handle: ProcessHandle, on_result: Callable[[CommandResult], None]) -> None:
        try:
            result = self._execute(self.command, self.timeout, handle)
        except OSError as exc:
            result = CommandResult(stderr=f"failed to start service command: {exc}")
        except Exception as exc:
            log.exception("running %r failed", self.command)
            result = CommandResult(stderr=f"service command failed: {exc}")
        with self._lock:
            if self._closed or generation != self._generation:
                log.debug("discarding stale result for %r (generation %d)", self.command, generation)
                return
            self._handle = None
            try:
                on_result(result)
            except Exception:
                log.exception("handling result of %r failed", self.command)

    def close(self) -> None:
        with self._lock:
            self._closed = True
            handle, self._handle = self._handle, None
        if handle is not None:
            handle.cancel()


def classify_result(result: CommandResult) -> NormalizeResult:
    """Map a finished command run onto a snapshot or a classified error.

    A timeout wins over any partial output. Otherwise only stdout decides:
    empty stdout is ``NO_OUTPUT`` carrying stderr (or a generic message), and
    a non-zero exit with output is still normalized.
    """
    if result.timed_out:
        message = f"Service command timed out after {result.timeout or 0:g}s"
        return NormalizeResult(error=SnapshotError(ErrorKind.TIMED_OUT, message))
    if not result.stdout.strip():
        message = result.stderr.strip() or NO_DATA_MESSAGE
        return NormalizeResult(error=SnapshotError(ErrorKind.NO_OUTPUT, message))
    if result.returncode:
        log.warning("service command exited with %s; parsing its output anyway", result.returncode)
    return normalize(result.stdout)


class Poller:
    def __init__(
        self,
        session: SessionState,
        cfg: Config,
        scheduler: Scheduler | None = None,
        execute: Executor = run_shell_command,
        spawn: Callable[[Callable[[], None]], None] = spawn_thread,
    ) -> None:
        self.session = session
        self.command = effective_service_command(cfg)
        self.interval = effective_refresh_seconds(cfg)
        timeout = cfg.general.command_timeout_seconds
        self.timeout = float(timeout) if timeout and math.isfinite(timeout) and timeout > 0 else None
        self.scheduler = scheduler or ThreadScheduler()
        self._execute = execute
        self._spawn = spawn
        self._lock = threading.Lock()
        self._channels: dict[str, CommandChannel] = {}

    def channel(self, command: str) -> CommandChannel:
        with self._lock:
            ch = self._channels.get(command)
            if ch is None:
                ch = CommandChannel(command, self.timeout, self._execute, self._spawn)
                self._channels[command] = ch
            return ch

    def start(self) -> None:
        if self.session.is_shutting_down:
            return
        log.info("polling %r every %.0fs", self.command, self.interval)
        self.scheduler.schedule(self.interval, self.refresh)
        self.refresh()

    def refresh(self) -> None:
        if self.session.is_shutting_down:
            return
        self.channel(self.command).submit(self.apply_result)

    def refresh_sync(self) -> None:
        """Run one refresh cycle on the calling thread."""
        if self.session.is_shutting_down:
            return
        handle = ProcessHandle()
        try:
            result = self._execute(self.command, self.timeout, handle)
        except OSError as exc:
            result = CommandResult(stderr=f"failed to start service command: {exc}")
        self.apply_result(result)

    def apply_result(self, result: CommandResult) -> None:
        if self.session.is_shutting_down:
            log.debug("shutting down; dropping service command result")
            return
        parsed = classify_result(result)
        if parsed.ok:
            self.session.apply_snapshot(parsed.snapshot)
            return
        error = parsed.error
        log.warning("service command failed (%s): %s", error.kind.value, error.message)
        self.session.apply_error(error.message)

    def shutdown(self) -> None:
        self.session.shutdown()
        self.scheduler.cancel()
        with self._lock:
            channels = list(self._channels.values())
            self._channels.clear()
        for ch in channels:
            ch.close()
