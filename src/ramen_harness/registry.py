"""Tracking and shutdown of long-running processes started by scenarios.

Daemons started by a step (supervisor, httpd, notifier...) keep running
concurrently with the test process. They are registered here, and draining
the registry at the end of the scenario interrupts each of them and waits for
it to exit, so no daemon outlives the scenario that started it.

Handles:
- Cancellation handles over Popen objects and raw child pids
- Registration keyed by launching command line (duplicate keys allowed)
- Stop-then-join-all drain, tolerant of processes that already exited
- Optional escalation to SIGKILL after a stop timeout
"""

import functools
import os
import signal
import subprocess
import time
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .command import build_command_line
from .shared.logging import get_logger

logger = get_logger(__name__)

POLL_INTERVAL = 0.1


class ProcessHandle(ABC):
    """Cancellation handle over a running process."""

    pid: int
    returncode: int | None = None

    @abstractmethod
    def request_stop(self, sig: int = signal.SIGINT) -> None:
        """Ask the process to stop. Does not wait."""

    @abstractmethod
    def join(self, timeout: float | None = None) -> bool:
        """Wait for the process to exit.

        Args:
            timeout: Seconds to wait, None to wait forever

        Returns:
            True if the process has exited, False if the wait timed out
        """

    @abstractmethod
    def kill(self) -> None:
        """Forcefully terminate the process. Does not wait."""

    @abstractmethod
    def is_running(self) -> bool:
        """Return True while the process has not exited."""


class PopenHandle(ProcessHandle):
    """Handle over a subprocess.Popen.

    When process_group is True the process leads its own session and stop
    signals go to the whole group, which also reaches the children of a
    shell that did not exec its command.
    """

    def __init__(self, process: subprocess.Popen, process_group: bool = False):
        self.process = process
        self.pid = process.pid
        self.process_group = process_group

    @property
    def returncode(self) -> int | None:  # type: ignore[override]
        return self.process.returncode

    def _signal(self, sig: int) -> None:
        if self.process.poll() is not None:
            return
        try:
            if self.process_group:
                os.killpg(self.pid, sig)
            else:
                self.process.send_signal(sig)
        except ProcessLookupError:
            pass  # Exited between poll and signal

    def request_stop(self, sig: int = signal.SIGINT) -> None:
        self._signal(sig)

    def kill(self) -> None:
        self._signal(signal.SIGKILL)

    def join(self, timeout: float | None = None) -> bool:
        try:
            self.process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return False
        return True

    def is_running(self) -> bool:
        return self.process.poll() is None

    def __repr__(self) -> str:
        return f"PopenHandle(pid={self.pid}, returncode={self.returncode})"


class PidHandle(ProcessHandle):
    """Handle over a bare pid.

    Children of this process are reaped with waitpid. A pid that is not our
    child can only be watched until it disappears, its exit status is then
    unknown and returncode stays None.
    """

    def __init__(self, pid: int):
        self.pid = pid
        self.returncode = None
        self._exited = False

    def request_stop(self, sig: int = signal.SIGINT) -> None:
        if self._exited:
            return
        try:
            os.kill(self.pid, sig)
        except ProcessLookupError:
            pass  # Already gone

    def kill(self) -> None:
        self.request_stop(signal.SIGKILL)

    def _poll(self, block: bool = False) -> bool:
        if self._exited:
            return True
        try:
            pid, status = os.waitpid(self.pid, 0 if block else os.WNOHANG)
        except ChildProcessError:
            # Not our child, or already reaped elsewhere
            try:
                os.kill(self.pid, 0)
            except ProcessLookupError:
                self._exited = True
                return True
            except PermissionError:
                return False
            return False
        if pid == 0:
            return False
        self.returncode = os.waitstatus_to_exitcode(status)
        self._exited = True
        return True

    def join(self, timeout: float | None = None) -> bool:
        if self._poll(block=timeout is None):
            return True
        deadline = None if timeout is None else time.monotonic() + timeout
        while deadline is None or time.monotonic() < deadline:
            time.sleep(POLL_INTERVAL)
            if self._poll():
                return True
        return False

    def is_running(self) -> bool:
        return not self._poll()

    def __repr__(self) -> str:
        return f"PidHandle(pid={self.pid}, returncode={self.returncode})"


def as_handle(process: ProcessHandle | subprocess.Popen | int) -> ProcessHandle:
    """Wrap a Popen or pid into a ProcessHandle."""
    if isinstance(process, ProcessHandle):
        return process
    if isinstance(process, subprocess.Popen):
        return PopenHandle(process)
    if isinstance(process, int):
        return PidHandle(process)
    raise TypeError(f"Cannot track {type(process).__name__} as a process")


@dataclass
class ProcessEntry:
    """A tracked process and the command line that launched it."""

    key: str
    handle: ProcessHandle


class ProcessRegistry:
    """Processes started during one scenario.

    Lifecycle is create, register any number of times, drain, discard.
    """

    def __init__(
        self,
        stop_signal: int = signal.SIGINT,
        stop_timeout: float | None = None,
    ):
        """Initialize ProcessRegistry.

        Args:
            stop_signal: Signal asking a process to shut down cleanly
            stop_timeout: Seconds to wait before escalating to SIGKILL,
                None to wait as long as it takes
        """
        self.stop_signal = stop_signal
        self.stop_timeout = stop_timeout
        self._entries: list[ProcessEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ProcessEntry]:
        return iter(list(self._entries))

    def keys(self) -> list[str]:
        """Launch command lines of the tracked processes, in registration order."""
        return [entry.key for entry in self._entries]

    def register(self, key: str, process: ProcessHandle | subprocess.Popen | int) -> ProcessHandle:
        """Track a running process.

        Registering a key twice tracks both processes.

        Args:
            key: Command line that launched the process
            process: Handle, Popen or pid of the process

        Returns:
            The ProcessHandle now tracked
        """
        handle = as_handle(process)
        self._entries.append(ProcessEntry(key=key, handle=handle))
        logger.info("Tracking process", key=key, pid=handle.pid)
        return handle

    def spawn(self, program: str | Path, arguments: str = "", **popen_kwargs: Any) -> PopenHandle:
        """Start a long-running command through the shell and track it.

        Args:
            program: Path or name of the program
            arguments: Single argument string
            **popen_kwargs: Extra arguments for subprocess.Popen (env, cwd, stdout...)

        Returns:
            Handle of the started process
        """
        command_line = build_command_line(program, arguments)
        # The child must not inherit an ignored stop signal from the test runner
        popen_kwargs.setdefault(
            "preexec_fn", functools.partial(signal.signal, self.stop_signal, signal.SIG_DFL)
        )
        process = subprocess.Popen(
            command_line,
            shell=True,
            start_new_session=True,
            **popen_kwargs,
        )
        handle = PopenHandle(process, process_group=True)
        self.register(command_line, handle)
        return handle

    def drain(self) -> int:
        """Stop every tracked process, wait for each to exit, then forget them.

        Safe to call repeatedly and when processes already exited. Every
        tracked process is attempted even if some of them cannot be stopped.

        Returns:
            Number of processes that were tracked

        Raises:
            OSError: The first error met while stopping or reaping, raised
                once all other processes have been handled
        """
        entries, self._entries = self._entries, []
        if not entries:
            return 0

        errors: list[OSError] = []
        stopping: list[ProcessEntry] = []
        for entry in entries:
            logger.debug("Stopping process", key=entry.key, pid=entry.handle.pid)
            try:
                entry.handle.request_stop(self.stop_signal)
            except OSError as e:
                # Not waited on: a process we cannot signal would block join forever
                logger.error("Cannot stop process", key=entry.key, pid=entry.handle.pid, error=str(e))
                errors.append(e)
                continue
            stopping.append(entry)

        for entry in stopping:
            try:
                self._join(entry)
            except OSError as e:
                logger.error("Cannot reap process", key=entry.key, pid=entry.handle.pid, error=str(e))
                errors.append(e)

        if errors:
            raise errors[0]
        return len(entries)

    def _join(self, entry: ProcessEntry) -> None:
        if entry.handle.join(self.stop_timeout):
            logger.info(
                "Process stopped",
                key=entry.key,
                pid=entry.handle.pid,
                returncode=entry.handle.returncode,
            )
            return
        logger.warning(
            "Process ignored stop request, killing",
            key=entry.key,
            pid=entry.handle.pid,
            timeout=self.stop_timeout,
        )
        entry.handle.kill()
        entry.handle.join()

    def __enter__(self) -> "ProcessRegistry":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.drain()
