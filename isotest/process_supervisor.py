"""
Runs each test in a child process and enforces the per-test timeout.

Two strategies are provided. ``ForkSupervisor`` forks the harness and runs
the test body in the child. ``SpawnSupervisor`` re-invokes the test program
with options selecting the single test, for platforms without ``fork``.
Either way a crash, a fatal signal or an endless loop in one test cannot
take the rest of the run with it.
"""

import contextlib
import os
import select
import signal
import subprocess
import sys
import time
from typing import Callable, NoReturn, Sequence

from isotest.errors import ProcessControlFailure, ProcessCreationFailure
from isotest.exit_status import ExitStatus
from isotest.outcome_classifier import OutcomeClassifier
from isotest.run_configuration import RunConfiguration
from isotest.test_identity import TestIdentity
from isotest.test_logger import TestLogger


TIMED_OUT: str = "timed out"

# Exit codes of Windows processes killed by a structured exception
WINDOWS_EXCEPTION_CODES: dict[int, str] = {
    0xC0000005: "Access violation",
    0xC000008C: "Array bounds exceeded",
    0x80000003: "Breakpoint encountered",
    0x80000002: "Data type misalignment",
    0xC000008D: "Denormal floating-point operand",
    0xC000008E: "Floating-point division by zero",
    0xC000008F: "Inexact floating-point result",
    0xC0000090: "Invalid floating-point operation",
    0xC0000091: "Floating-point overflow",
    0xC0000092: "Floating-point stack overflow/underflow",
    0xC0000093: "Floating-point underflow",
    0x80000001: "Guard page violation",
    0xC000001D: "Illegal instruction",
    0xC0000006: "Memory page no longer present",
    0xC0000094: "Integer division by zero",
    0xC0000095: "Integer overflow",
    0xC0000026: "Invalid exception disposition",
    0xC0000008: "Invalid handle",
    0xC0000025: "Non-continuable exception",
    0xC0000096: "Privileged instruction",
    0x80000004: "Debug trap",
    0xC00000FD: "Stack overflow",
    0x80000029: "Frame consolidation",
}


def describe_signal(signum: int) -> str:
    """
    Human readable name of a signal, e.g. ``Segmentation fault``.
    """
    try:
        description = signal.strsignal(signum)
    except ValueError:
        description = None
    if description:
        return description
    try:
        return signal.Signals(signum).name
    except ValueError:
        return f"signal {signum}"


def describe_returncode(returncode: int) -> str | None:
    """
    Describe an abnormal process ending, if the return code denotes one.

    Parameters
    ----------
    returncode : int
        Return code as reported by ``subprocess`` (negative for signals)

    Returns
    -------
    str | None
        Signal or exception description, or None for an ordinary exit
    """
    if returncode < 0:
        return describe_signal(-returncode)
    if sys.platform == "win32":
        return WINDOWS_EXCEPTION_CODES.get(returncode & 0xFFFFFFFF)
    return None


class ProcessSupervisor:
    """
    Base class of the isolation strategies.

    Attributes
    ----------
    config : RunConfiguration
        Harness configuration (timeout, options forwarded to children)
    """

    def __init__(self,
        config: RunConfiguration,
        logger: TestLogger,
        classifier: OutcomeClassifier,
    ) -> None:
        self.config: RunConfiguration = config
        self._logger: TestLogger = logger
        self._classifier: OutcomeClassifier = classifier


    def supervise(self,
        identity: TestIdentity,
        body: Callable[[], object],
    ) -> bool:
        """
        Run one test in isolation and report abnormal endings.

        Parameters
        ----------
        identity : TestIdentity
            Identity of the test
        body : Callable[[], object]
            Test body with its arguments already bound

        Returns
        -------
        bool
            True if the test passed
        """
        raise NotImplementedError


    def _flush_all(self) -> None:
        # Buffered output must not be duplicated into the child
        sys.stdout.flush()
        self._logger.flush()


    def _start_line(self, identity: TestIdentity) -> None:
        # Written before the child starts so that every outcome, whoever
        # reports it, completes a line naming the test
        self._logger.write(f"{identity}: ")
        self._flush_all()


    def _abandon_line(self) -> None:
        self._logger.write("\n")
        self._logger.flush()


    def _report_failure(self, reason: str) -> None:
        self._logger.write_outcome(f"FAIL ({reason})\n")
        self._logger.flush()


    def _check_exit_code(self, exit_code: int) -> bool:
        # A child reports its own outcome and exits with 0 or 1; any other
        # code means it ended before writing a result.
        if exit_code == ExitStatus.SUCCESS.value:
            return True
        if exit_code != ExitStatus.ERROR.value:
            self._report_failure(f"exit status {exit_code}")
        return False


class ForkSupervisor(ProcessSupervisor):
    """
    Forks the harness for each test.

    The parent waits for the child with a deadline of ``now + timeout``.
    Interrupted waits resume with the time remaining until that same
    deadline. When the deadline passes the child is killed with SIGKILL and
    reaped.
    """
    # Sleep between status checks when no process descriptor is available
    POLL_INTERVAL: float = 0.005

    def supervise(self,
        identity: TestIdentity,
        body: Callable[[], object],
    ) -> bool:
        self._logger.note(f"running {identity} in a forked process")
        self._start_line(identity)
        try:
            pid = os.fork()
        except OSError as e:
            self._abandon_line()
            raise ProcessCreationFailure(
                f"fork() failed for test {identity}: {e.strerror or e}"
            ) from e

        if pid == 0:
            self._run_child(identity, body)

        deadline = time.monotonic() + self.config.timeout
        try:
            status = self._wait(pid, deadline)
        except KeyboardInterrupt:
            # The child may already have been reaped by the interrupted wait
            with contextlib.suppress(ProcessLookupError, ChildProcessError):
                os.kill(pid, signal.SIGKILL)
                os.waitpid(pid, 0)
            raise

        if status is None:
            self._kill(pid)
            self._reap(pid)
            self._report_failure(TIMED_OUT)
            return False

        if os.WIFSIGNALED(status):
            self._report_failure(describe_signal(os.WTERMSIG(status)))
            return False

        exit_code = os.WEXITSTATUS(status) if os.WIFEXITED(status) else -1
        passed = self._check_exit_code(exit_code)
        self._logger.note(f"{identity}: child process {pid} exited with {exit_code}")
        return passed


    def _run_child(self,
        identity: TestIdentity,
        body: Callable[[], object],
    ) -> NoReturn:
        status = ExitStatus.ERROR.value
        try:
            status = self._classifier.run(identity, body, prefix=False).exit_code
        finally:
            try:
                sys.stdout.flush()
                self._logger.flush()
            finally:
                os._exit(status)


    def _wait(self, pid: int, deadline: float) -> int | None:
        """
        Wait for the child to end, no later than ``deadline``.

        Parameters
        ----------
        pid : int
            Child process ID
        deadline : float
            ``time.monotonic()`` value at which to give up

        Returns
        -------
        int | None
            Wait status of the reaped child, or None if the deadline passed
        """
        pidfd_open = getattr(os, "pidfd_open", None)
        if pidfd_open is None:
            return self._wait_polling(pid, deadline)
        try:
            pidfd = pidfd_open(pid)
        except OSError:
            return self._wait_polling(pid, deadline)
        try:
            return self._wait_pidfd(pid, pidfd, deadline)
        finally:
            os.close(pidfd)


    def _wait_pidfd(self, pid: int, pidfd: int, deadline: float) -> int | None:
        poller = select.poll()
        poller.register(pidfd, select.POLLIN)
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return None
            if poller.poll(max(1, int(remaining * 1000))):
                return self._reap(pid)


    def _wait_polling(self, pid: int, deadline: float) -> int | None:
        while True:
            try:
                waited, status = os.waitpid(pid, os.WNOHANG)
            except OSError as e:
                raise ProcessControlFailure(
                    f"waitpid() failed: {e.strerror or e}"
                ) from e
            if waited == pid:
                return status
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return None
            time.sleep(min(self.POLL_INTERVAL, remaining))


    def _kill(self, pid: int) -> None:
        try:
            os.kill(pid, signal.SIGKILL)
        except OSError as e:
            raise ProcessControlFailure(f"kill() failed: {e.strerror or e}") from e


    def _reap(self, pid: int) -> int:
        try:
            _, status = os.waitpid(pid, 0)
        except OSError as e:
            raise ProcessControlFailure(f"waitpid() failed: {e.strerror or e}") from e
        return status


class SpawnSupervisor(ProcessSupervisor):
    """
    Re-invokes the test program to run each test.

    The child gets ``-d --no-prefix -r group.subgroup.N`` plus the log file,
    timeout and ``-A`` options of the parent, so it runs exactly the one test
    in-process and writes the outcome after the test name the parent has
    written.
    """

    def __init__(self,
        config: RunConfiguration,
        logger: TestLogger,
        classifier: OutcomeClassifier,
        command: Sequence[str] | None = None,
    ) -> None:
        """
        Initialize the supervisor.

        Parameters
        ----------
        config : RunConfiguration
            Harness configuration
        logger : TestLogger
            Destination of parent-side FAIL reports
        classifier : OutcomeClassifier
            Unused by the parent; kept for the common interface
        command : Sequence[str] | None, optional
            Command re-invoking the test program, by default the Python
            interpreter followed by ``config.exec_path``
        """
        super().__init__(config, logger, classifier)
        if command is None:
            command = [sys.executable, str(config.exec_path)]
        self.command: list[str] = list(command)


    def child_command(self, identity: TestIdentity) -> list[str]:
        """
        Full command line of the child running ``identity``.
        """
        return [*self.command, *self.config.to_child_argv(identity)]


    def supervise(self,
        identity: TestIdentity,
        body: Callable[[], object],
    ) -> bool:
        argv = self.child_command(identity)
        self._logger.note(f"running {identity}: {subprocess.list2cmdline(argv)}")
        self._start_line(identity)
        try:
            process = subprocess.Popen(argv)
        except OSError as e:
            self._abandon_line()
            raise ProcessCreationFailure(
                f"failed to create process for test {identity}: {e.strerror or e}"
            ) from e

        try:
            returncode = process.wait(timeout=self.config.timeout)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()
            self._report_failure(TIMED_OUT)
            return False
        except KeyboardInterrupt:
            process.kill()
            process.wait()
            raise

        description = describe_returncode(returncode)
        if description is not None:
            self._report_failure(description)
            return False

        passed = self._check_exit_code(returncode)
        self._logger.note(f"{identity}: child process {process.pid} exited with {returncode}")
        return passed


def create_supervisor(
    config: RunConfiguration,
    logger: TestLogger,
    classifier: OutcomeClassifier,
    command: Sequence[str] | None = None,
) -> ProcessSupervisor:
    """
    Pick the isolation strategy for this platform and configuration.

    Forking is used where available unless spawning was requested with
    ``--spawn``.
    """
    if config.spawn or not hasattr(os, "fork"):
        return SpawnSupervisor(config, logger, classifier, command)
    return ForkSupervisor(config, logger, classifier)
