"""
Test Process Runner
===================
Runs the project's test suite through its build tool as a child process.

BOUNDARY RULES:
    - Runner ONLY executes and observes.
    - Runner NEVER decides pass/fail — the exit code is recorded, the
      verdict comes from the TestReportAnalyzer.
    - Runner NEVER edits source files.

LIFECYCLE:
    NOT_STARTED → RUNNING → COMPLETED | TIMED_OUT | FAILED

    1. Resolve the build tool command for the detected build system and
       delete reports left by the previous run
    2. Spawn it in the project root, stderr merged into stdout, in its own
       process group so the whole tree can be killed
    3. One drain thread echoes output line by line while the caller blocks
       on process exit (a full pipe would otherwise stall the child)
    4. On deadline: kill the process tree, raise TestTimeoutError
    5. Join the drain thread, return ProcessOutcome

A timeout is never "tests failed". It is its own fatal condition.
"""
import enum
import logging
import os
import shutil
import signal
import subprocess
import sys
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Optional, Sequence

from fixverify.core.config import OUTPUT_TAIL_LINES, TEST_TIMEOUT_MINUTES
from fixverify.core.errors import TestLaunchError, TestTimeoutError
from fixverify.executor.command_resolver import resolve_test_command
from fixverify.executor.project_detector import BuildSystemKind, detect_build_system
from fixverify.executor.report_analyzer import report_dir_for

logger = logging.getLogger(__name__)


# Output lines worth flagging while the build is still running
_BUILD_FAILURE_MARKERS = (
    "COMPILATION ERROR",
    "Failed to execute goal",
    "Compilation failed",
    "BUILD FAILED",
)

# Seconds to wait for the drain thread after the child is gone
_DRAIN_JOIN_GRACE = 10.0


class RunState(str, enum.Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


@dataclass
class ProcessOutcome:
    """
    Result of one completed build-tool run.

    Fields
    ------
    exit_code : int
        Raw process exit code. NOT authoritative for pass/fail.
    duration_seconds : float
        Wall clock duration of the run.
    command : str
        The command line that was executed.
    output_tail : list[str]
        Last lines of combined stdout/stderr.
    """
    exit_code: int
    duration_seconds: float
    command: str = ""
    output_tail: list = field(default_factory=list)


class TestProcessRunner:
    """
    Spawns the build tool's test command under a wall-clock timeout.

    Parameters
    ----------
    timeout_minutes : float
        Deadline for one run (default: TEST_TIMEOUT_MINUTES).
    echo : bool
        Echo build output to the console as it arrives (default: True).
    tail_lines : int
        Number of output lines kept for the ProcessOutcome.
    """

    __test__ = False  # not a pytest test class

    def __init__(
        self,
        timeout_minutes: float = TEST_TIMEOUT_MINUTES,
        echo: bool = True,
        tail_lines: int = OUTPUT_TAIL_LINES,
    ) -> None:
        self.timeout_seconds = timeout_minutes * 60
        self.echo = echo
        self.tail_lines = tail_lines
        self.state = RunState.NOT_STARTED

    # -------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------
    def run(self, project_root: str, build_system: Optional[BuildSystemKind] = None) -> ProcessOutcome:
        """
        Run the test suite of the project at ``project_root``.

        The build system's report directory is deleted first, so a build
        that dies before testing leaves no reports instead of stale ones.

        Raises
        ------
        UnsupportedBuildSystemError
            If no Maven/Gradle build is detected.
        TestLaunchError
            If the build tool cannot be spawned.
        TestTimeoutError
            If the run exceeds the deadline (the process tree is killed).
        """
        project_root = str(project_root)
        if build_system is None:
            build_system = detect_build_system(project_root)
        command = resolve_test_command(build_system, project_root)
        self._clear_stale_reports(project_root, build_system)
        return self.run_command(command.argv, project_root)

    def run_command(self, argv: Sequence[str], cwd: str) -> ProcessOutcome:
        """Run an explicit command under the runner's timeout and draining rules."""
        command_line = " ".join(argv)
        self.state = RunState.NOT_STARTED

        logger.info("Starting test execution: %s", command_line)
        logger.info("Timeout set to: %.1f minutes", self.timeout_seconds / 60)
        logger.info("Project root: %s", os.path.abspath(cwd))

        start_time = time.monotonic()
        try:
            proc = self._start_process(argv, cwd)
        except OSError as e:
            self.state = RunState.FAILED
            logger.error("Could not start %s: %s", command_line, e)
            raise TestLaunchError(f"Could not start '{command_line}': {e}") from e
        self.state = RunState.RUNNING

        tail: deque = deque(maxlen=self.tail_lines)
        drain = threading.Thread(
            target=self._drain_output,
            args=(proc.stdout, tail),
            name="build-output-drain",
            daemon=True,
        )
        drain.start()

        try:
            exit_code = proc.wait(timeout=self.timeout_seconds)
        except subprocess.TimeoutExpired:
            elapsed = time.monotonic() - start_time
            logger.error("Timeout after %.0f seconds, killing %s", elapsed, command_line)
            self._kill_process_tree(proc)
            drain.join(timeout=_DRAIN_JOIN_GRACE)
            self.state = RunState.TIMED_OUT
            raise TestTimeoutError(self.timeout_seconds, command_line)

        drain.join(timeout=_DRAIN_JOIN_GRACE)
        if drain.is_alive():
            logger.warning("Build output pipe still open after exit (background daemon?)")

        duration = round(time.monotonic() - start_time, 3)
        self.state = RunState.COMPLETED
        logger.info("Process exit code: %d", exit_code)
        logger.info("Test execution completed in %.1f seconds", duration)

        return ProcessOutcome(
            exit_code=exit_code,
            duration_seconds=duration,
            command=command_line,
            output_tail=list(tail),
        )

    # -------------------------------------------------------------------
    # Internal Helpers
    # -------------------------------------------------------------------
    @staticmethod
    def _clear_stale_reports(project_root: str, build_system: BuildSystemKind) -> None:
        report_dir = report_dir_for(project_root, build_system)
        if report_dir is not None and report_dir.is_dir():
            logger.info("Removing previous test reports: %s", report_dir)
            shutil.rmtree(report_dir)

    @staticmethod
    def _start_process(argv: Sequence[str], cwd: str) -> subprocess.Popen:
        creationflags = getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", 0) if os.name == "nt" else 0
        return subprocess.Popen(
            list(argv),
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            stdin=subprocess.DEVNULL,
            text=True,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
            start_new_session=os.name != "nt",
            creationflags=creationflags,
        )

    def _drain_output(self, stream, tail: deque) -> None:
        """Read the child's output until the pipe closes."""
        try:
            for line in iter(stream.readline, ""):
                line = line.rstrip("\r\n")
                tail.append(line)
                if self.echo:
                    sys.stdout.write(f"[BUILD OUTPUT] {line}\n")
                    sys.stdout.flush()
                if any(marker in line for marker in _BUILD_FAILURE_MARKERS):
                    logger.error("Build issue detected: %s", line)
        except (OSError, ValueError) as e:
            logger.warning("Error reading build output: %s", e)
        finally:
            try:
                stream.close()
            except OSError:
                pass

    @staticmethod
    def _kill_process_tree(proc: subprocess.Popen) -> None:
        """Forcibly terminate the child and everything it spawned."""
        if proc.poll() is not None:
            return
        try:
            if os.name == "nt":
                subprocess.run(
                    ["taskkill", "/PID", str(proc.pid), "/T", "/F"],
                    capture_output=True,
                )
                if proc.poll() is None:
                    proc.kill()
            else:
                try:
                    os.killpg(proc.pid, signal.SIGKILL)
                except (ProcessLookupError, PermissionError):
                    proc.kill()
        finally:
            try:
                proc.wait(timeout=10)
            except subprocess.TimeoutExpired:
                logger.error("Process %d did not exit after kill", proc.pid)
