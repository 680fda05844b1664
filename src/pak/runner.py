"""Execution of package manager binaries."""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import signal
import subprocess
import threading
from collections.abc import Sequence
from pathlib import Path
from typing import IO, TextIO

from pak.types import CommandResult, OutputSinks

logger = logging.getLogger(__name__)

# Exit code reported when the binary cannot be started, as shells do
COMMAND_NOT_FOUND_EXIT_CODE = 127

# Seconds to wait for output readers once a timed out process group is killed
READER_GRACE_PERIOD = 5

_POSIX = os.name == "posix"


def _strip_final_newline(text: str) -> str:
    if text.endswith("\r\n"):
        return text[:-2]
    if text.endswith("\n"):
        return text[:-1]
    return text


class _OutputCollector:
    """Collects one process stream, mirroring it into sinks."""

    def __init__(
        self,
        sink: TextIO | None,
        combined: list[str],
        combined_sink: TextIO | None,
        lock: threading.Lock,
    ) -> None:
        self.chunks: list[str] = []
        self._sink = sink
        self._combined = combined
        self._combined_sink = combined_sink
        self._lock = lock

    def pump(self, stream: IO[str]) -> None:
        for line in iter(stream.readline, ""):
            self.chunks.append(line)
            if self._sink is not None:
                self._sink.write(line)
                self._sink.flush()
            with self._lock:
                self._combined.append(line)
                if self._combined_sink is not None:
                    self._combined_sink.write(line)
                    self._combined_sink.flush()
        stream.close()

    @property
    def text(self) -> str:
        return _strip_final_newline("".join(self.chunks))


class SubprocessRunner:
    """Runs external programs and captures their output.

    Satisfies the CommandRunner protocol structurally.
    """

    def __init__(self, timeout: float | None = None) -> None:
        """Initialize the runner.

        Args:
            timeout: Seconds after which a process is killed. None waits forever.
        """
        self.timeout = timeout

    def run(
        self,
        command: str,
        args: Sequence[str],
        cwd: Path,
        sinks: OutputSinks | None = None,
    ) -> CommandResult:
        """Run a program to completion.

        Args:
            command: Binary name, looked up on PATH.
            args: Argument vector without the binary.
            cwd: Working directory.
            sinks: Streams that receive output while the process runs.

        Returns:
            CommandResult describing the finished process. A binary that
            cannot be started yields a failed result, not an exception.
        """
        sinks = sinks or OutputSinks()
        # Resolves npm.cmd and friends on Windows
        executable = shutil.which(command) or command
        argv = [executable, *args]
        logger.debug("Running %s in %s", shlex.join([command, *args]), cwd)

        try:
            process = subprocess.Popen(
                argv,
                cwd=cwd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                # Own process group, so children of npm and yarn die with it
                start_new_session=_POSIX and self.timeout is not None,
            )
        except OSError as e:
            message = f"Failed to run {command}: {e}"
            logger.debug(message)
            return CommandResult.from_process(
                COMMAND_NOT_FOUND_EXIT_CODE, "", message, message, failed=True
            )

        combined: list[str] = []
        lock = threading.Lock()
        stdout = _OutputCollector(sinks.stdout, combined, sinks.combined, lock)
        stderr = _OutputCollector(sinks.stderr, combined, sinks.combined, lock)
        readers = [
            threading.Thread(target=stdout.pump, args=(process.stdout,), daemon=True),
            threading.Thread(target=stderr.pump, args=(process.stderr,), daemon=True),
        ]
        for reader in readers:
            reader.start()

        timed_out = False
        try:
            process.wait(timeout=self.timeout)
        except subprocess.TimeoutExpired:
            logger.debug("%s exceeded %ss, killing it", command, self.timeout)
            _kill_process_tree(process)
            process.wait()
            timed_out = True

        for reader in readers:
            reader.join(READER_GRACE_PERIOD if timed_out else None)

        exit_code = process.returncode
        killed = exit_code < 0 and not timed_out
        logger.debug("%s exited with code %d", command, exit_code)

        return CommandResult.from_process(
            exit_code,
            stdout.text,
            stderr.text,
            _strip_final_newline("".join(combined)),
            killed=killed,
            timed_out=timed_out,
        )


def _kill_process_tree(process: subprocess.Popen) -> None:
    """Kill a process started in its own session together with its children."""
    if not _POSIX:
        process.kill()
        return
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        # The whole group exited between the timeout and the kill
        logger.debug("Process group %d already gone", process.pid)
